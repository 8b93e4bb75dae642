"""Core configuration and market-hours utilities."""
