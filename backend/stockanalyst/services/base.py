"""
Base Service Interface

All services inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Input conforming to InputT

        Returns:
            Output conforming to OutputT

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(ServiceError):
    """Missing or placeholder credentials. Never retried."""
    pass


class UpstreamHttpError(ServiceError):
    """External API answered with a non-2xx status."""

    def __init__(
        self,
        service_name: str,
        message: str,
        status: Optional[int] = None,
        body: str = "",
    ):
        self.status = status
        self.body = body
        super().__init__(service_name, message, {"status": status, "body": body})


class UpstreamTimeout(ServiceError):
    """External API did not answer within the allowed time."""
    pass


class NoContentError(ServiceError):
    """2xx response that lacks the expected payload."""
    pass


class AllProvidersExhausted(ServiceError):
    """Every configured LLM provider and model failed."""

    def __init__(self, message: str, attempts: dict[str, str]):
        self.attempts = attempts
        super().__init__("AIProviderManager", message, {"attempts": attempts})


class StoreError(ServiceError):
    """Persistence failure."""
    pass
