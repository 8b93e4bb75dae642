"""
API v1 Router

All API endpoints for the frontend.
"""

from fastapi import APIRouter

from stockanalyst.api.v1.endpoints import analysis, history, market

router = APIRouter()

# Include all endpoint routers
router.include_router(analysis.router, prefix="/analysis", tags=["Analysis"])
router.include_router(history.router, prefix="/history", tags=["History"])
router.include_router(market.router, prefix="/market", tags=["Market Session"])
