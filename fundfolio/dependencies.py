# fundfolio/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. Services are lazily initialized on first use to avoid
import-time side effects.

Usage in routers:
    from fundfolio.dependencies import get_valuation_service

    @router.get("/{portfolio_id}/summary")
    def get_summary(
        service: ValuationService = Depends(get_valuation_service),
    ):
        ...
"""

import logging
from functools import lru_cache

from fundfolio.services.valuation.service import ValuationService

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# ValuationService holds no per-request state, so one instance serves all
# requests; the session is passed on every call.


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    """
    Get the singleton ValuationService instance.

    Used by the valuation router for summaries, breakdowns and history.
    """
    logger.debug("Initializing singleton ValuationService")
    return ValuationService()


# =============================================================================
# CACHE MANAGEMENT
# =============================================================================

def clear_service_caches() -> None:
    """
    Clear all service caches.

    Useful for testing or after changing settings at runtime.
    """
    get_valuation_service.cache_clear()
    logger.info("Cleared all service singleton caches")
