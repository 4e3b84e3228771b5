# fundfolio/routers/__init__.py
"""
API routers for the Fund Portfolio Manager.

Each router handles a specific domain:
- valuation: Summaries, fund breakdown, history and snapshots
- portfolios: Portfolio management (CRUD, archive)

valuation_router must be included before portfolios_router.
"""

from fundfolio.routers.portfolios import router as portfolios_router
from fundfolio.routers.valuation import router as valuation_router

__all__ = [
    "valuation_router",
    "portfolios_router",
]
