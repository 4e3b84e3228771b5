# fundfolio/routers/portfolios.py
"""
Portfolio management endpoints.

Provides CRUD operations for portfolios plus archive / unarchive.
Archived portfolios remain readable by id but drop out of overview
summaries and the all-portfolio history.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fundfolio.database import get_db
from fundfolio.middleware import limiter, RATE_LIMIT_WRITE
from fundfolio.models import Portfolio
from fundfolio.schemas.portfolios import (
    PortfolioCreate,
    PortfolioUpdate,
    PortfolioResponse,
    PortfolioListResponse,
)
from fundfolio.utils.sql import contains_pattern, LIKE_ESCAPE_CHAR

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_portfolio_or_404(db: Session, portfolio_id: int) -> Portfolio:
    """
    Fetch a portfolio by ID or raise 404 if not found.
    """
    portfolio = db.get(Portfolio, portfolio_id)

    if portfolio is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Portfolio with id {portfolio_id} not found"
        )

    return portfolio


def _set_archived(db: Session, portfolio_id: int, archived: bool) -> Portfolio:
    db_portfolio = get_portfolio_or_404(db, portfolio_id)
    db_portfolio.is_archived = archived
    db.commit()
    db.refresh(db_portfolio)

    logger.info(f"Portfolio {portfolio_id} {'archived' if archived else 'unarchived'}")
    return db_portfolio


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/",
    response_model=PortfolioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new portfolio",
    response_description="The created portfolio"
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_portfolio(
        request: Request,  # Required for rate limiting
        portfolio: PortfolioCreate,
        db: Session = Depends(get_db)
) -> Portfolio:
    """
    Create a new portfolio.

    - **name**: Display name for the portfolio
    - **description**: Optional free-form text
    - **exclude_from_overview**: Keep it out of overview summaries and history
    """
    db_portfolio = Portfolio(**portfolio.model_dump())

    db.add(db_portfolio)
    db.commit()
    db.refresh(db_portfolio)

    logger.info(f"Created portfolio {db_portfolio.id} ({db_portfolio.name!r})")
    return db_portfolio


@router.get(
    "/",
    response_model=PortfolioListResponse,
    summary="List portfolios",
    response_description="List of portfolios matching the filters"
)
def list_portfolios(
        db: Session = Depends(get_db),
        include_archived: bool = Query(
            default=False,
            description="Also return archived portfolios"
        ),
        include_excluded: bool = Query(
            default=True,
            description="Also return portfolios excluded from overview"
        ),
        search: str | None = Query(
            default=None,
            max_length=100,
            description="Search in portfolio name"
        ),
) -> PortfolioListResponse:
    """
    Retrieve portfolios with optional filtering, newest first.

    Supports filtering by:
    - **include_archived**: Archived portfolios are hidden unless set
    - **include_excluded**: Set to false to hide exclude-from-overview portfolios
    - **search**: Partial, case-insensitive match on portfolio name
    """
    query = select(Portfolio)

    if not include_archived:
        query = query.where(Portfolio.is_archived.is_(False))

    if not include_excluded:
        query = query.where(Portfolio.exclude_from_overview.is_(False))

    if search is not None and search.strip():
        query = query.where(Portfolio.name.ilike(contains_pattern(search), escape=LIKE_ESCAPE_CHAR))

    # Order by creation date (newest first), id breaks same-instant ties
    query = query.order_by(Portfolio.created_at.desc(), Portfolio.id.desc())

    portfolios = list(db.scalars(query).all())

    return PortfolioListResponse(items=portfolios, total=len(portfolios))


@router.get(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Get a portfolio by ID",
    response_description="The requested portfolio"
)
def get_portfolio(
        portfolio_id: int,
        db: Session = Depends(get_db)
) -> Portfolio:
    """
    Retrieve a single portfolio by its ID, archived or not.

    Raises **404** if the portfolio does not exist.
    """
    return get_portfolio_or_404(db, portfolio_id)


@router.patch(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Update a portfolio",
    response_description="The updated portfolio"
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_portfolio(
        request: Request,  # Required for rate limiting
        portfolio_id: int,
        portfolio_update: PortfolioUpdate,
        db: Session = Depends(get_db)
) -> Portfolio:
    """
    Update an existing portfolio (partial update).

    Only the provided fields will be updated.
    Omitted fields remain unchanged.

    Raises **404** if the portfolio does not exist.
    """
    db_portfolio = get_portfolio_or_404(db, portfolio_id)

    update_data = portfolio_update.model_dump(exclude_unset=True)

    # Apply updates
    for field, value in update_data.items():
        setattr(db_portfolio, field, value)

    db.commit()
    db.refresh(db_portfolio)

    return db_portfolio


@router.delete(
    "/{portfolio_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a portfolio",
)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_portfolio(
        request: Request,  # Required for rate limiting
        portfolio_id: int,
        db: Session = Depends(get_db)
) -> None:
    """
    Delete a portfolio.

    **Warning:** This also deletes its fund links, transactions, dividends,
    realized gains and history snapshots. This action cannot be undone.

    Raises **404** if the portfolio does not exist.
    """
    db_portfolio = get_portfolio_or_404(db, portfolio_id)

    db.delete(db_portfolio)
    db.commit()

    logger.info(f"Deleted portfolio {portfolio_id}")
    return None


@router.post(
    "/{portfolio_id}/archive",
    response_model=PortfolioResponse,
    summary="Archive a portfolio",
    response_description="The archived portfolio"
)
@limiter.limit(RATE_LIMIT_WRITE)
def archive_portfolio(
        request: Request,  # Required for rate limiting
        portfolio_id: int,
        db: Session = Depends(get_db)
) -> Portfolio:
    """
    Archive a portfolio.

    The portfolio and its history stay available by id; it is left out of
    overview summaries and the all-portfolio history.

    Raises **404** if the portfolio does not exist.
    """
    return _set_archived(db, portfolio_id, True)


@router.post(
    "/{portfolio_id}/unarchive",
    response_model=PortfolioResponse,
    summary="Unarchive a portfolio",
    response_description="The restored portfolio"
)
@limiter.limit(RATE_LIMIT_WRITE)
def unarchive_portfolio(
        request: Request,  # Required for rate limiting
        portfolio_id: int,
        db: Session = Depends(get_db)
) -> Portfolio:
    """
    Restore an archived portfolio to the overview.

    Raises **404** if the portfolio does not exist.
    """
    return _set_archived(db, portfolio_id, False)
