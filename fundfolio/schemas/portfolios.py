# fundfolio/schemas/portfolios.py
"""
Pydantic schemas for Portfolio validation.

These schemas define:
- What data clients must send (Create)
- What data clients can update (Update)
- What data the API returns (Response)

Validation layers:
- Field constraints: type, length
- Field validators: normalization (trim)
- Router: existence checks
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE SCHEMA
# =============================================================================

class PortfolioBase(BaseModel):
    """
    Base schema with fields common to Create and Response.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["Retirement", "Kids Savings", "Index Funds"],
        description="Name of the portfolio"
    )

    description: str | None = Field(
        default=None,
        max_length=500,
        description="Free-form description"
    )

    exclude_from_overview: bool = Field(
        default=False,
        description="Leave this portfolio out of overview summaries and history"
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization)
    # =========================================================================

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Normalize name: trim whitespace, reject blank."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class PortfolioCreate(PortfolioBase):
    """Schema for creating a new portfolio."""


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class PortfolioUpdate(BaseModel):
    """
    Schema for updating an existing portfolio.

    All fields are optional; the client only sends fields to update.
    Archiving has its own endpoints.
    """

    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="New name for the portfolio"
    )

    description: str | None = Field(
        default=None,
        max_length=500,
        description="New description"
    )

    exclude_from_overview: bool | None = Field(
        default=None,
        description="Include in or exclude from overview"
    )

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PortfolioResponse(PortfolioBase):
    """
    Schema for API responses.

    Includes all database-generated fields.
    """

    id: int = Field(..., description="Unique identifier")
    is_archived: bool = Field(..., description="Archived portfolios are read-only history")
    created_at: datetime = Field(..., description="When the portfolio was created")
    updated_at: datetime = Field(..., description="When the portfolio was last modified")

    model_config = ConfigDict(from_attributes=True)


class PortfolioListResponse(BaseModel):
    """Response schema for the portfolio list."""

    items: list[PortfolioResponse] = Field(..., description="Portfolios, newest first")
    total: int = Field(..., description="Number of portfolios returned")
