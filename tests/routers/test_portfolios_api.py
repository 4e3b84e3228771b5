# tests/routers/test_portfolios_api.py
"""
Integration tests for Portfolio API endpoints.

These tests verify full HTTP request/response cycles for:
- POST /portfolios/ (Create)
- GET /portfolios/ (List with filters)
- GET /portfolios/{id} (Read)
- PATCH /portfolios/{id} (Update)
- DELETE /portfolios/{id} (Delete)
- POST /portfolios/{id}/archive and /unarchive

Tests validate:
- Correct status codes
- Response structure matches schemas
- Error responses (404, 422)
"""

from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fundfolio.models import Portfolio, Transaction, TransactionType
from tests.conftest import (
    add_transaction,
    create_fund,
    create_portfolio,
    create_portfolio_fund,
)


# =============================================================================
# CREATE
# =============================================================================

class TestCreatePortfolio:
    """Tests for POST /portfolios/."""

    def test_create_portfolio_success(self, client: TestClient):
        """Creating a portfolio returns 201 and the stored fields."""
        response = client.post(
            "/portfolios/",
            json={"name": "Retirement", "description": "Long term"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] > 0
        assert data["name"] == "Retirement"
        assert data["description"] == "Long term"
        assert data["is_archived"] is False
        assert data["exclude_from_overview"] is False
        assert "created_at" in data

    def test_create_portfolio_trims_name(self, client: TestClient):
        """Whitespace around the name is removed."""
        response = client.post("/portfolios/", json={"name": "  Padded  "})

        assert response.status_code == 201
        assert response.json()["name"] == "Padded"

    def test_create_portfolio_blank_name_rejected(self, client: TestClient):
        """A whitespace-only name fails validation."""
        response = client.post("/portfolios/", json={"name": "   "})

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_create_portfolio_missing_name(self, client: TestClient):
        response = client.post("/portfolios/", json={})

        assert response.status_code == 422


# =============================================================================
# LIST
# =============================================================================

class TestListPortfolios:
    """Tests for GET /portfolios/."""

    def test_list_portfolios_empty(self, client: TestClient):
        response = client.get("/portfolios/")

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}

    def test_list_hides_archived_by_default(self, client: TestClient, db: Session):
        """Archived portfolios need include_archived=true."""
        create_portfolio(db, name="Open")
        create_portfolio(db, name="Closed", is_archived=True)

        default = client.get("/portfolios/").json()
        everything = client.get("/portfolios/", params={"include_archived": True}).json()

        assert [p["name"] for p in default["items"]] == ["Open"]
        assert {p["name"] for p in everything["items"]} == {"Open", "Closed"}

    def test_list_can_hide_excluded(self, client: TestClient, db: Session):
        create_portfolio(db, name="Shown")
        create_portfolio(db, name="Hidden", exclude_from_overview=True)

        data = client.get("/portfolios/", params={"include_excluded": False}).json()

        assert [p["name"] for p in data["items"]] == ["Shown"]

    def test_list_search_is_case_insensitive(self, client: TestClient, db: Session):
        create_portfolio(db, name="Kids Savings")
        create_portfolio(db, name="Retirement")

        data = client.get("/portfolios/", params={"search": "savings"}).json()

        assert [p["name"] for p in data["items"]] == ["Kids Savings"]

    def test_list_search_treats_wildcards_literally(self, client: TestClient, db: Session):
        """% in the search term matches a literal percent sign."""
        create_portfolio(db, name="100% Equity")
        create_portfolio(db, name="Bonds")

        data = client.get("/portfolios/", params={"search": "%"}).json()

        assert [p["name"] for p in data["items"]] == ["100% Equity"]


# =============================================================================
# READ / UPDATE / DELETE
# =============================================================================

class TestGetPortfolio:
    """Tests for GET /portfolios/{id}."""

    def test_get_portfolio_success(self, client: TestClient, db: Session):
        portfolio = create_portfolio(db, name="Mine")

        response = client.get(f"/portfolios/{portfolio.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Mine"

    def test_get_archived_portfolio(self, client: TestClient, db: Session):
        """Archived portfolios stay reachable by id."""
        portfolio = create_portfolio(db, is_archived=True)

        response = client.get(f"/portfolios/{portfolio.id}")

        assert response.status_code == 200
        assert response.json()["is_archived"] is True

    def test_get_portfolio_not_found(self, client: TestClient):
        response = client.get("/portfolios/99999")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"


class TestUpdatePortfolio:
    """Tests for PATCH /portfolios/{id}."""

    def test_update_portfolio_partial(self, client: TestClient, db: Session):
        """Only sent fields change."""
        portfolio = create_portfolio(db, name="Old", description="Keep me")

        response = client.patch(
            f"/portfolios/{portfolio.id}",
            json={"name": "New", "exclude_from_overview": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "New"
        assert data["description"] == "Keep me"
        assert data["exclude_from_overview"] is True

    def test_update_portfolio_not_found(self, client: TestClient):
        response = client.patch("/portfolios/99999", json={"name": "X"})

        assert response.status_code == 404


class TestDeletePortfolio:
    """Tests for DELETE /portfolios/{id}."""

    def test_delete_portfolio_cascades(self, client: TestClient, db: Session):
        """Deleting removes the portfolio and its transactions."""
        portfolio = create_portfolio(db)
        pf = create_portfolio_fund(db, portfolio, create_fund(db))
        add_transaction(db, pf, date(2024, 1, 2), TransactionType.BUY, "1", "10")

        response = client.delete(f"/portfolios/{portfolio.id}")

        assert response.status_code == 204
        assert db.get(Portfolio, portfolio.id) is None
        assert db.scalar(select(func.count()).select_from(Transaction)) == 0

    def test_delete_portfolio_not_found(self, client: TestClient):
        response = client.delete("/portfolios/99999")

        assert response.status_code == 404


# =============================================================================
# ARCHIVE
# =============================================================================

class TestArchivePortfolio:
    """Tests for archive / unarchive."""

    def test_archive_and_unarchive(self, client: TestClient, db: Session):
        portfolio = create_portfolio(db)

        archived = client.post(f"/portfolios/{portfolio.id}/archive")
        restored = client.post(f"/portfolios/{portfolio.id}/unarchive")

        assert archived.status_code == 200
        assert archived.json()["is_archived"] is True
        assert restored.json()["is_archived"] is False

    def test_archive_removes_from_overview(self, client: TestClient, db: Session):
        """An archived portfolio drops out of /portfolios/summary."""
        portfolio = create_portfolio(db)
        client.post(f"/portfolios/{portfolio.id}/archive")

        response = client.get("/portfolios/summary")

        assert response.json() == []

    def test_archive_not_found(self, client: TestClient):
        response = client.post("/portfolios/99999/archive")

        assert response.status_code == 404
