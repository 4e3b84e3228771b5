# tests/utils/test_sql.py
"""
Tests for SQL utility functions.
"""

from fundfolio.utils.sql import contains_pattern, escape_like_pattern


class TestEscapeLikePattern:
    """Tests for escape_like_pattern function."""

    def test_escape_percent_wildcard(self):
        """Should escape % wildcard."""
        assert escape_like_pattern("test%value") == "test\\%value"

    def test_escape_underscore_wildcard(self):
        """Should escape _ wildcard."""
        assert escape_like_pattern("test_value") == "test\\_value"

    def test_escape_backslash(self):
        """Should escape backslash."""
        assert escape_like_pattern("test\\value") == "test\\\\value"

    def test_no_escape_needed(self):
        """Should return unchanged if no special characters."""
        assert escape_like_pattern("normalvalue") == "normalvalue"

    def test_empty_string(self):
        assert escape_like_pattern("") == ""

    def test_escape_order_matters(self):
        """Should escape backslash before wildcards to avoid double escaping."""
        # \% becomes \\\% (escaped backslash + escaped percent)
        assert escape_like_pattern("\\%") == "\\\\\\%"

    def test_real_world_example(self):
        """Test realistic portfolio names."""
        assert escape_like_pattern("100% Equity") == "100\\% Equity"
        assert escape_like_pattern("kids_fund") == "kids\\_fund"


class TestContainsPattern:
    """Tests for contains_pattern function."""

    def test_wraps_in_wildcards(self):
        assert contains_pattern("growth") == "%growth%"

    def test_strips_whitespace(self):
        assert contains_pattern("  growth ") == "%growth%"

    def test_escapes_user_wildcards(self):
        assert contains_pattern("50%") == "%50\\%%"
