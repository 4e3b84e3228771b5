# fundfolio/utils/sql.py
"""
SQL helpers.

Usage:
    from fundfolio.utils.sql import escape_like_pattern, contains_pattern

    stmt = stmt.where(Portfolio.name.ilike(contains_pattern(search), escape="\\"))
"""

LIKE_ESCAPE_CHAR = "\\"


def escape_like_pattern(value: str) -> str:
    """
    Escape LIKE wildcards so user input matches literally.

    Backslash is escaped first because it is the escape character itself.

    Example:
        >>> escape_like_pattern("50%_off")
        '50\\\\%\\\\_off'
    """
    return (
        value
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def contains_pattern(value: str) -> str:
    """Build a LIKE pattern matching any string that contains `value`."""
    return f"%{escape_like_pattern(value.strip())}%"
