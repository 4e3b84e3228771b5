# fundfolio/utils/context.py
"""
Request-scoped context for fundfolio.

Holds the correlation ID of the request currently being served so that log
records emitted anywhere below the HTTP layer can be tied back to it.
contextvars keep the value isolated per request and carry it across
await points and threadpool hand-offs made by Starlette.

Usage:
    from fundfolio.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")      # middleware, on request entry
    get_correlation_id()               # anywhere, returns "abc-123"
"""

from contextvars import ContextVar, Token

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> Token:
    """
    Set the correlation ID for the current request.

    Returns:
        Token that can be passed to reset_correlation_id() to restore the
        previous value.
    """
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    _correlation_id_var.reset(token)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)
