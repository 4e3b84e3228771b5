# fundfolio/__init__.py
"""Fund portfolio valuation and history API."""

__version__ = "0.1.0"
