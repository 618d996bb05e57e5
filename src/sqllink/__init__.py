"""Linked tables: remote relational tables exposed as local engine tables."""
from sqllink.link import LinkDefinition, LinkedTable, SessionPool

__version__ = "0.1.0"

__all__ = ["LinkDefinition", "LinkedTable", "SessionPool", "__version__"]
