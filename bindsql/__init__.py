"""Synthesizes database access functions from declarative directives on repository classes."""

from bindsql.binding import bind, execute, query, query_one

__all__ = ["bind", "execute", "query", "query_one"]
