"""Functionality related to binding python functions to SQL statements and queries."""

from bindsql.binding.binder import bind
from bindsql.binding.directives import execute, query, query_one

__all__ = ["bind", "errors", "execute", "query", "query_one"]
