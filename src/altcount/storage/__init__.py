"""Collaborator contracts and DuckDB-backed implementations."""

from .base import CountStore, ProfileResolver, SignificanceStore, StudyScopeResolver
from .duckdb_store import (
    TABLE_COLUMNS,
    DuckDBCountStore,
    DuckDBProfileResolver,
    DuckDBSignificanceStore,
    DuckDBStudyScopeResolver,
    DuckDBTableLoader,
)

__all__ = [
    "CountStore",
    "ProfileResolver",
    "SignificanceStore",
    "StudyScopeResolver",
    "TABLE_COLUMNS",
    "DuckDBCountStore",
    "DuckDBProfileResolver",
    "DuckDBSignificanceStore",
    "DuckDBStudyScopeResolver",
    "DuckDBTableLoader",
]
