"""
Databricks client singleton.

Provides a single WorkspaceClient instance with SDK auto-auth for Databricks
Apps deployment and token fallback for local development.  Also exposes a
helper for parameterised SQL execution with in-memory caching of reads.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from enum import Enum
from typing import Any

from databricks.sdk import WorkspaceClient
from databricks.sdk.config import Config
from databricks.sdk.service.sql import StatementParameterListItem, StatementState

from seed_portal.utils.config import (
    CACHE_TTL,
    CATALOG_NAME,
    DATABRICKS_HOST,
    DATABRICKS_TOKEN,
    SCHEMA_NAME,
    WAREHOUSE_ID,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# In-memory query cache
# ---------------------------------------------------------------------------
_cache: dict[str, Any] = {}
_cache_time: dict[str, float] = {}


def _cache_get(key: str) -> Any | None:
    """Return cached value if still within TTL, else None."""
    if key in _cache and (time.time() - _cache_time.get(key, 0)) < CACHE_TTL:
        return _cache[key]
    return None


def _cache_set(key: str, value: Any) -> None:
    _cache[key] = value
    _cache_time[key] = time.time()


def invalidate_cache(prefix: str | None = None) -> None:
    """Clear all cached entries, or only those whose key starts with *prefix*."""
    if prefix is None:
        _cache.clear()
        _cache_time.clear()
    else:
        keys = [k for k in _cache if k.startswith(prefix)]
        for k in keys:
            _cache.pop(k, None)
            _cache_time.pop(k, None)


# ---------------------------------------------------------------------------
# Singleton client
# ---------------------------------------------------------------------------
_client: WorkspaceClient | None = None


def get_workspace_client() -> WorkspaceClient:
    """Return a cached WorkspaceClient (created on first call).

    In Databricks Apps the SDK auto-authenticates via the service principal
    bound to the app.  For local development, set DATABRICKS_HOST and
    DATABRICKS_TOKEN environment variables.
    """
    global _client
    if _client is not None:
        return _client

    if DATABRICKS_TOKEN:
        logger.info("Initializing WorkspaceClient with token (local dev mode)")
        _client = WorkspaceClient(
            host=DATABRICKS_HOST,
            token=DATABRICKS_TOKEN,
            config=Config(http_timeout_seconds=120),
        )
    else:
        logger.info("Initializing WorkspaceClient with SDK auto-auth")
        config = Config(http_timeout_seconds=120)
        _client = WorkspaceClient(config=config)

    return _client


# ---------------------------------------------------------------------------
# Parameter binding
# ---------------------------------------------------------------------------
def to_parameter(name: str, value: Any) -> StatementParameterListItem:
    """Convert a Python value into a typed named statement parameter.

    The Statement Execution API takes every value as a string plus an
    optional SQL type; ``None`` binds as SQL ``NULL``.
    """
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return StatementParameterListItem(name=name, value=None)
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return StatementParameterListItem(
            name=name, value="true" if value else "false", type="BOOLEAN"
        )
    if isinstance(value, int):
        return StatementParameterListItem(name=name, value=str(value), type="BIGINT")
    if isinstance(value, float):
        return StatementParameterListItem(
            name=name, value=f"{value:.4f}", type="DECIMAL(12,4)"
        )
    if isinstance(value, datetime):
        return StatementParameterListItem(
            name=name, value=value.isoformat(), type="TIMESTAMP"
        )
    if isinstance(value, date):
        return StatementParameterListItem(name=name, value=value.isoformat(), type="DATE")
    return StatementParameterListItem(name=name, value=str(value), type="STRING")


# ---------------------------------------------------------------------------
# SQL helper
# ---------------------------------------------------------------------------
def execute_sql(
    query: str,
    parameters: dict[str, Any] | None = None,
    *,
    cache_key: str | None = None,
    catalog: str | None = None,
    schema: str | None = None,
) -> list[dict[str, Any]]:
    """Execute a SQL statement via the Databricks SQL Statement Execution API.

    Parameters
    ----------
    query:
        The SQL statement.  Values are referenced as ``:name`` markers.
    parameters:
        Mapping of marker name -> Python value, bound via ``to_parameter``.
    cache_key:
        If provided the result is cached under this key for ``CACHE_TTL``
        seconds.  Subsequent calls with the same key skip execution.
    catalog / schema:
        Override the default catalog / schema for this execution.

    Returns
    -------
    list[dict]
        Each dict maps column name -> value for one row.
    """
    if cache_key:
        cached = _cache_get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

    bound = [to_parameter(k, v) for k, v in (parameters or {}).items()]

    w = get_workspace_client()
    response = w.statement_execution.execute_statement(
        warehouse_id=WAREHOUSE_ID,
        statement=query,
        parameters=bound or None,
        wait_timeout="30s",
        catalog=catalog or CATALOG_NAME,
        schema=schema or SCHEMA_NAME,
    )

    if response.status.state != StatementState.SUCCEEDED:
        error_msg = getattr(response.status, "error", None)
        raise RuntimeError(
            f"SQL execution failed ({response.status.state}): {error_msg}"
        )

    rows: list[dict[str, Any]] = []
    if response.manifest and response.manifest.schema and response.manifest.schema.columns:
        columns = [col.name for col in response.manifest.schema.columns]
        if response.result and response.result.data_array:
            for row in response.result.data_array:
                rows.append(dict(zip(columns, row)))

    if cache_key:
        _cache_set(cache_key, rows)
    return rows
