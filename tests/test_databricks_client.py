"""
Tests for SQL parameter binding and the cached statement helper.
"""

from __future__ import annotations

import os
import sys
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from databricks.sdk.service.sql import StatementState  # noqa: E402

from seed_portal.models import CommissionType  # noqa: E402
from seed_portal.utils import databricks_client  # noqa: E402
from seed_portal.utils.databricks_client import (  # noqa: E402
    execute_sql,
    invalidate_cache,
    to_parameter,
)


def _response(state=StatementState.SUCCEEDED, columns=(), data=()):
    response = MagicMock()
    response.status.state = state
    cols = []
    for name in columns:
        col = MagicMock()
        col.name = name
        cols.append(col)
    response.manifest.schema.columns = cols
    response.result.data_array = [list(row) for row in data]
    return response


@pytest.fixture()
def workspace():
    invalidate_cache()
    client = MagicMock()
    with patch.object(databricks_client, "get_workspace_client", return_value=client):
        yield client
    invalidate_cache()


class TestToParameter:
    @pytest.mark.parametrize(
        "value, expected_value, expected_type",
        [
            (True, "true", "BOOLEAN"),
            (42, "42", "BIGINT"),
            (0.4, "0.4000", "DECIMAL(12,4)"),
            (date(2024, 2, 1), "2024-02-01", "DATE"),
            (datetime(2024, 2, 1, 9, 30), "2024-02-01T09:30:00", "TIMESTAMP"),
            ("Acme", "Acme", "STRING"),
            (CommissionType.RESIDUAL, "residual", "STRING"),
        ],
    )
    def test_typed_values(self, value, expected_value, expected_type):
        param = to_parameter("p", value)
        assert param.name == "p"
        assert param.value == expected_value
        assert param.type == expected_type

    def test_none_binds_as_null(self):
        param = to_parameter("company_name", None)
        assert param.value is None


class TestExecuteSql:
    def test_rows_become_dicts(self, workspace):
        workspace.statement_execution.execute_statement.return_value = _response(
            columns=("sales_rep_id", "email"),
            data=[("7", "rep@seedfinancial.io")],
        )

        rows = execute_sql("SELECT sales_rep_id, email FROM reps")
        assert rows == [{"sales_rep_id": "7", "email": "rep@seedfinancial.io"}]

    def test_parameters_are_bound(self, workspace):
        workspace.statement_execution.execute_statement.return_value = _response()

        execute_sql("SELECT 1 WHERE x = :rep", {"rep": 7})

        kwargs = workspace.statement_execution.execute_statement.call_args.kwargs
        assert [(p.name, p.value, p.type) for p in kwargs["parameters"]] == [
            ("rep", "7", "BIGINT")
        ]

    def test_failed_statement_raises(self, workspace):
        workspace.statement_execution.execute_statement.return_value = _response(
            state=StatementState.FAILED
        )
        with pytest.raises(RuntimeError):
            execute_sql("SELECT broken")

    def test_cached_reads_and_invalidation(self, workspace):
        execute_statement = workspace.statement_execution.execute_statement
        execute_statement.return_value = _response(columns=("n",), data=[("1",)])

        execute_sql("SELECT n", cache_key="commissions:7")
        execute_sql("SELECT n", cache_key="commissions:7")
        assert execute_statement.call_count == 1

        invalidate_cache("commissions:7")
        execute_sql("SELECT n", cache_key="commissions:7")
        assert execute_statement.call_count == 2
