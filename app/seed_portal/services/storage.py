"""
Unity Catalog storage for deals, commissions and bonuses.

Every write that must happen at most once (commission line items, monthly
bonuses, milestone bonuses) is a ``MERGE ... WHEN NOT MATCHED THEN INSERT``
keyed on the record's natural key, so replays and concurrent evaluations
cannot create duplicates.  Reads go through ``execute_sql`` and are cached
per rep; writes invalidate the affected cache prefix.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from seed_portal.models import CommissionRecord, Deal, RepMetrics
from seed_portal.services.commission import MilestoneTier, MonthlyBonusTier
from seed_portal.utils.config import (
    TABLE_COMMISSIONS,
    TABLE_DEALS,
    TABLE_MILESTONE_BONUSES,
    TABLE_MONTHLY_BONUSES,
    TABLE_SALES_REPS,
)
from seed_portal.utils.databricks_client import execute_sql, invalidate_cache

logger = logging.getLogger(__name__)

_DDL = [
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_SALES_REPS} (
        sales_rep_id BIGINT NOT NULL,
        email STRING NOT NULL,
        first_name STRING,
        last_name STRING,
        is_active BOOLEAN
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_DEALS} (
        deal_id BIGINT NOT NULL,
        sales_rep_id BIGINT NOT NULL,
        deal_name STRING,
        company_name STRING,
        monthly_value DECIMAL(10,2) NOT NULL,
        setup_fee DECIMAL(10,2) NOT NULL,
        close_date DATE,
        first_payment_date DATE,
        updated_at TIMESTAMP
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_COMMISSIONS} (
        deal_id BIGINT NOT NULL,
        sales_rep_id BIGINT NOT NULL,
        commission_type STRING NOT NULL,
        commission_rate DECIMAL(5,4) NOT NULL,
        base_amount DECIMAL(10,2) NOT NULL,
        commission_amount DECIMAL(10,2) NOT NULL,
        month_number INT NOT NULL,
        payment_month DATE NOT NULL,
        status STRING NOT NULL,
        created_at TIMESTAMP
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_MONTHLY_BONUSES} (
        sales_rep_id BIGINT NOT NULL,
        bonus_month DATE NOT NULL,
        clients_closed INT NOT NULL,
        bonus_type STRING NOT NULL,
        bonus_amount DECIMAL(10,2) NOT NULL,
        reward_chosen STRING,
        status STRING NOT NULL,
        created_at TIMESTAMP
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_MILESTONE_BONUSES} (
        sales_rep_id BIGINT NOT NULL,
        milestone_type STRING NOT NULL,
        clients_at_milestone INT NOT NULL,
        bonus_amount DECIMAL(10,2) NOT NULL,
        equity_offered BOOLEAN NOT NULL,
        achieved_date DATE NOT NULL,
        status STRING NOT NULL,
        created_at TIMESTAMP
    )
    """,
]


def ensure_tables() -> None:
    """Create any missing tables."""
    for statement in _DDL:
        execute_sql(statement)
    logger.info("Storage tables verified")


def _inserted_count(rows: list[dict[str, Any]]) -> int:
    """Read ``num_inserted_rows`` from a MERGE result."""
    if not rows:
        return 0
    return int(rows[0].get("num_inserted_rows") or 0)


# ---------------------------------------------------------------------------
# Sales reps
# ---------------------------------------------------------------------------
def get_sales_rep_id_by_email(email: str) -> int | None:
    """Resolve the signed-in user's rep id, or None if they are not a rep."""
    rows = execute_sql(
        f"""
        SELECT sales_rep_id
        FROM {TABLE_SALES_REPS}
        WHERE lower(email) = lower(:email)
        LIMIT 1
        """,
        {"email": email},
        cache_key=f"rep:email:{email.lower()}",
    )
    if not rows:
        return None
    return int(rows[0]["sales_rep_id"])


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------
def upsert_deal(deal: Deal) -> None:
    """Insert *deal*, or apply an administrative correction to it."""
    execute_sql(
        f"""
        MERGE INTO {TABLE_DEALS} AS t
        USING (
            SELECT
                :deal_id            AS deal_id,
                :sales_rep_id       AS sales_rep_id,
                :deal_name          AS deal_name,
                :company_name       AS company_name,
                :monthly_value      AS monthly_value,
                :setup_fee          AS setup_fee,
                :close_date         AS close_date,
                :first_payment_date AS first_payment_date
        ) AS s
        ON t.deal_id = s.deal_id
        WHEN MATCHED THEN UPDATE SET
            sales_rep_id = s.sales_rep_id,
            deal_name = s.deal_name,
            company_name = s.company_name,
            monthly_value = s.monthly_value,
            setup_fee = s.setup_fee,
            close_date = s.close_date,
            first_payment_date = s.first_payment_date,
            updated_at = current_timestamp()
        WHEN NOT MATCHED THEN INSERT
            (deal_id, sales_rep_id, deal_name, company_name, monthly_value,
             setup_fee, close_date, first_payment_date, updated_at)
        VALUES
            (s.deal_id, s.sales_rep_id, s.deal_name, s.company_name,
             s.monthly_value, s.setup_fee, s.close_date, s.first_payment_date,
             current_timestamp())
        """,
        deal.model_dump(),
    )


def get_rep_metrics(month: date, sales_rep_id: int | None = None) -> list[RepMetrics]:
    """Closed-client counts per rep for *month* and all time.

    A deal counts in the month of its close date, falling back to its first
    payment date when no close date was synced.
    """
    rep_filter = "WHERE d.sales_rep_id = :sales_rep_id" if sales_rep_id is not None else ""
    params: dict[str, Any] = {"month": month}
    if sales_rep_id is not None:
        params["sales_rep_id"] = sales_rep_id

    rows = execute_sql(
        f"""
        SELECT
            d.sales_rep_id,
            concat_ws(' ', first(r.first_name), first(r.last_name)) AS sales_rep_name,
            COUNT_IF(
                trunc(coalesce(d.close_date, d.first_payment_date), 'MM') = :month
            ) AS clients_closed_this_month,
            COUNT(*) AS total_clients_all_time
        FROM {TABLE_DEALS} d
        LEFT JOIN {TABLE_SALES_REPS} r ON r.sales_rep_id = d.sales_rep_id
        {rep_filter}
        GROUP BY d.sales_rep_id
        """,
        params,
    )
    return [
        RepMetrics(
            sales_rep_id=int(row["sales_rep_id"]),
            sales_rep_name=row.get("sales_rep_name") or "",
            clients_closed_this_month=int(row.get("clients_closed_this_month") or 0),
            total_clients_all_time=int(row.get("total_clients_all_time") or 0),
        )
        for row in rows
    ]


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------
def insert_commission_records(records: list[CommissionRecord]) -> int:
    """Insert commission line items not already present.

    Line items are unique on ``(deal_id, commission_type, month_number)``.
    Returns the number of rows actually inserted.
    """
    if not records:
        return 0

    params: dict[str, Any] = {}
    value_rows: list[str] = []
    for i, record in enumerate(records):
        data = record.model_dump(mode="python")
        data["commission_type"] = record.commission_type.value
        for key, value in data.items():
            params[f"{key}_{i}"] = value
        value_rows.append(
            f"(:deal_id_{i}, :sales_rep_id_{i}, :commission_type_{i}, "
            f":commission_rate_{i}, :base_amount_{i}, :commission_amount_{i}, "
            f":month_number_{i}, :payment_month_{i})"
        )

    rows = execute_sql(
        f"""
        MERGE INTO {TABLE_COMMISSIONS} AS t
        USING (
            SELECT * FROM VALUES
                {", ".join(value_rows)}
            AS v(deal_id, sales_rep_id, commission_type, commission_rate,
                 base_amount, commission_amount, month_number, payment_month)
        ) AS s
        ON t.deal_id = s.deal_id
           AND t.commission_type = s.commission_type
           AND t.month_number = s.month_number
        WHEN NOT MATCHED THEN INSERT
            (deal_id, sales_rep_id, commission_type, commission_rate, base_amount,
             commission_amount, month_number, payment_month, status, created_at)
        VALUES
            (s.deal_id, s.sales_rep_id, s.commission_type, s.commission_rate,
             s.base_amount, s.commission_amount, s.month_number, s.payment_month,
             'pending', current_timestamp())
        """,
        params,
    )
    invalidate_cache(f"commissions:{records[0].sales_rep_id}")
    return _inserted_count(rows)


def get_commissions_by_rep(sales_rep_id: int) -> list[dict[str, Any]]:
    return execute_sql(
        f"""
        SELECT
            deal_id,
            sales_rep_id,
            commission_type,
            commission_rate,
            base_amount,
            commission_amount,
            commission_amount AS amount,
            month_number,
            payment_month,
            status
        FROM {TABLE_COMMISSIONS}
        WHERE sales_rep_id = :sales_rep_id
        ORDER BY payment_month, deal_id, month_number
        """,
        {"sales_rep_id": sales_rep_id},
        cache_key=f"commissions:{sales_rep_id}",
    )


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------
def award_monthly_bonus(
    sales_rep_id: int,
    month: date,
    clients_closed: int,
    tier: MonthlyBonusTier,
) -> bool:
    """Record a monthly bonus unless the rep already has one for *month*.

    Returns True when a new bonus row was written.
    """
    rows = execute_sql(
        f"""
        MERGE INTO {TABLE_MONTHLY_BONUSES} AS t
        USING (
            SELECT
                :sales_rep_id   AS sales_rep_id,
                :bonus_month    AS bonus_month,
                :clients_closed AS clients_closed,
                :bonus_type     AS bonus_type,
                :bonus_amount   AS bonus_amount
        ) AS s
        ON t.sales_rep_id = s.sales_rep_id AND t.bonus_month = s.bonus_month
        WHEN NOT MATCHED THEN INSERT
            (sales_rep_id, bonus_month, clients_closed, bonus_type, bonus_amount,
             status, created_at)
        VALUES
            (s.sales_rep_id, s.bonus_month, s.clients_closed, s.bonus_type,
             s.bonus_amount, 'pending', current_timestamp())
        """,
        {
            "sales_rep_id": sales_rep_id,
            "bonus_month": month,
            "clients_closed": clients_closed,
            "bonus_type": tier.name,
            "bonus_amount": float(tier.amount),
        },
    )
    invalidate_cache(f"bonuses:{sales_rep_id}")
    return _inserted_count(rows) > 0


def award_milestone_bonus(
    sales_rep_id: int,
    total_clients: int,
    tier: MilestoneTier,
    achieved_date: date,
) -> bool:
    """Record a milestone bonus unless the rep already holds that tier.

    Returns True when a new bonus row was written.
    """
    rows = execute_sql(
        f"""
        MERGE INTO {TABLE_MILESTONE_BONUSES} AS t
        USING (
            SELECT
                :sales_rep_id   AS sales_rep_id,
                :milestone_type AS milestone_type,
                :clients        AS clients_at_milestone,
                :bonus_amount   AS bonus_amount,
                :equity_offered AS equity_offered,
                :achieved_date  AS achieved_date
        ) AS s
        ON t.sales_rep_id = s.sales_rep_id AND t.milestone_type = s.milestone_type
        WHEN NOT MATCHED THEN INSERT
            (sales_rep_id, milestone_type, clients_at_milestone, bonus_amount,
             equity_offered, achieved_date, status, created_at)
        VALUES
            (s.sales_rep_id, s.milestone_type, s.clients_at_milestone,
             s.bonus_amount, s.equity_offered, s.achieved_date, 'pending',
             current_timestamp())
        """,
        {
            "sales_rep_id": sales_rep_id,
            "milestone_type": tier.name,
            "clients": total_clients,
            "bonus_amount": float(tier.amount),
            "equity_offered": tier.equity_offer,
            "achieved_date": achieved_date,
        },
    )
    invalidate_cache(f"bonuses:{sales_rep_id}")
    return _inserted_count(rows) > 0


def get_monthly_bonuses_by_rep(sales_rep_id: int) -> list[dict[str, Any]]:
    return execute_sql(
        f"""
        SELECT sales_rep_id, bonus_month, clients_closed, bonus_type,
               bonus_amount, reward_chosen, status
        FROM {TABLE_MONTHLY_BONUSES}
        WHERE sales_rep_id = :sales_rep_id
        ORDER BY bonus_month DESC
        """,
        {"sales_rep_id": sales_rep_id},
        cache_key=f"bonuses:{sales_rep_id}:monthly",
    )


def get_milestone_bonuses_by_rep(sales_rep_id: int) -> list[dict[str, Any]]:
    return execute_sql(
        f"""
        SELECT sales_rep_id, milestone_type, clients_at_milestone, bonus_amount,
               equity_offered, achieved_date, status
        FROM {TABLE_MILESTONE_BONUSES}
        WHERE sales_rep_id = :sales_rep_id
        ORDER BY achieved_date DESC
        """,
        {"sales_rep_id": sales_rep_id},
        cache_key=f"bonuses:{sales_rep_id}:milestone",
    )


def get_pending_bonuses() -> list[dict[str, Any]]:
    """Unpaid monthly and milestone bonuses, newest first, for admin review."""
    monthly = execute_sql(
        f"""
        SELECT sales_rep_id, bonus_month, clients_closed, bonus_type,
               bonus_amount, status, created_at
        FROM {TABLE_MONTHLY_BONUSES}
        WHERE status = 'pending'
        ORDER BY created_at DESC
        """
    )
    milestone = execute_sql(
        f"""
        SELECT sales_rep_id, milestone_type, clients_at_milestone, bonus_amount,
               equity_offered, achieved_date, status, created_at
        FROM {TABLE_MILESTONE_BONUSES}
        WHERE status = 'pending'
        ORDER BY created_at DESC
        """
    )
    return [{**row, "bonus_category": "monthly"} for row in monthly] + [
        {**row, "bonus_category": "milestone"} for row in milestone
    ]
