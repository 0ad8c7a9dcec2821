"""
Configuration module for the Seed pricing portal backend.

All settings are configurable via environment variables with sensible defaults
for Databricks Apps deployment.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Unity Catalog
# ---------------------------------------------------------------------------
CATALOG_NAME: str = os.getenv("CATALOG_NAME", "seed_catalog")
SCHEMA_NAME: str = os.getenv("SCHEMA_NAME", "sales")


# Fully-qualified table helpers
def _fqn(table: str) -> str:
    """Return a fully-qualified three-level Unity Catalog table name."""
    return f"{CATALOG_NAME}.{SCHEMA_NAME}.{table}"


TABLE_SALES_REPS: str = _fqn("sales_reps")
TABLE_DEALS: str = _fqn("deals")
TABLE_COMMISSIONS: str = _fqn("commissions")
TABLE_MONTHLY_BONUSES: str = _fqn("monthly_bonuses")
TABLE_MILESTONE_BONUSES: str = _fqn("milestone_bonuses")

# Create missing tables on startup (off by default; DDL needs warehouse rights)
AUTO_CREATE_TABLES: bool = os.getenv("AUTO_CREATE_TABLES", "false").lower() in (
    "1",
    "true",
    "yes",
)

# ---------------------------------------------------------------------------
# SQL Warehouse
# ---------------------------------------------------------------------------
WAREHOUSE_ID: str = os.getenv("DATABRICKS_WAREHOUSE_ID", "your-warehouse-id")

# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------
CACHE_TTL: int = int(os.getenv("CACHE_TTL", "300"))  # seconds

# ---------------------------------------------------------------------------
# Databricks connection (local dev fallback)
# ---------------------------------------------------------------------------
DATABRICKS_HOST: str = os.getenv("DATABRICKS_HOST", "")
DATABRICKS_TOKEN: str = os.getenv("DATABRICKS_TOKEN", "")

# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------
ADMIN_USERS: list[str] = [
    email.strip().lower()
    for email in os.getenv("ADMIN_USERS", "admin@seedfinancial.io").split(",")
    if email.strip()
]

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_TITLE: str = "Seed Pricing Portal"
APP_VERSION: str = "1.0.0"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
