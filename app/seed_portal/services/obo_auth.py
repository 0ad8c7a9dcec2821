"""
On-Behalf-Of (OBO) identity helper.

Extracts user identity from HTTP headers injected by the Databricks Apps
reverse proxy.  In production, ``x-forwarded-email`` and ``x-forwarded-user``
are set automatically by the SSO layer.  For local development these headers
will be absent and safe defaults are returned.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from seed_portal.services import storage
from seed_portal.utils.config import ADMIN_USERS


def get_user_identity(request: Request) -> dict[str, Any]:
    """Extract user identity from the forwarded request headers.

    Parameters
    ----------
    request:
        The incoming FastAPI ``Request`` object.

    Returns
    -------
    dict
        Keys: ``user_id``, ``user_email``, ``is_admin``.
    """
    user_email: str = request.headers.get("x-forwarded-email", "anonymous@seedfinancial.io")
    user_id: str = request.headers.get("x-forwarded-user", "anonymous")
    is_admin: bool = user_email.lower() in ADMIN_USERS

    return {
        "user_id": user_id,
        "user_email": user_email,
        "is_admin": is_admin,
    }


def require_admin(request: Request) -> dict[str, Any]:
    """Return the caller's identity, or raise 403 for non-admins."""
    identity = get_user_identity(request)
    if not identity["is_admin"]:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity


def resolve_sales_rep_id(request: Request, requested: int | None) -> int:
    """Decide which rep's records the caller may read.

    Admins may read any rep (``requested`` is mandatory for them).  Everyone
    else is limited to their own rep record, looked up by email.
    """
    identity = get_user_identity(request)
    if identity["is_admin"]:
        if requested is None:
            raise HTTPException(status_code=400, detail="sales_rep_id is required for admins")
        return requested

    own_id = storage.get_sales_rep_id_by_email(identity["user_email"])
    if own_id is None:
        raise HTTPException(status_code=403, detail="No sales rep record for this user")
    if requested is not None and requested != own_id:
        raise HTTPException(status_code=403, detail="Cannot view another rep's records")
    return own_id
