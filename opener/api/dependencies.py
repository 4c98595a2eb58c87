"""FastAPI dependency functions for routes."""

from typing import Optional

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """The user id verified upstream by the auth gateway. Raises 401 when missing."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
