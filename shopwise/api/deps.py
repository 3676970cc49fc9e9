"""Shared request dependencies"""
from typing import Optional

from fastapi import Header, HTTPException

from shopwise.config import get_settings


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Owner of the rows being read or written: X-User-Id header, else the configured default."""
    user_id = (x_user_id or get_settings().default_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing X-User-Id header")
    return user_id
