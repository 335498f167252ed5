# routes_root.py
"""
Root / basic endpoints (health, keep-alive ping).
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.deps import get_database
from db import Database

router = APIRouter(tags=["health"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
def read_root():
    """
    Simple landing endpoint; never touches the database.
    """
    return {"status": "OK", "service": "Stash Backend API", "timestamp": _now_iso()}


@router.get("/ping")
def ping():
    return {"status": "OK", "timestamp": _now_iso()}


@router.get("/api/health")
def health(database: Database = Depends(get_database)):
    """
    Full health check including database reachability.
    """
    return {
        "status": "OK",
        "database": "connected" if database.ping() else "disconnected",
        "timestamp": _now_iso(),
    }
