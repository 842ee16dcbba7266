# conteo/api/system.py
from __future__ import annotations

import os
from datetime import datetime

from fastapi import APIRouter
from sqlalchemy import text

from conteo.db import engine
from conteo.services.tally.clock import today_local

router = APIRouter(tags=["ops"])


def _db_driver_from_url(url: str | None) -> str | None:
    if not url or "://" not in url:
        return None
    scheme = url.split("://", 1)[0]  # e.g., "postgresql+psycopg2"
    if "+" in scheme:
        return scheme.split("+", 1)[1]  # "psycopg2"
    return scheme  # fallback


@router.get("/health")
def health():
    """Liveness check with a lightweight DB probe and the tally's notion of today."""
    db = {"status": "skip", "driver": _db_driver_from_url(str(engine.url))}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db["status"] = "ok"
    except Exception as e:
        db["status"] = f"error: {type(e).__name__}"

    return {
        "status": "ok",
        "time": {"tz": os.getenv("TZ"), "now": datetime.now().isoformat(), "today": today_local().isoformat()},
        "db": db,
    }


@router.get("/version")
def version():
    """Minimal runtime info; confirms DB driver for the UI."""
    return {
        "app": "Conteo Backend",
        "db_driver": _db_driver_from_url(str(engine.url)),
        "tz": os.getenv("TZ"),
    }
