"""
Shared FastAPI dependency helpers.

`get_db` provides a SQLAlchemy session to each request and makes sure it is
closed afterward. `get_engine` hands out the process-wide tally engine that
`main.py` builds at startup; before returning it, the store is rolled over to
today if the process has been running across midnight.
"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from conteo.db import SessionLocal
from conteo.services.tally.clock import today_local
from conteo.services.tally.engine import ConteoEngine


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and close it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine(request: Request) -> ConteoEngine:
    """Return the tally engine attached to the running app."""
    engine: ConteoEngine = request.app.state.conteo
    engine.store.roll_over_if_stale(today_local())
    return engine
