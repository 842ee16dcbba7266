# backend/conteo/models/__init__.py
"""
Central model registry.

Import this once at startup (e.g., in main.py) so SQLAlchemy sees all mapped
classes before `Base.metadata` is used.
"""
from conteo.db import Base  # noqa: F401  re-export Base

from .attendance_record import AttendanceRecord  # noqa: F401
from .catalog import Member, Sympathizer, Usher  # noqa: F401
from .stored_value import StoredValue  # noqa: F401
