# conteo/services/tally/errors.py
"""Errors raised by the tally engine.

Validation errors never trigger I/O or a mode change; the API layer maps
them to 4xx responses. Archive errors leave the engine in its pre-operation
mode so the operator can retry by hand.
"""
from __future__ import annotations


class TallyError(Exception):
    """Base class for engine errors."""


class UsherRequiredError(TallyError, ValueError):
    def __init__(self) -> None:
        super().__init__("Por favor seleccione al menos un ujier")


class EmptyNameError(TallyError, ValueError):
    def __init__(self, field: str = "nombre") -> None:
        super().__init__(f"El campo '{field}' es obligatorio")
        self.field = field


class SaveInProgressError(TallyError):
    def __init__(self) -> None:
        super().__init__("Ya hay un guardado en curso")


class DecisionPendingError(TallyError):
    """A base service was saved; continue/decline must be answered first."""

    def __init__(self) -> None:
        super().__init__("Debe decidir si continúa con el servicio consecutivo")


class InvalidTransitionError(TallyError):
    def __init__(self, action: str, mode: str) -> None:
        super().__init__(f"Cannot {action} while in mode '{mode}'")
        self.action = action
        self.mode = mode


class BaseAttendeeImmutableError(TallyError):
    def __init__(self, asistente_id: str) -> None:
        super().__init__(
            f"{asistente_id!r} belongs to the base service; edit that record instead"
        )
        self.asistente_id = asistente_id


class ArchiveError(TallyError):
    """Create/update/fetch against the archive failed."""


class RecordNotFoundError(ArchiveError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Attendance record {record_id!r} not found")
        self.record_id = record_id
