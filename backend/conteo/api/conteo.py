# backend/conteo/api/conteo.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from conteo.dependencies import get_db, get_engine
from conteo.schemas.catalog import SympathizerCreate
from conteo.schemas.tally import (
    AsistenteInfo,
    AttendeesIn,
    BulkCounts,
    CounterValue,
    NamedAttendee,
    TallyPatch,
    TallyView,
    VisitingBrotherIn,
)
from conteo.services import catalog as catalog_svc
from conteo.services.tally import roster
from conteo.services.tally.categories import Category
from conteo.services.tally.clock import today_local
from conteo.services.tally.engine import ConteoEngine
from conteo.services.tally.errors import (
    ArchiveError,
    BaseAttendeeImmutableError,
    DecisionPendingError,
    EmptyNameError,
    InvalidTransitionError,
    RecordNotFoundError,
    SaveInProgressError,
    TallyError,
    UsherRequiredError,
)
from conteo.services.tally.orchestrator import HISTORIAL_PATH

router = APIRouter(prefix="/conteo", tags=["Conteo"])
logger = logging.getLogger(__name__)

PATCH_EXAMPLES = {
    "single_usher": {
        "summary": "Sunday service, one usher",
        "value": {"service_type": "dominical", "selected_ushers": ["Carlos"], "usher_choice": "Carlos"},
    },
    "several_ushers": {
        "summary": "Evangelism service, two ushers",
        "value": {
            "service_type": "evangelismo",
            "selected_ushers": ["Ana", "Luis"],
            "usher_choice": "otro",
            "usher_custom": "Ana, Luis",
        },
    },
}

BULK_EXAMPLES = {
    "door_sheet": {
        "summary": "Head counts from the door sheet",
        "value": {"counts": {"brothers": 12, "sisters": 15, "children": 6}},
    },
}


def _request_examples(examples):
    return {"requestBody": {"content": {"application/json": {"examples": examples}}}}


def _to_http(e: TallyError) -> HTTPException:
    if isinstance(e, (UsherRequiredError, EmptyNameError)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, (DecisionPendingError, SaveInProgressError,
                      InvalidTransitionError, BaseAttendeeImmutableError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, RecordNotFoundError):
        return HTTPException(status_code=404, detail={"message": str(e), "redirect": HISTORIAL_PATH})
    if isinstance(e, ArchiveError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _enter_edit(engine: ConteoEngine, record_id: str) -> Dict[str, Any]:
    try:
        session = engine.orchestrator.enter_edit(record_id)
    except ArchiveError as e:
        logger.warning("enter_edit %s failed: %s", record_id, e)
        # Send the operator back to the history list instead of a half-loaded editor
        raise HTTPException(
            status_code=404 if isinstance(e, RecordNotFoundError) else 502,
            detail={"message": str(e), "redirect": HISTORIAL_PATH},
        )
    return {
        "message": "Datos cargados para edición",
        "record_id": session.record_id,
        "inconsistencies": session.inconsistencies,
        "view": engine.view().model_dump(mode="json"),
    }


# ─────────────────────────────────────────────────────────────────────────────
# State
# ─────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=TallyView)
def get_conteo(
    edit_id: Optional[str] = Query(None, alias="editId"),
    engine: ConteoEngine = Depends(get_engine),
) -> TallyView:
    """Current tally with totals. `?editId=` loads an archived record for editing."""
    state = engine.store.get_state()
    already_editing = state.is_edit_mode and state.editing_record_id == edit_id
    if edit_id and not already_editing:
        _enter_edit(engine, edit_id)
    return engine.view()


@router.patch("", response_model=TallyView, openapi_extra=_request_examples(PATCH_EXAMPLES))
def patch_conteo(payload: TallyPatch, engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    changes = payload.model_dump(exclude_unset=True)
    logger.info("patch_conteo fields=%s", list(changes.keys()))
    try:
        engine.store.update_conteo(changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return engine.view()


@router.post("/clear", response_model=TallyView)
def clear_conteo(engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.clear_day_data()
    return engine.view()


@router.post("/reset", response_model=TallyView)
def reset_conteo(engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.reset(today_local())
    return engine.view()


# ─────────────────────────────────────────────────────────────────────────────
# Manual counters
# ─────────────────────────────────────────────────────────────────────────────

@router.put("/counters/{category}", response_model=TallyView)
def set_counter(category: Category, payload: CounterValue,
                engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.set_counter(category, payload.value)
    return engine.view()


@router.post("/counters/{category}/increment", response_model=TallyView)
def increment_counter(category: Category, engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.increment(category)
    return engine.view()


@router.post("/counters/{category}/decrement", response_model=TallyView)
def decrement_counter(category: Category, engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.decrement(category)
    return engine.view()


@router.post("/bulk", response_model=TallyView, openapi_extra=_request_examples(BULK_EXAMPLES))
def bulk_count(payload: BulkCounts, engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    engine.store.apply_bulk_counts(payload.counts)
    return engine.view()


# ─────────────────────────────────────────────────────────────────────────────
# Named attendees
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/attendees/{category}", response_model=TallyView)
def add_attendees(category: Category, payload: AttendeesIn,
                  engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    roster.add_attendees(engine.store, category, payload.attendees)
    return engine.view()


@router.delete("/attendees/{category}/{attendee_id}", response_model=TallyView)
def remove_attendee(category: Category, attendee_id: str,
                    engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    roster.remove_attendee(engine.store, category, attendee_id)
    return engine.view()


@router.delete("/attendees/{category}", response_model=TallyView)
def clear_attendees(category: Category, engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    roster.clear_attendees(engine.store, category)
    return engine.view()


@router.post("/visiting-brothers", response_model=NamedAttendee, status_code=201)
def add_visiting_brother(payload: VisitingBrotherIn,
                         engine: ConteoEngine = Depends(get_engine)) -> NamedAttendee:
    try:
        return roster.add_visiting_brother(engine.store, payload.name, payload.church)
    except TallyError as e:
        raise _to_http(e)


@router.post("/sympathizers/new", response_model=NamedAttendee, status_code=201)
def add_new_sympathizer(
    payload: SympathizerCreate,
    db: Session = Depends(get_db),
    engine: ConteoEngine = Depends(get_engine),
) -> NamedAttendee:
    """Register a sympathizer in the catalog and count them in this session."""
    try:
        row = catalog_svc.create_sympathizer(db, payload)
    except TallyError as e:
        raise _to_http(e)
    person = NamedAttendee(
        id=row.id,
        name=row.name,
        phone=row.phone,
        notes=row.notes,
        registered_on=row.registered_on.isoformat() if row.registered_on else None,
    )
    roster.add_attendees(engine.store, Category.SYMPATHIZERS, [person])
    return person


@router.get("/asistentes", response_model=List[AsistenteInfo])
def list_asistentes(engine: ConteoEngine = Depends(get_engine)) -> List[AsistenteInfo]:
    state = engine.store.get_state()
    return roster.get_all_asistentes(state, state.base_snapshot)


@router.delete("/asistentes/{category}/{asistente_id}", response_model=TallyView)
def remove_asistente(category: Category, asistente_id: str,
                     engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    try:
        roster.remove_asistente(engine.store, asistente_id, category)
    except TallyError as e:
        raise _to_http(e)
    return engine.view()


# ─────────────────────────────────────────────────────────────────────────────
# Save / consecutive / edit
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/save")
def save_conteo(engine: ConteoEngine = Depends(get_engine)) -> Dict[str, Any]:
    try:
        result = engine.orchestrator.save()
    except TallyError as e:
        logger.info("save_conteo refused: %s", e)
        raise _to_http(e)
    return {
        "record_id": result.record_id,
        "created": result.created,
        "mode": result.mode.value,
        "awaiting_decision": result.awaiting_decision,
        "navigate_to": result.navigate_to,
        "message": result.message,
        "record": result.record.model_dump(mode="json"),
        "view": engine.view().model_dump(mode="json"),
    }


@router.post("/consecutive/continue", response_model=TallyView)
def continue_consecutive(engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    try:
        engine.orchestrator.continue_consecutive()
    except TallyError as e:
        raise _to_http(e)
    return engine.view()


@router.post("/consecutive/decline", response_model=TallyView)
def decline_consecutive(engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    try:
        engine.orchestrator.decline_consecutive()
    except TallyError as e:
        raise _to_http(e)
    return engine.view()


@router.post("/edit/{record_id}")
def enter_edit(record_id: str, engine: ConteoEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _enter_edit(engine, record_id)


@router.delete("/edit", response_model=TallyView)
def cancel_edit(engine: ConteoEngine = Depends(get_engine)) -> TallyView:
    try:
        engine.orchestrator.cancel_edit()
    except TallyError as e:
        raise _to_http(e)
    return engine.view()
