# backend/conteo/api/catalog.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from conteo.dependencies import get_db
from conteo.schemas.catalog import MemberRead, SympathizerCreate, SympathizerRead
from conteo.services import catalog as svc
from conteo.services.tally.categories import (
    BASE_SERVICE_TYPES,
    CATEGORY_SPECS,
    OTHER_SERVICE,
    SERVICES,
    Category,
    label_for,
)
from conteo.services.tally.errors import EmptyNameError

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get("/ushers", response_model=List[str])
def active_ushers(db: Session = Depends(get_db)) -> List[str]:
    return svc.active_usher_names(db)


@router.get("/members", response_model=List[MemberRead])
def list_members(category: Optional[Category] = None, db: Session = Depends(get_db)):
    return svc.list_members(db, category)


@router.get("/sympathizers", response_model=List[SympathizerRead])
def list_sympathizers(db: Session = Depends(get_db)):
    return svc.list_sympathizers(db)


@router.post("/sympathizers", response_model=SympathizerRead, status_code=201)
def create_sympathizer(data: SympathizerCreate, db: Session = Depends(get_db)):
    try:
        return svc.create_sympathizer(db, data)
    except EmptyNameError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/services")
def list_services() -> List[Dict[str, Any]]:
    """Service types for the selector; `otro` lets the operator type one by hand."""
    out: List[Dict[str, Any]] = [
        {**s, "base": s["value"] in BASE_SERVICE_TYPES} for s in SERVICES
    ]
    out.append({"value": OTHER_SERVICE, "label": "Otro", "base": False})
    return out


@router.get("/categories")
def list_categories() -> List[Dict[str, Any]]:
    return [
        {
            "value": spec.category.value,
            "label": label_for(spec.category),
            "roster_kind": spec.roster_kind.value,
            "member_category": spec.member_category,
        }
        for spec in CATEGORY_SPECS
    ]
