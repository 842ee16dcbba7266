# conteo/services/catalog.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from conteo.models.catalog import Member, Sympathizer, Usher
from conteo.schemas.catalog import SympathizerCreate
from conteo.services.tally.categories import Category, spec_for
from conteo.services.tally.errors import EmptyNameError
from conteo.services.tally.ushers import active_ushers


def list_members(db: Session, category: Optional[Category] = None) -> List[Member]:
    """Members selectable for a tally category (set-apart brothers: everyone)."""
    stmt = select(Member).order_by(Member.name)
    if category is not None:
        sub = spec_for(category).member_category
        if sub:
            stmt = stmt.where(Member.category == sub)
    return list(db.execute(stmt).scalars().all())


def list_sympathizers(db: Session) -> List[Sympathizer]:
    return list(db.execute(select(Sympathizer).order_by(Sympathizer.name)).scalars().all())


def create_sympathizer(db: Session, data: SympathizerCreate) -> Sympathizer:
    name = (data.name or "").strip()
    if not name:
        raise EmptyNameError("name")
    row = Sympathizer(
        name=name,
        phone=data.phone,
        notes=data.notes,
        registered_on=data.registered_on or date.today(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def active_usher_names(db: Session) -> List[str]:
    return active_ushers(db.execute(select(Usher)).scalars().all())
