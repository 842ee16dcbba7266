# conteo/schemas/catalog.py
from __future__ import annotations

from datetime import date as _date
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MemberRead(BaseModel):
    id: str
    name: str
    category: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SympathizerCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    registered_on: Optional[_date] = None


class SympathizerRead(SympathizerCreate):
    id: str

    model_config = ConfigDict(from_attributes=True)
