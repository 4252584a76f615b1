"""Datenmodelle für Schuljahr und Halbjahr/Term (Pydantic v2)."""

from datetime import date
from typing import Optional

from pydantic import BaseModel


class SchoolYear(BaseModel):
    """Ein Schuljahr, z.B. "2025-2026"."""

    school_year_id: str
    sy_code: str
    status: str = "Active"          # "Active" / "Closed" / ...
    start_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() == "active"


class Term(BaseModel):
    """Ein Abschnitt des Schuljahres (Semester, Quartal)."""

    term_id: str
    term_code: str
    description: Optional[str] = None
