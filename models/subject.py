"""Datenmodell für ein Unterrichtsfach (Pydantic v2)."""

from typing import Optional
from pydantic import BaseModel


class Subject(BaseModel):
    """Repräsentiert ein Unterrichtsfach."""

    subject_id: str
    subject_code: str = ""
    subject_title: str
    grade_level: Optional[int] = None   # None = für alle Jahrgänge
    strand_code: Optional[str] = None   # None = für alle Strands

    @property
    def label(self) -> str:
        return f"{self.subject_code} — {self.subject_title}" if self.subject_code else self.subject_title

    def is_offered_for(self, grade_level: Optional[int], strand_code: Optional[str]) -> bool:
        """True wenn das Fach für Jahrgang/Strand einer Sektion in Frage kommt."""
        grade_ok = self.grade_level is None or self.grade_level == grade_level
        strand_ok = self.strand_code is None or self.strand_code == strand_code
        return grade_ok and strand_ok
