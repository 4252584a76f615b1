"""Datenmodell für eine Sektion (Klasse) (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class Section(BaseModel):
    """Repräsentiert eine Sektion, z.B. Jahrgang 11, ACAD, STEM, Sektion A."""

    section_id: str
    section_name: str                   # "A", "Rizal", ...
    grade_level: Optional[int] = None   # 11, 12
    track_code: Optional[str] = None    # "ACAD", "TVL"
    strand_code: Optional[str] = None   # "STEM", "HUMSS"

    @property
    def label(self) -> str:
        """Anzeigename, z.B. "Jg. 11 · ACAD · STEM · A"."""
        grade = self.grade_level if self.grade_level is not None else "—"
        return (f"Jg. {grade} · {self.track_code or '—'} · "
                f"{self.strand_code or '—'} · {self.section_name or '—'}")

    @property
    def is_schedulable(self) -> bool:
        """Platzhalter-Sektion "unclassified" bekommt keinen Stundenplan."""
        return self.section_name.strip().lower() != "unclassified"
