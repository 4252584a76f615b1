"""ReferenceData: Stammdaten (Schuljahre, Terms, Sektionen, Fächer, Lehrkräfte).

Die Stammdaten gehören der Datenbank; für eine Konfliktprüfung werden sie
als unveränderliche Nachschlagetabellen behandelt.
"""

from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.school_year import SchoolYear, Term
from models.section import Section
from models.subject import Subject
from models.teacher import Teacher


class ReferenceData(BaseModel):
    """Vollständiger Stammdatensatz mit Label-Lookups für die Anzeige."""

    school_years: list[SchoolYear] = []
    terms: list[Term] = []
    sections: list[Section] = []
    subjects: list[Subject] = []
    teachers: list[Teacher] = []

    # ─── Lookups ───

    def get_section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.section_id == section_id), None)

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self.subjects if s.subject_id == subject_id), None)

    def get_teacher(self, teacher_id: Optional[str]) -> Optional[Teacher]:
        if teacher_id is None:
            return None
        return next((t for t in self.teachers if t.teacher_id == teacher_id), None)

    def section_label(self, section_id: str) -> str:
        """Anzeigename einer Sektion; unbekannte IDs werden unverändert gezeigt."""
        section = self.get_section(section_id)
        return section.label if section else section_id

    def section_labels(self) -> dict[str, str]:
        return {s.section_id: s.label for s in self.sections}

    def subject_label(self, subject_id: str) -> str:
        subject = self.get_subject(subject_id)
        return subject.label if subject else subject_id

    def teacher_name(self, teacher_id: Optional[str]) -> str:
        if teacher_id is None:
            return "—"
        teacher = self.get_teacher(teacher_id)
        return teacher.display_name if teacher else teacher_id

    # ─── Filter ───

    def active_school_year(self) -> Optional[SchoolYear]:
        """Aktives Schuljahr mit dem jüngsten Startdatum (None wenn keins aktiv)."""
        active = [sy for sy in self.school_years if sy.is_active]
        if not active:
            return None
        return max(active, key=lambda sy: sy.start_date or date.min)

    def subjects_for_section(self, section_id: str) -> list[Subject]:
        """Fächer, die für Jahrgang + Strand der Sektion angeboten werden."""
        section = self.get_section(section_id)
        if section is None:
            return list(self.subjects)
        return [
            s for s in self.subjects
            if s.is_offered_for(section.grade_level, section.strand_code)
        ]

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den Stammdatensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "ReferenceData":
        """Lädt einen Stammdatensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
