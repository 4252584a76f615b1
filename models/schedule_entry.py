"""Datenmodell für einen Stundenplan-Eintrag einer Sektion (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, field_validator

from models.timeslot import TimeSlot


def normalize_room(room: Optional[str]) -> str:
    """Vergleichsschlüssel für Räume: getrimmt, case-folded, "" wenn leer."""
    return (room or "").strip().casefold()


def _clean_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class ScheduleEntry(BaseModel):
    """Ein wöchentlich wiederkehrender Slot einer Sektion.

    Identität: (school_year_id, term_id, section_id, day, period_number).
    Anzeigefelder (Fachtitel, Lehrername, Sektionsname) liefert ReferenceData.
    """

    schedule_id: Optional[int] = None   # None vor dem Einfügen
    school_year_id: str
    term_id: str
    section_id: str
    day: int                            # 0-basiert (0=Mo, 5=Sa)
    period_number: int                  # 1-basiert (wie Stundentafel)
    subject_id: str
    teacher_id: Optional[str] = None    # None = nicht zugewiesen
    room: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[str] = None    # aus der Stundentafel abgeleitet
    end_time: Optional[str] = None

    @field_validator("room", "notes", "teacher_id")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v)

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.day, self.period_number)

    @property
    def room_key(self) -> str:
        return normalize_room(self.room)

    @property
    def identity_key(self) -> tuple[str, str, str, int, int]:
        return (self.school_year_id, self.term_id, self.section_id,
                self.day, self.period_number)

    def rekeyed(self, section_id: str, copy_teacher: bool = True,
                copy_room: bool = True) -> "ScheduleEntry":
        """Kopie dieses Eintrags für eine andere Sektion (ohne schedule_id)."""
        return self.model_copy(update={
            "schedule_id": None,
            "section_id": section_id,
            "teacher_id": self.teacher_id if copy_teacher else None,
            "room": self.room if copy_room else None,
        })
