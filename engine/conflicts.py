"""Slot-Konfliktprüfung für den Wochenstundenplan.

Ein Kandidat (neuer oder bearbeiteter Eintrag) wird gegen die Arbeitsmenge
aller Einträge desselben Schuljahres + Terms geprüft:

  1. Sektion:   dieselbe Sektion hat am selben Tag/Stunde schon einen Eintrag
  2. Lehrkraft: dieselbe Lehrkraft ist zur selben Zeit in einer ANDEREN Sektion
  3. Raum:      derselbe Raum (getrimmt, case-folded) ist zur selben Zeit von
                einer ANDEREN Sektion belegt

Tag + Stunde sind ein exakter Schlüssel, keine Zeitspanne; es gibt also
keine Mehrdeutigkeit durch Überlappungen. Die Prüfung ist rein lesend.
"""

import logging
from enum import Enum
from typing import Annotated, Iterable, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from models.schedule_entry import ScheduleEntry, normalize_room
from models.timeslot import TimeSlot

logger = logging.getLogger(__name__)


class ConflictKind(str, Enum):
    SECTION = "section"
    TEACHER = "teacher"
    ROOM = "room"


# ─── Ein- und Ausgabe-Modelle ─────────────────────────────────────────────────

class SlotCandidate(BaseModel):
    """Der zu prüfende Eintrag. schedule_id ist None beim Anlegen."""

    schedule_id: Optional[int] = None
    school_year_id: str
    term_id: str
    section_id: str
    day: int
    period_number: int
    teacher_id: Optional[str] = None
    room: Optional[str] = None

    @field_validator("teacher_id", "room")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> "SlotCandidate":
        return cls(
            schedule_id=entry.schedule_id,
            school_year_id=entry.school_year_id,
            term_id=entry.term_id,
            section_id=entry.section_id,
            day=entry.day,
            period_number=entry.period_number,
            teacher_id=entry.teacher_id,
            room=entry.room,
        )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.day, self.period_number)


class SlotOk(BaseModel):
    """Keine Konflikte: der Eintrag darf geschrieben werden."""

    status: Literal["ok"] = "ok"

    @property
    def is_ok(self) -> bool:
        return True


class SlotConflict(BaseModel):
    """Der Eintrag muss abgelehnt werden; erwartetes Ergebnis, kein Fehler."""

    status: Literal["conflict"] = "conflict"
    kind: ConflictKind
    message: str
    conflicting_entries: list[ScheduleEntry] = Field(min_length=1)

    @property
    def is_ok(self) -> bool:
        return False


CheckResult = Annotated[Union[SlotOk, SlotConflict], Field(discriminator="status")]


class ConflictPreview(BaseModel):
    """Alle Konfliktkategorien gleichzeitig (Live-Vorschau beim Bearbeiten)."""

    section_overlaps: list[ScheduleEntry] = []
    teacher_overlaps: list[ScheduleEntry] = []
    room_overlaps: list[ScheduleEntry] = []

    @property
    def has_conflicts(self) -> bool:
        return bool(self.section_overlaps or self.teacher_overlaps or self.room_overlaps)

    @property
    def kinds(self) -> list[ConflictKind]:
        kinds = []
        if self.section_overlaps:
            kinds.append(ConflictKind.SECTION)
        if self.teacher_overlaps:
            kinds.append(ConflictKind.TEACHER)
        if self.room_overlaps:
            kinds.append(ConflictKind.ROOM)
        return kinds


# ─── Engine ───────────────────────────────────────────────────────────────────

class SlotConflictEngine:
    """Prüft Kandidaten gegen eine Arbeitsmenge von Stundenplan-Einträgen.

    Verwendung:
        engine = SlotConflictEngine(working_set, section_labels={...})
        result = engine.check(candidate)
        if not result.is_ok:
            print(result.message)
    """

    def __init__(
        self,
        working_set: Iterable[ScheduleEntry],
        section_labels: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._entries: tuple[ScheduleEntry, ...] = tuple(working_set)
        self._labels: Mapping[str, str] = section_labels or {}

    @property
    def entries(self) -> tuple[ScheduleEntry, ...]:
        return self._entries

    # ── Öffentliche API ──────────────────────────────────────────────────────

    def check(self, candidate: SlotCandidate) -> Union[SlotOk, SlotConflict]:
        """Fail-fast Prüfung in der Reihenfolge Sektion → Lehrkraft → Raum."""
        clashes = self._section_overlaps(candidate)
        if clashes:
            return SlotConflict(
                kind=ConflictKind.SECTION,
                message=(
                    f"Diese Sektion hat für {candidate.slot} bereits einen Eintrag."
                ),
                conflicting_entries=clashes,
            )

        clashes = self._teacher_overlaps(candidate)
        if clashes:
            return SlotConflict(
                kind=ConflictKind.TEACHER,
                message=(
                    f"Lehrkraft-Konflikt: {candidate.slot} bereits in "
                    f"{self._describe_sections(clashes)} eingeplant."
                ),
                conflicting_entries=clashes,
            )

        clashes = self._room_overlaps(candidate)
        if clashes:
            return SlotConflict(
                kind=ConflictKind.ROOM,
                message=(
                    f"Raum-Konflikt: {candidate.room} ist {candidate.slot} bereits "
                    f"von {self._describe_sections(clashes)} belegt."
                ),
                conflicting_entries=clashes,
            )

        return SlotOk()

    def preview(self, candidate: SlotCandidate) -> ConflictPreview:
        """Führt alle drei Prüfungen aus, ohne beim ersten Treffer abzubrechen."""
        return ConflictPreview(
            section_overlaps=self._section_overlaps(candidate),
            teacher_overlaps=self._teacher_overlaps(candidate),
            room_overlaps=self._room_overlaps(candidate),
        )

    def section_conflicts(
        self,
        section_id: str,
        school_year_id: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> dict[TimeSlot, ConflictPreview]:
        """Konflikte aller vorhandenen Einträge einer Sektion.

        Liefert nur Slots mit mindestens einem Konflikt; Grundlage für die
        Markierung im Stundenraster ("Konflikte erkannt").
        """
        result: dict[TimeSlot, ConflictPreview] = {}
        for entry in self._entries:
            if entry.section_id != section_id:
                continue
            if school_year_id is not None and entry.school_year_id != school_year_id:
                continue
            if term_id is not None and entry.term_id != term_id:
                continue
            preview = self.preview(SlotCandidate.from_entry(entry))
            if preview.has_conflicts:
                result[entry.slot] = preview
        logger.debug(f"Sektion {section_id}: {len(result)} Slots mit Konflikten")
        return result

    # ── Einzelne Prüfungen ───────────────────────────────────────────────────

    def _same_slot(self, candidate: SlotCandidate, entry: ScheduleEntry) -> bool:
        return (
            entry.school_year_id == candidate.school_year_id
            and entry.term_id == candidate.term_id
            and entry.day == candidate.day
            and entry.period_number == candidate.period_number
        )

    def _is_self(self, candidate: SlotCandidate, entry: ScheduleEntry) -> bool:
        """Beim Bearbeiten zählt der eigene gespeicherte Eintrag nie als Konflikt."""
        return candidate.schedule_id is not None and entry.schedule_id == candidate.schedule_id

    def _section_overlaps(self, candidate: SlotCandidate) -> list[ScheduleEntry]:
        """Eine Sektion kann pro Stunde nur ein Fach haben (ohne sich selbst)."""
        return [
            e for e in self._entries
            if e.section_id == candidate.section_id
            and self._same_slot(candidate, e)
            and not self._is_self(candidate, e)
        ]

    def _teacher_overlaps(self, candidate: SlotCandidate) -> list[ScheduleEntry]:
        """Eine Lehrkraft kann nicht zwei Sektionen gleichzeitig unterrichten."""
        if candidate.teacher_id is None:
            return []
        return [
            e for e in self._entries
            if e.section_id != candidate.section_id
            and self._same_slot(candidate, e)
            and not self._is_self(candidate, e)
            and e.teacher_id is not None
            and e.teacher_id == candidate.teacher_id
        ]

    def _room_overlaps(self, candidate: SlotCandidate) -> list[ScheduleEntry]:
        """Ein Raum kann nicht zwei Sektionen gleichzeitig aufnehmen."""
        room_key = normalize_room(candidate.room)
        if not room_key:
            return []
        return [
            e for e in self._entries
            if e.section_id != candidate.section_id
            and self._same_slot(candidate, e)
            and not self._is_self(candidate, e)
            and e.room_key == room_key
        ]

    def _describe_sections(self, entries: list[ScheduleEntry]) -> str:
        seen: list[str] = []
        for e in entries:
            label = self._labels.get(e.section_id, e.section_id)
            if label not in seen:
                seen.append(label)
        return ", ".join(seen)
