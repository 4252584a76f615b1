"""Datenbankfehler und ihre Übersetzung in Konfliktkategorien.

Postgres nennt den verletzten Constraint beim Namen
('duplicate key value violates unique constraint "no_room_time_conflict"'),
SQLite nur die Spalten ("UNIQUE constraint failed: section_schedules.day, ...").
Beides wird auf dieselben drei Kategorien abgebildet wie die Konfliktprüfung.
"""

from typing import Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from engine.conflicts import ConflictKind
from store.tables import ROOM_CONSTRAINT, SECTION_CONSTRAINT, TEACHER_CONSTRAINT

CONSTRAINT_KINDS: dict[str, ConflictKind] = {
    ROOM_CONSTRAINT: ConflictKind.ROOM,
    SECTION_CONSTRAINT: ConflictKind.SECTION,
    TEACHER_CONSTRAINT: ConflictKind.TEACHER,
}

FRIENDLY_MESSAGES: dict[ConflictKind, str] = {
    ConflictKind.SECTION: "Konflikt: Diese Sektion hat zur selben Zeit bereits einen Eintrag.",
    ConflictKind.TEACHER: "Konflikt: Diese Lehrkraft unterrichtet zur selben Zeit bereits.",
    ConflictKind.ROOM: "Konflikt: Der Raum ist zur selben Zeit bereits belegt.",
}

GENERIC_FAILURE = "Speichern fehlgeschlagen."

_SQLITE_UNIQUE = "UNIQUE constraint failed:"


class StoreError(Exception):
    """Fehler beim Zugriff auf die Datenbank (Verbindung, Rechte, Constraints)."""

    def __init__(self, message: str, raw_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_message = raw_message if raw_message is not None else message

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> "StoreError":
        # DBAPI-Meldung ohne angehängtes SQL-Statement
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            raw = str(exc.orig)
        else:
            raw = str(exc)
        return cls(raw.splitlines()[0] if raw else GENERIC_FAILURE, raw_message=raw)


def constraint_kind(message: str) -> Optional[ConflictKind]:
    """Erkennt die Konfliktkategorie in einer rohen Datenbank-Fehlermeldung."""
    for name, kind in CONSTRAINT_KINDS.items():
        if name in message:
            return kind

    first_line = message.splitlines()[0] if message else ""
    if _SQLITE_UNIQUE not in first_line:
        return None
    tail = first_line.split(_SQLITE_UNIQUE, 1)[1]
    columns = {c.strip().split(".")[-1] for c in tail.split(",")}
    if "teacher_id" in columns:
        return ConflictKind.TEACHER
    if "room_key" in columns:
        return ConflictKind.ROOM
    if "section_id" in columns and "period_number" in columns:
        return ConflictKind.SECTION
    return None


def translate_store_error(error: Exception) -> tuple[Optional[ConflictKind], str]:
    """Übersetzt einen Datenbankfehler in (Kategorie, lesbare Meldung).

    Unbekannte Fehler behalten ihre Originalmeldung; ohne Meldung gibt es
    den generischen Text.
    """
    raw = error.raw_message if isinstance(error, StoreError) else str(error)
    kind = constraint_kind(raw)
    if kind is not None:
        return kind, FRIENDLY_MESSAGES[kind]
    message = str(error).strip()
    return None, message or GENERIC_FAILURE
