"""Konfliktprüfung für Stundenplan-Slots (Sektion / Lehrkraft / Raum)."""

from .conflicts import (
    CheckResult,
    ConflictKind,
    ConflictPreview,
    SlotCandidate,
    SlotConflict,
    SlotConflictEngine,
    SlotOk,
)

__all__ = [
    "CheckResult",
    "ConflictKind",
    "ConflictPreview",
    "SlotCandidate",
    "SlotConflict",
    "SlotConflictEngine",
    "SlotOk",
]
