"""Fehlerklassen der Stundenplan-Schreiboperationen.

Konflikte aus der Slot-Prüfung sind KEINE Fehler (siehe SlotConflict);
hier stehen nur Fälle, in denen eine Operation nicht ausgeführt wurde.
"""

from typing import Optional

from engine.conflicts import ConflictKind


class ScheduleError(Exception):
    """Basisklasse aller Fehler der Stundenplan-Verwaltung."""


class ViewOnlyError(ScheduleError):
    """Der Aufrufer hat nur Leserecht."""


class InvalidSlotError(ScheduleError, ValueError):
    """Formulareingaben sind unvollständig oder passen nicht zur Stundentafel."""


class ScheduleNotFoundError(ScheduleError):
    """Der zu bearbeitende Eintrag existiert nicht (mehr)."""


class ScheduleWriteError(ScheduleError):
    """Die Datenbank hat den Schreibzugriff abgelehnt; nichts wurde übernommen.

    kind ist gesetzt, wenn die Ablehnung ein erkannter Eindeutigkeits-Constraint
    war (typisch: zwei Sitzungen haben gleichzeitig denselben Slot gebucht).
    """

    def __init__(self, message: str, kind: Optional[ConflictKind] = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
