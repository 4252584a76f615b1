"""Datenmodell für einen Zeitslot im Wochenraster."""

from dataclasses import dataclass

_DAY_NAMES = ["Mo", "Di", "Mi", "Do", "Fr", "Sa"]


@dataclass(frozen=True, order=True)
class TimeSlot:
    """Repräsentiert einen einzelnen Unterrichtszeitslot im Wochenraster.

    Kombination aus Wochentag und Stundennummer der Stundentafel.
    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    Die Sortierung folgt (Tag, Stunde).
    """

    # Wochentag (0=Montag, 1=Dienstag, ..., 5=Samstag)
    day: int
    # Stundennummer (1-basiert, z.B. 3 = 3. Stunde)
    period: int

    @property
    def day_name(self) -> str:
        """Abgekürzter Tagesname."""
        return _DAY_NAMES[self.day] if 0 <= self.day < len(_DAY_NAMES) else str(self.day)

    def __repr__(self) -> str:
        return f"TimeSlot({self.day_name}, Std.{self.period})"

    def __str__(self) -> str:
        return f"{self.day_name} {self.period}."
