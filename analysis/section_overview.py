"""Kennzahlen und Konfliktübersicht für den Stundenplan einer Sektion."""

from pydantic import BaseModel, ConfigDict

from engine.conflicts import ConflictPreview, SlotConflictEngine
from models.schedule_entry import ScheduleEntry
from models.timeslot import TimeSlot


class SectionOverview(BaseModel):
    """Übersicht: Anzahl Einträge, Räume, Fächer, Lehrkräfte, Konflikte."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    section_id: str
    entry_count: int
    room_count: int       # verschiedene Räume (normalisiert)
    subject_count: int
    teacher_count: int
    conflicts: dict[TimeSlot, ConflictPreview] = {}

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def print_rich(self) -> None:
        """Gibt Kennzahlen und Konfliktstatus über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        status = (
            f"[bold red]⚠ Konflikte erkannt ({len(self.conflicts)} Slots)[/bold red]"
            if self.has_conflicts
            else "[bold green]✓ Keine Konflikte[/bold green]"
        )
        lines = [
            status,
            f"Einträge: {self.entry_count} | Räume: {self.room_count} | "
            f"Fächer: {self.subject_count} | Lehrkräfte: {self.teacher_count}",
        ]
        Console().print(Panel("\n".join(lines), title="Übersicht", border_style="cyan"))


def build_section_overview(
    section_id: str,
    entries: list[ScheduleEntry],
    engine: SlotConflictEngine,
) -> SectionOverview:
    """Berechnet die Übersicht für eine Sektion.

    Args:
        section_id: Die betrachtete Sektion.
        entries: Einträge dieser Sektion.
        engine: Konfliktprüfung über die Arbeitsmenge des Schuljahres + Terms.
    """
    own = [e for e in entries if e.section_id == section_id]
    return SectionOverview(
        section_id=section_id,
        entry_count=len(own),
        room_count=len({e.room_key for e in own if e.room_key}),
        subject_count=len({e.subject_id for e in own}),
        teacher_count=len({e.teacher_id for e in own if e.teacher_id}),
        conflicts=engine.section_conflicts(section_id),
    )
