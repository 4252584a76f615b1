"""Terminal-Darstellung des Wochenrasters einer Sektion.

Zeilen: Stunden der Stundentafel (mit Pausenzeilen), Spalten: Wochentage.
Slots mit erkannten Konflikten werden markiert.
"""

from typing import TYPE_CHECKING, Mapping, Optional, Union

from config.schema import PauseSlot, PeriodSlot, TimeGridConfig
from models.timeslot import TimeSlot

if TYPE_CHECKING:
    from engine.conflicts import ConflictPreview
    from models.reference_data import ReferenceData
    from models.schedule_entry import ScheduleEntry

EMPTY_CELL = "—"
PAUSE_CELL = "─" * 8
CONFLICT_MARK = "⚠"

_KIND_LABELS = {
    "section": "Sektion",
    "teacher": "Lehrkraft",
    "room": "Raum",
}


def build_time_grid_rows(time_grid: TimeGridConfig) -> list[Union[PeriodSlot, PauseSlot]]:
    """Gibt geordnete Zeilen zurück: PeriodSlot- und PauseSlot-Objekte.

    PauseSlot folgt jeweils nach der angegebenen after_period.
    """
    pause_map = {p.after_period: p for p in time_grid.pauses}
    rows: list[Union[PeriodSlot, PauseSlot]] = []
    for period in sorted(time_grid.periods, key=lambda p: p.period_number):
        rows.append(period)
        if period.period_number in pause_map:
            rows.append(pause_map[period.period_number])
    return rows


def format_cell(
    entry: "ScheduleEntry",
    reference: "ReferenceData",
    preview: Optional["ConflictPreview"] = None,
) -> str:
    """Zelleninhalt: Fach, Lehrkraft, Raum (+ Konfliktmarkierung)."""
    lines = [reference.subject_label(entry.subject_id)]
    if entry.teacher_id:
        lines.append(reference.teacher_name(entry.teacher_id))
    if entry.room:
        lines.append(f"Raum {entry.room}")
    if preview is not None and preview.has_conflicts:
        kinds = ", ".join(_KIND_LABELS[k.value] for k in preview.kinds)
        lines.append(f"{CONFLICT_MARK} {kinds}")
    return "\n".join(lines)


def render_section_rows(
    entries: list["ScheduleEntry"],
    reference: "ReferenceData",
    time_grid: TimeGridConfig,
    conflicts: Optional[Mapping["TimeSlot", "ConflictPreview"]] = None,
) -> list[list[str]]:
    """Gibt Tabellenzeilen für den Stundenplan einer Sektion zurück.

    Jede Zeile: [Stunde, Uhrzeit, Mo, Di, ..., Sa]
    Pausen werden als separate Zeilen eingefügt.
    """
    conflicts = conflicts or {}
    slot_map = {e.slot: e for e in entries}
    rows: list[list[str]] = []

    for row in build_time_grid_rows(time_grid):
        if isinstance(row, PauseSlot):
            rows.append([EMPTY_CELL, row.label] + [PAUSE_CELL] * time_grid.days_per_week)
            continue
        cells = [str(row.period_number), row.time_range]
        for day_idx in range(time_grid.days_per_week):
            entry = slot_map.get(TimeSlot(day_idx, row.period_number))
            if entry is None:
                cells.append(EMPTY_CELL)
            else:
                cells.append(format_cell(entry, reference, conflicts.get(entry.slot)))
        rows.append(cells)
    return rows


def render_time_grid_rows(time_grid: TimeGridConfig) -> list[list[str]]:
    """Zeilen der Stundentafel für die Konfigurationsanzeige."""
    rows: list[list[str]] = []
    for row in build_time_grid_rows(time_grid):
        if isinstance(row, PauseSlot):
            rows.append([EMPTY_CELL, row.label, f"{row.duration_minutes} min", ""])
        else:
            rows.append([str(row.period_number), row.label, row.start_time, row.end_time])
    return rows
