"""Nachträgliche Prüfung einer kompletten Arbeitsmenge auf Doppelbelegungen.

Sicherheitsnetz unabhängig von der Slot-Prüfung beim Schreiben: findet z.B.
Lehrkraft-/Raumkonflikte, die durch "Kopieren ohne Überschreiben" entstanden
sind (dort läuft keine Lehrkraft-/Raumprüfung).
"""

from collections import defaultdict
from typing import Literal, Optional

from pydantic import BaseModel

from models.reference_data import ReferenceData
from models.schedule_entry import ScheduleEntry


class ValidationViolation(BaseModel):
    """Eine einzelne Constraint-Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # section_id / teacher_id / Raum
    schedule_ids: list[int] = []


class ValidationReport(BaseModel):
    """Ergebnis der Prüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = [v for v in self.violations if v.severity == "error"]
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ KEINE DOPPELBELEGUNGEN[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title="Stundenplan-Prüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=26)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class ScheduleValidator:
    """Prüft alle Einträge eines Schuljahres + Terms auf Doppelbelegungen."""

    def __init__(self, reference: Optional[ReferenceData] = None) -> None:
        self.reference = reference or ReferenceData()

    def validate(self, entries: list[ScheduleEntry]) -> ValidationReport:
        """Führt alle Checks durch und gibt einen ValidationReport zurück."""
        violations: list[ValidationViolation] = []

        violations.extend(self._check_section_double_booking(entries))
        violations.extend(self._check_teacher_double_booking(entries))
        violations.extend(self._check_room_double_booking(entries))
        violations.extend(self._check_unassigned_teachers(entries))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_section_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Eine Sektion darf pro Slot nur einen Eintrag haben."""
        violations: list[ValidationViolation] = []
        by_slot: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            by_slot[e.identity_key].append(e)

        for (_sy, _term, section_id, day, period), group in by_slot.items():
            if len(group) <= 1:
                continue
            subjects = [self.reference.subject_label(e.subject_id) for e in group]
            violations.append(ValidationViolation(
                severity="error",
                constraint="section_double_booking",
                entity=section_id,
                description=(
                    f"{group[0].slot}: mehrere Einträge ({', '.join(subjects)})."
                ),
                schedule_ids=[e.schedule_id for e in group if e.schedule_id is not None],
            ))
        return violations

    def _check_teacher_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf zur selben Zeit in zwei Sektionen sein."""
        violations: list[ValidationViolation] = []
        seen: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            if e.teacher_id is None:
                continue
            seen[(e.school_year_id, e.term_id, e.teacher_id, e.day, e.period_number)].append(e)

        for (_sy, _term, teacher_id, _day, _period), group in seen.items():
            section_ids = sorted({e.section_id for e in group})
            if len(section_ids) > 1:
                labels = [self.reference.section_label(s) for s in section_ids]
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=teacher_id,
                    description=(
                        f"{self.reference.teacher_name(teacher_id)}, {group[0].slot}: "
                        f"gleichzeitig in {', '.join(labels)} eingeplant."
                    ),
                    schedule_ids=[e.schedule_id for e in group if e.schedule_id is not None],
                ))
        return violations

    def _check_room_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Ein Raum darf pro Slot nur von einer Sektion belegt sein."""
        violations: list[ValidationViolation] = []
        seen: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            if not e.room_key:
                continue
            seen[(e.school_year_id, e.term_id, e.room_key, e.day, e.period_number)].append(e)

        for (_sy, _term, _room_key, _day, _period), group in seen.items():
            section_ids = sorted({e.section_id for e in group})
            if len(section_ids) > 1:
                labels = [self.reference.section_label(s) for s in section_ids]
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="room_double_booking",
                    entity=group[0].room or "",
                    description=(
                        f"{group[0].slot}: gleichzeitig von {', '.join(labels)} belegt."
                    ),
                    schedule_ids=[e.schedule_id for e in group if e.schedule_id is not None],
                ))
        return violations

    def _check_unassigned_teachers(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Einträge ohne Lehrkraft sind erlaubt, werden aber gemeldet."""
        counts: dict[str, int] = defaultdict(int)
        for e in entries:
            if e.teacher_id is None:
                counts[e.section_id] += 1
        return [
            ValidationViolation(
                severity="warning",
                constraint="teacher_unassigned",
                entity=section_id,
                description=f"{n} Einträge ohne Lehrkraft.",
            )
            for section_id, n in sorted(counts.items())
        ]
