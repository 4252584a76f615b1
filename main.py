"""Sektions-Stundenplan — Haupt-CLI.

Verwendung:
  python main.py setup                         Portal-Konfiguration + Datenbank anlegen
  python main.py config show                   Konfiguration anzeigen
  python main.py db init                       Datenbankschema anlegen
  python main.py db seed <stammdaten.json>     Stammdaten importieren
  python main.py slot add ...                  Slot anlegen (mit Konfliktprüfung)
  python main.py slot edit <id> ...            Slot bearbeiten
  python main.py slot delete <id>              Slot löschen
  python main.py slot check ...                Konflikt-Vorschau ohne Speichern
  python main.py section show <sektion>        Wochenraster einer Sektion
  python main.py section clear <sektion>       Stundenplan einer Sektion leeren
  python main.py section conflicts <sektion>   Konflikte einer Sektion auflisten
  python main.py bulk copy ...                 Stundenplan in mehrere Sektionen kopieren
  python main.py bulk clear ...                Stundenpläne mehrerer Sektionen leeren
  python main.py audit                         Doppelbelegungen im Term suchen

Schreibende Befehle erfordern eine Rolle mit Schreibrecht (--role super_admin).
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()
logger = logging.getLogger(__name__)


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config_or_abort(ctx: click.Context):
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager(ctx.obj.get("config_path"))
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py setup[/bold] aus."
        )
        sys.exit(1)
    try:
        return mgr, mgr.load()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _open_store(ctx: click.Context):
    from store.repository import ScheduleStore
    _, config = _load_config_or_abort(ctx)
    return config, ScheduleStore.from_config(config.store)


def _open_service(ctx: click.Context):
    """Baut ScheduleService mit Stammdaten und Rolle des Aufrufers."""
    from models.capability import Capability
    from services.schedule_service import ScheduleService

    config, store = _open_store(ctx)
    with _fail_on_errors():
        reference = store.load_reference_data()
    capability = Capability.for_role(ctx.obj.get("role"), config.access)
    logger.debug(f"Rolle '{capability.role}', Schreibrecht: {capability.can_write}")
    return ScheduleService(store, config, capability, reference)


@contextmanager
def _fail_on_errors():
    """Zeigt fachliche und Datenbankfehler rot an und beendet mit Code 1."""
    from services.errors import ScheduleError
    from store.errors import StoreError, translate_store_error

    try:
        yield
    except ScheduleError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except StoreError as e:
        _kind, message = translate_store_error(e)
        console.print(f"[red]{message}[/red]")
        sys.exit(1)


def _resolve_scope(service, school_year_id: Optional[str], term_id: Optional[str]):
    """Schuljahr (Standard: aktives) und Term (Standard: einziger Term)."""
    reference = service.reference
    if not school_year_id:
        active = reference.active_school_year()
        if active is None:
            console.print(
                "[red]Kein aktives Schuljahr.[/red] "
                "Stammdaten mit [bold]python main.py db seed[/bold] laden."
            )
            sys.exit(1)
        school_year_id = active.school_year_id
    if not term_id:
        if len(reference.terms) != 1:
            console.print("[red]Bitte einen Term angeben (--term).[/red]")
            sys.exit(1)
        term_id = reference.terms[0].term_id
    return school_year_id, term_id


def _parse_day(time_grid, value: str) -> int:
    """Akzeptiert Tagesnamen ("Mo") oder Index (0 = Montag)."""
    if value.isdigit():
        return int(value)
    try:
        return time_grid.day_index(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--day")


def _entry_table(entries, service, title: str) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("ID", justify="right")
    table.add_column("Sektion")
    table.add_column("Slot")
    table.add_column("Fach")
    table.add_column("Lehrkraft")
    table.add_column("Raum")
    ref = service.reference
    for e in entries:
        table.add_row(
            str(e.schedule_id),
            ref.section_label(e.section_id),
            str(e.slot),
            ref.subject_label(e.subject_id),
            ref.teacher_name(e.teacher_id),
            e.room or "—",
        )
    return table


def _print_preview(preview, service) -> None:
    """Zeigt alle drei Konfliktkategorien der Live-Vorschau."""
    if not preview.has_conflicts:
        console.print("[green]✓ Keine Konflikte.[/green]")
        return
    groups = [
        ("Sektion belegt", preview.section_overlaps),
        ("Lehrkraft belegt", preview.teacher_overlaps),
        ("Raum belegt", preview.room_overlaps),
    ]
    for title, entries in groups:
        if entries:
            console.print(_entry_table(entries, service, f"[red]{title}[/red]"))


def _slot_options(func):
    """Gemeinsame Optionen für slot add / check."""
    options = [
        click.option("--year", "school_year_id", default=None,
                     help="Schuljahr-ID (Standard: aktives Schuljahr)."),
        click.option("--term", "term_id", default=None, help="Term-ID."),
        click.option("--section", "section_id", required=True, help="Sektions-ID."),
        click.option("--day", required=True, help="Wochentag (Mo..Sa oder 0..5)."),
        click.option("--period", "period_number", type=int, required=True,
                     help="Stundennummer der Stundentafel."),
        click.option("--subject", "subject_id", default="", help="Fach-ID."),
        click.option("--teacher", "teacher_id", default=None, help="Lehrkraft-ID."),
        click.option("--room", default=None, help="Raum (Freitext)."),
        click.option("--notes", default=None, help="Notiz."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_form(service, school_year_id, term_id, section_id, day, period_number,
                subject_id, teacher_id, room, notes):
    from services.schedule_service import SlotForm
    sy, term = _resolve_scope(service, school_year_id, term_id)
    return SlotForm(
        school_year_id=sy,
        term_id=term,
        section_id=section_id,
        day=_parse_day(service.config.time_grid, day),
        period_number=period_number,
        subject_id=subject_id,
        teacher_id=teacher_id,
        room=room,
        notes=notes,
    )


def _report_write(result, service) -> None:
    if result.saved:
        entry = result.entry
        console.print(
            f"[bold green]Gespeichert:[/bold green] Eintrag {entry.schedule_id}, "
            f"{service.reference.section_label(entry.section_id)} {entry.slot}"
        )
        return
    console.print(f"[red]{result.conflict.message}[/red]")
    console.print(_entry_table(result.conflict.conflicting_entries, service,
                               "Konflikt mit"))
    sys.exit(1)


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
@click.option("--school-name", default=None, help="Name der Schule.")
@click.option("--database-url", default=None, help="SQLAlchemy-URL der Datenbank.")
@click.pass_context
def cmd_setup(ctx: click.Context, school_name: Optional[str], database_url: Optional[str]):
    """Ersteinrichtung: Portal-Konfiguration schreiben und Datenbank anlegen."""
    from config.defaults import default_portal_config
    from config.manager import ConfigManager
    from store.repository import ScheduleStore

    mgr = ConfigManager(ctx.obj.get("config_path"))
    if not mgr.first_run_check():
        console.print("[yellow]Eine Konfiguration existiert bereits.[/yellow]")
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    config = default_portal_config()
    if school_name:
        config.school_name = school_name
    if database_url:
        config.store.database_url = database_url
    path = mgr.save(config)

    with _fail_on_errors():
        ScheduleStore.from_config(config.store).create_schema()

    console.print(f"[bold green]Einrichtung abgeschlossen![/bold green] ({path})")
    console.print("Laden Sie jetzt Stammdaten: [bold]python main.py db seed <datei.json>[/bold]")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Zeigt die aktuelle Konfiguration an."""
    from render.timetable import render_time_grid_rows

    mgr, config = _load_config_or_abort(ctx)
    tg = config.time_grid

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  "
        f"{tg.days_per_week} Tage ({', '.join(tg.day_names)})  |  "
        f"{len(tg.periods)} Stunden",
        title="Portal-Konfiguration",
        border_style="cyan",
    ))

    table = Table(title="Stundentafel", box=box.ROUNDED)
    table.add_column("Std.")
    table.add_column("Bezeichnung")
    table.add_column("Beginn")
    table.add_column("Ende")
    for row in render_time_grid_rows(tg):
        table.add_row(*row)
    console.print(table)

    console.print(f"\n[bold]Datenbank:[/bold] {config.store.database_url}")
    console.print(
        f"[bold]Schreibrecht:[/bold] {', '.join(config.access.write_roles)} | "
        f"Standardrolle: {config.access.default_role}"
    )


# ─── DB ───────────────────────────────────────────────────────────────────────

@click.group("db")
def cmd_db():
    """Datenbank anlegen und Stammdaten laden."""


@cmd_db.command("init")
@click.pass_context
def db_init(ctx: click.Context):
    """Legt das Datenbankschema an (idempotent)."""
    config, store = _open_store(ctx)
    with _fail_on_errors():
        store.create_schema()
    console.print(f"[green]Datenbank bereit:[/green] {config.store.database_url}")


@cmd_db.command("seed")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def db_seed(ctx: click.Context, datei: Path):
    """Importiert Stammdaten (Schuljahre, Terms, Sektionen, Fächer, Lehrkräfte)."""
    from models.reference_data import ReferenceData

    _, store = _open_store(ctx)
    try:
        data = ReferenceData.load_json(datei)
    except ValueError as e:
        console.print(f"[red]Stammdaten ungültig:[/red] {e}")
        sys.exit(1)

    with _fail_on_errors():
        store.create_schema()
        written = store.save_reference_data(data)

    console.print(
        f"[green]{written} Stammdatensätze gespeichert[/green] "
        f"({len(data.sections)} Sektionen, {len(data.subjects)} Fächer, "
        f"{len(data.teachers)} Lehrkräfte)"
    )


# ─── SLOT ─────────────────────────────────────────────────────────────────────

@click.group("slot")
def cmd_slot():
    """Einzelne Stundenplan-Einträge anlegen, bearbeiten, löschen, prüfen."""


@cmd_slot.command("add")
@_slot_options
@click.pass_context
def slot_add(ctx: click.Context, **kwargs):
    """Legt einen Slot an; Konflikte verhindern das Speichern."""
    service = _open_service(ctx)
    with _fail_on_errors():
        form = _build_form(service, **kwargs)
        result = service.save_slot(form)
    _report_write(result, service)


@cmd_slot.command("edit")
@click.argument("schedule_id", type=int)
@click.option("--section", "section_id", default=None, help="Neue Sektion.")
@click.option("--day", default=None, help="Neuer Wochentag (Mo..Sa oder 0..5).")
@click.option("--period", "period_number", type=int, default=None, help="Neue Stunde.")
@click.option("--subject", "subject_id", default=None, help="Neues Fach.")
@click.option("--teacher", "teacher_id", default=None,
              help="Neue Lehrkraft ('' entfernt die Lehrkraft).")
@click.option("--room", default=None, help="Neuer Raum ('' entfernt den Raum).")
@click.option("--notes", default=None, help="Neue Notiz.")
@click.pass_context
def slot_edit(ctx: click.Context, schedule_id: int, section_id, day, period_number,
              subject_id, teacher_id, room, notes):
    """Bearbeitet einen Slot; nicht angegebene Felder bleiben unverändert."""
    from services.schedule_service import SlotForm

    service = _open_service(ctx)
    with _fail_on_errors():
        current = service.store.get_entry(schedule_id)
        if current is None:
            console.print(f"[red]Eintrag {schedule_id} existiert nicht.[/red]")
            sys.exit(1)
        form = SlotForm(
            school_year_id=current.school_year_id,
            term_id=current.term_id,
            section_id=section_id or current.section_id,
            day=(_parse_day(service.config.time_grid, day)
                 if day is not None else current.day),
            period_number=period_number or current.period_number,
            subject_id=subject_id or current.subject_id,
            teacher_id=teacher_id if teacher_id is not None else current.teacher_id,
            room=room if room is not None else current.room,
            notes=notes if notes is not None else current.notes,
        )
        result = service.save_slot(form, schedule_id=schedule_id)
    _report_write(result, service)


@cmd_slot.command("delete")
@click.argument("schedule_id", type=int)
@click.pass_context
def slot_delete(ctx: click.Context, schedule_id: int):
    """Löscht einen Slot."""
    service = _open_service(ctx)
    with _fail_on_errors():
        deleted = service.delete_slot(schedule_id)
    if deleted:
        console.print(f"[green]Eintrag {schedule_id} gelöscht.[/green]")
    else:
        console.print(f"[yellow]Eintrag {schedule_id} existierte nicht.[/yellow]")


@cmd_slot.command("check")
@_slot_options
@click.option("--edit", "schedule_id", type=int, default=None,
              help="Prüfen als Bearbeitung dieses Eintrags (schließt ihn selbst aus).")
@click.pass_context
def slot_check(ctx: click.Context, schedule_id: Optional[int], **kwargs):
    """Konflikt-Vorschau: zeigt alle Kategorien, speichert nichts."""
    service = _open_service(ctx)
    with _fail_on_errors():
        form = _build_form(service, **kwargs)
        preview = service.preview_slot(form, schedule_id=schedule_id)
        result = service.check_slot(form, schedule_id=schedule_id)
    _print_preview(preview, service)
    if not result.is_ok:
        console.print(f"[red]{result.message}[/red]")
        sys.exit(1)


# ─── SECTION ──────────────────────────────────────────────────────────────────

@click.group("section")
def cmd_section():
    """Stundenplan einer Sektion anzeigen, leeren, auf Konflikte prüfen."""


def _scope_options(func):
    func = click.option("--term", "term_id", default=None, help="Term-ID.")(func)
    func = click.option("--year", "school_year_id", default=None,
                        help="Schuljahr-ID (Standard: aktives Schuljahr).")(func)
    return func


@cmd_section.command("show")
@click.argument("section_id")
@_scope_options
@click.pass_context
def section_show(ctx: click.Context, section_id: str, school_year_id, term_id):
    """Zeigt das Wochenraster einer Sektion mit Konfliktmarkierungen."""
    from analysis.section_overview import build_section_overview
    from render.timetable import render_section_rows

    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    with _fail_on_errors():
        entries = service.section_entries(sy, term, section_id)
        overview = build_section_overview(
            section_id, entries, service.conflict_engine(sy, term))

    tg = service.config.time_grid
    table = Table(
        title=f"{service.reference.section_label(section_id)}  ({sy} / {term})",
        box=box.ROUNDED, show_lines=True,
    )
    table.add_column("Std.", justify="right")
    table.add_column("Zeit")
    for name in tg.day_names:
        table.add_column(name)
    for row in render_section_rows(entries, service.reference, tg, overview.conflicts):
        table.add_row(*row)
    console.print(table)
    overview.print_rich()


@cmd_section.command("conflicts")
@click.argument("section_id")
@_scope_options
@click.pass_context
def section_conflicts(ctx: click.Context, section_id: str, school_year_id, term_id):
    """Listet alle Slots einer Sektion mit Konflikten."""
    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    with _fail_on_errors():
        conflicts = service.conflict_engine(sy, term).section_conflicts(section_id)

    if not conflicts:
        console.print("[green]✓ Keine Konflikte in dieser Sektion.[/green]")
        return
    for slot in sorted(conflicts):
        console.print(f"\n[bold]{slot}[/bold]")
        _print_preview(conflicts[slot], service)
    sys.exit(1)


@cmd_section.command("clear")
@click.argument("section_id")
@_scope_options
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
@click.pass_context
def section_clear(ctx: click.Context, section_id: str, school_year_id, term_id, yes: bool):
    """Löscht den kompletten Stundenplan einer Sektion (unwiderruflich)."""
    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    label = service.reference.section_label(section_id)
    if not yes and not click.confirm(
        f"Alle Einträge von {label} ({sy} / {term}) löschen?", default=False
    ):
        return
    with _fail_on_errors():
        deleted = service.clear_section(sy, term, section_id)
    console.print(f"[green]{deleted} Einträge gelöscht.[/green]")


# ─── BULK ─────────────────────────────────────────────────────────────────────

@click.group("bulk")
def cmd_bulk():
    """Sammeloperationen über mehrere Sektionen."""


def _print_bulk(result, service) -> None:
    table = Table(title="Sammeloperation", box=box.ROUNDED)
    table.add_column("Sektion")
    table.add_column("Gelöscht", justify="right")
    table.add_column("Eingefügt", justify="right")
    table.add_column("Übersprungen", justify="right")
    for t in result.targets:
        label = service.reference.section_label(t.section_id)
        if t.skipped_as_source:
            table.add_row(label, "—", "—", "[dim]Quelle[/dim]")
        else:
            table.add_row(label, str(t.deleted), str(t.inserted), str(t.skipped))
    console.print(table)


@cmd_bulk.command("copy")
@click.option("--source", "source_section_id", required=True, help="Quellsektion.")
@click.option("--target", "target_section_ids", multiple=True, required=True,
              help="Zielsektion (mehrfach angebbar).")
@_scope_options
@click.option("--overwrite", is_flag=True, default=False,
              help="Ziele vorher leeren statt nur freie Slots zu füllen.")
@click.option("--no-teachers", is_flag=True, default=False,
              help="Lehrkräfte nicht übernehmen.")
@click.option("--no-rooms", is_flag=True, default=False, help="Räume nicht übernehmen.")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage ausführen.")
@click.pass_context
def bulk_copy(ctx: click.Context, source_section_id, target_section_ids, school_year_id,
              term_id, overwrite, no_teachers, no_rooms, yes):
    """Kopiert den Stundenplan einer Sektion in mehrere Zielsektionen."""
    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    if overwrite and not yes and not click.confirm(
        f"Stundenpläne von {len(target_section_ids)} Sektionen überschreiben?",
        default=False,
    ):
        return
    with _fail_on_errors():
        result = service.bulk_copy(
            sy, term, source_section_id, target_section_ids,
            overwrite=overwrite,
            copy_teachers=not no_teachers,
            copy_rooms=not no_rooms,
        )
    _print_bulk(result, service)
    console.print(f"[green]{result.total_inserted} Einträge kopiert.[/green]")


@cmd_bulk.command("clear")
@click.option("--target", "target_section_ids", multiple=True, required=True,
              help="Sektion (mehrfach angebbar).")
@_scope_options
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
@click.pass_context
def bulk_clear(ctx: click.Context, target_section_ids, school_year_id, term_id, yes):
    """Löscht die Stundenpläne mehrerer Sektionen."""
    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    if not yes and not click.confirm(
        f"Stundenpläne von {len(target_section_ids)} Sektionen löschen?", default=False
    ):
        return
    with _fail_on_errors():
        result = service.bulk_clear(sy, term, target_section_ids)
    _print_bulk(result, service)
    console.print(f"[green]{result.total_deleted} Einträge gelöscht.[/green]")


# ─── AUDIT ────────────────────────────────────────────────────────────────────

@click.command("audit")
@_scope_options
@click.pass_context
def cmd_audit(ctx: click.Context, school_year_id, term_id):
    """Prüft alle Einträge des Terms auf Doppelbelegungen."""
    from analysis.schedule_validator import ScheduleValidator

    service = _open_service(ctx)
    sy, term = _resolve_scope(service, school_year_id, term_id)
    with _fail_on_errors():
        entries = service.working_set(sy, term)
    report = ScheduleValidator(service.reference).validate(entries)
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Pfad zur Portal-Konfiguration (Standard: config/portal_config.yaml).")
@click.option("--role", default=None, help="Rolle des Aufrufers (z.B. super_admin).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], role: Optional[str], verbose: bool):
    """Stundenplan-Verwaltung für Sektionen mit Konfliktprüfung.

    Starten Sie mit: python main.py setup
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["role"] = role


def main():
    """Einstiegspunkt. Startet automatisch die Einrichtung beim ersten Aufruf."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei der Stundenplan-Verwaltung![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Die Einrichtung wird jetzt gestartet...",
            border_style="cyan",
        ))
        sys.argv.append("setup")

    cli(obj={})


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_db)
cli.add_command(cmd_slot)
cli.add_command(cmd_section)
cli.add_command(cmd_bulk)
cli.add_command(cmd_audit)


if __name__ == "__main__":
    main()
