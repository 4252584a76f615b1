"""ScheduleStore: Lese- und Schreibzugriffe auf die Stundenplan-Datenbank.

Alle Schreibzugriffe laufen in einer eigenen Transaktion (engine.begin()).
SQLAlchemy-Fehler werden als StoreError weitergereicht; die Übersetzung in
Konfliktkategorien übernimmt der Aufrufer (translate_store_error).
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from sqlalchemy import create_engine, delete, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError

from config.schema import StoreConfig
from models.reference_data import ReferenceData
from models.schedule_entry import ScheduleEntry, normalize_room
from models.school_year import SchoolYear, Term
from models.section import Section
from models.subject import Subject
from models.teacher import Teacher
from store.errors import StoreError
from store.tables import (
    metadata,
    school_years,
    section_schedules,
    sections,
    subjects,
    teachers,
    terms,
)

logger = logging.getLogger(__name__)

# (Tabelle, Primärschlüssel, Modell, ReferenceData-Feld)
_REFERENCE_TABLES = [
    (school_years, "school_year_id", SchoolYear, "school_years"),
    (terms, "term_id", Term, "terms"),
    (sections, "section_id", Section, "sections"),
    (subjects, "subject_id", Subject, "subjects"),
    (teachers, "teacher_id", Teacher, "teachers"),
]


def _entry_values(entry: ScheduleEntry) -> dict:
    values = entry.model_dump(exclude={"schedule_id"})
    values["room_key"] = normalize_room(entry.room) or None
    return values


def _row_to_entry(row) -> ScheduleEntry:
    return ScheduleEntry.model_validate(dict(row._mapping))


class ScheduleStore:
    """Zugriff auf section_schedules und die Stammdaten-Tabellen."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_config(cls, store_config: StoreConfig) -> "ScheduleStore":
        """Erzeugt Engine aus der Config; legt bei SQLite das Verzeichnis an."""
        url = make_url(store_config.database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(store_config.database_url, echo=store_config.echo)
        return cls(engine)

    def create_schema(self) -> None:
        """Legt alle Tabellen an (vorhandene bleiben unverändert)."""
        with self._transaction() as conn:
            metadata.create_all(conn)
        logger.info(f"Datenbankschema bereit: {self.engine.url!r}")

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.warning(f"Datenbankfehler: {e.__class__.__name__}")
            raise StoreError.from_exception(e) from e

    # ─── Lesen ───

    def fetch_working_set(self, school_year_id: str, term_id: str) -> list[ScheduleEntry]:
        """Alle Einträge eines Schuljahres + Terms (alle Sektionen)."""
        stmt = (
            select(section_schedules)
            .where(section_schedules.c.school_year_id == school_year_id)
            .where(section_schedules.c.term_id == term_id)
            .order_by(section_schedules.c.section_id,
                      section_schedules.c.day,
                      section_schedules.c.period_number)
        )
        with self._transaction() as conn:
            return [_row_to_entry(r) for r in conn.execute(stmt)]

    def fetch_section(
        self, school_year_id: str, term_id: str, section_id: str
    ) -> list[ScheduleEntry]:
        """Alle Einträge einer Sektion, sortiert nach Tag und Stunde."""
        stmt = (
            select(section_schedules)
            .where(section_schedules.c.school_year_id == school_year_id)
            .where(section_schedules.c.term_id == term_id)
            .where(section_schedules.c.section_id == section_id)
            .order_by(section_schedules.c.day, section_schedules.c.period_number)
        )
        with self._transaction() as conn:
            return [_row_to_entry(r) for r in conn.execute(stmt)]

    def get_entry(self, schedule_id: int) -> Optional[ScheduleEntry]:
        stmt = select(section_schedules).where(section_schedules.c.schedule_id == schedule_id)
        with self._transaction() as conn:
            row = conn.execute(stmt).first()
        return _row_to_entry(row) if row is not None else None

    # ─── Schreiben ───

    def insert_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        """Fügt einen Eintrag ein und gibt ihn mit schedule_id zurück."""
        with self._transaction() as conn:
            result = conn.execute(insert(section_schedules).values(**_entry_values(entry)))
            schedule_id = result.inserted_primary_key[0]
        logger.debug(f"Eintrag {schedule_id} angelegt ({entry.section_id} {entry.slot})")
        return entry.model_copy(update={"schedule_id": schedule_id})

    def insert_entries(self, entries: Iterable[ScheduleEntry]) -> int:
        """Fügt mehrere Einträge in einer Transaktion ein."""
        rows = [_entry_values(e) for e in entries]
        if not rows:
            return 0
        with self._transaction() as conn:
            conn.execute(insert(section_schedules), rows)
        return len(rows)

    def update_entry(self, entry: ScheduleEntry) -> bool:
        """Aktualisiert einen Eintrag. False wenn die schedule_id unbekannt ist."""
        if entry.schedule_id is None:
            raise ValueError("update_entry benötigt eine schedule_id")
        stmt = (
            update(section_schedules)
            .where(section_schedules.c.schedule_id == entry.schedule_id)
            .values(**_entry_values(entry))
        )
        with self._transaction() as conn:
            return conn.execute(stmt).rowcount > 0

    def delete_entry(self, schedule_id: int) -> int:
        stmt = delete(section_schedules).where(section_schedules.c.schedule_id == schedule_id)
        with self._transaction() as conn:
            return conn.execute(stmt).rowcount

    def delete_section(self, school_year_id: str, term_id: str, section_id: str) -> int:
        """Löscht alle Einträge einer Sektion im Schuljahr + Term."""
        with self._transaction() as conn:
            return self._delete_section(conn, school_year_id, term_id, section_id)

    def replace_section(
        self,
        school_year_id: str,
        term_id: str,
        section_id: str,
        entries: Iterable[ScheduleEntry],
    ) -> tuple[int, int]:
        """Ersetzt den Stundenplan einer Sektion atomar (löschen + einfügen).

        Returns:
            (gelöscht, eingefügt)
        """
        rows = [_entry_values(e) for e in entries]
        with self._transaction() as conn:
            deleted = self._delete_section(conn, school_year_id, term_id, section_id)
            if rows:
                conn.execute(insert(section_schedules), rows)
        return deleted, len(rows)

    def _delete_section(
        self, conn: Connection, school_year_id: str, term_id: str, section_id: str
    ) -> int:
        stmt = (
            delete(section_schedules)
            .where(section_schedules.c.school_year_id == school_year_id)
            .where(section_schedules.c.term_id == term_id)
            .where(section_schedules.c.section_id == section_id)
        )
        return conn.execute(stmt).rowcount

    # ─── Stammdaten ───

    def save_reference_data(self, data: ReferenceData) -> int:
        """Schreibt Stammdaten (Update bei vorhandener ID, sonst Insert)."""
        written = 0
        with self._transaction() as conn:
            for table, key, _model, field in _REFERENCE_TABLES:
                existing = {r[0] for r in conn.execute(select(table.c[key]))}
                for item in getattr(data, field):
                    values = item.model_dump()
                    if values[key] in existing:
                        conn.execute(
                            update(table).where(table.c[key] == values[key]).values(**values)
                        )
                    else:
                        conn.execute(insert(table).values(**values))
                    written += 1
        logger.info(f"{written} Stammdatensätze gespeichert")
        return written

    def load_reference_data(self) -> ReferenceData:
        """Lädt alle Stammdaten als ReferenceData."""
        loaded: dict[str, list] = {}
        with self._transaction() as conn:
            for table, key, model, field in _REFERENCE_TABLES:
                rows = conn.execute(select(table).order_by(table.c[key]))
                loaded[field] = [model.model_validate(dict(r._mapping)) for r in rows]
        return ReferenceData(**loaded)
