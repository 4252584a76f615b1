"""Schreiboperationen auf dem Sektions-Stundenplan.

Jede verändernde Operation prüft zuerst das Schreibrecht und (bei Anlegen /
Bearbeiten) die Slot-Konflikte gegen die zwischengespeicherte Arbeitsmenge.
Erst danach wird geschrieben ("optimistisch prüfen, dann schreiben").

Die Arbeitsmenge ist ein Schnappschuss und nicht mit anderen Sitzungen
synchronisiert. Gleichzeitige Buchungen desselben Slots fängt erst die
Datenbank über ihre Unique-Constraints ab; diese Ablehnung kommt als
ScheduleWriteError mit erkannter Konfliktkategorie zurück. Es gibt keine
automatische Wiederholung.
"""

import logging
from typing import Iterable, Literal, NoReturn, Optional, Union

from pydantic import BaseModel, field_validator

from config.schema import PortalConfig
from engine.conflicts import (
    ConflictPreview,
    SlotCandidate,
    SlotConflict,
    SlotConflictEngine,
    SlotOk,
)
from models.capability import Capability
from models.reference_data import ReferenceData
from models.schedule_entry import ScheduleEntry
from services.errors import (
    InvalidSlotError,
    ScheduleNotFoundError,
    ScheduleWriteError,
    ViewOnlyError,
)
from store.errors import StoreError, translate_store_error
from store.repository import ScheduleStore

logger = logging.getLogger(__name__)


# ─── Ein- und Ausgabe-Modelle ─────────────────────────────────────────────────

class SlotForm(BaseModel):
    """Formularzustand beim Anlegen / Bearbeiten eines Slots."""

    school_year_id: str = ""
    term_id: str = ""
    section_id: str = ""
    day: int = 0
    period_number: int = 1
    subject_id: str = ""
    teacher_id: Optional[str] = None
    room: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("school_year_id", "term_id", "section_id", "subject_id")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()


class SlotWriteResult(BaseModel):
    """Ergebnis von save_slot: gespeichert oder wegen Konflikt abgelehnt."""

    status: Literal["saved", "conflict"]
    entry: Optional[ScheduleEntry] = None
    conflict: Optional[SlotConflict] = None

    @property
    def saved(self) -> bool:
        return self.status == "saved"


class BulkTargetResult(BaseModel):
    """Auswirkung einer Sammeloperation auf eine Zielsektion."""

    section_id: str
    deleted: int = 0
    inserted: int = 0
    skipped: int = 0            # bereits belegte Slots (Kopieren ohne Überschreiben)
    skipped_as_source: bool = False


class BulkResult(BaseModel):
    """Ergebnis von bulk_copy / bulk_clear."""

    mode: Literal["copy", "clear"]
    source_section_id: Optional[str] = None
    overwrite: bool = False
    targets: list[BulkTargetResult] = []

    @property
    def total_inserted(self) -> int:
        return sum(t.inserted for t in self.targets)

    @property
    def total_deleted(self) -> int:
        return sum(t.deleted for t in self.targets)


# ─── Service ──────────────────────────────────────────────────────────────────

class ScheduleService:
    """Konfliktgeprüfte Schreiboperationen für Sektions-Stundenpläne.

    Verwendung:
        service = ScheduleService(store, config, Capability.for_role("super_admin", config.access))
        result = service.save_slot(SlotForm(...))
        if not result.saved:
            print(result.conflict.message)
    """

    def __init__(
        self,
        store: ScheduleStore,
        config: PortalConfig,
        capability: Capability,
        reference: Optional[ReferenceData] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.capability = capability
        self.reference = reference or ReferenceData()
        self._working_sets: dict[tuple[str, str], list[ScheduleEntry]] = {}

    # ─── Arbeitsmenge ───

    def working_set(self, school_year_id: str, term_id: str) -> list[ScheduleEntry]:
        """Schnappschuss aller Einträge des Schuljahres + Terms (gecacht)."""
        key = (school_year_id, term_id)
        if key not in self._working_sets:
            self._working_sets[key] = self.store.fetch_working_set(school_year_id, term_id)
            logger.debug(
                f"Arbeitsmenge geladen: {len(self._working_sets[key])} Einträge "
                f"({school_year_id}/{term_id})"
            )
        return self._working_sets[key]

    def invalidate(self) -> None:
        """Verwirft alle zwischengespeicherten Arbeitsmengen."""
        self._working_sets.clear()

    def conflict_engine(self, school_year_id: str, term_id: str) -> SlotConflictEngine:
        return SlotConflictEngine(
            self.working_set(school_year_id, term_id),
            section_labels=self.reference.section_labels(),
        )

    def section_entries(
        self, school_year_id: str, term_id: str, section_id: str
    ) -> list[ScheduleEntry]:
        """Einträge einer Sektion, sortiert nach Tag und Stunde."""
        return sorted(
            (e for e in self.working_set(school_year_id, term_id) if e.section_id == section_id),
            key=lambda e: (e.day, e.period_number),
        )

    # ─── Prüfen (nur lesend) ───

    def check_slot(
        self, form: SlotForm, schedule_id: Optional[int] = None
    ) -> Union[SlotOk, SlotConflict]:
        """Fail-fast Konfliktprüfung ohne Schreibzugriff."""
        self._validate_form(form)
        candidate = self._candidate(form, schedule_id)
        return self.conflict_engine(form.school_year_id, form.term_id).check(candidate)

    def preview_slot(
        self, form: SlotForm, schedule_id: Optional[int] = None
    ) -> ConflictPreview:
        """Alle Konfliktkategorien gleichzeitig (Live-Vorschau)."""
        candidate = self._candidate(form, schedule_id)
        return self.conflict_engine(form.school_year_id, form.term_id).preview(candidate)

    # ─── Anlegen / Bearbeiten ───

    def save_slot(self, form: SlotForm, schedule_id: Optional[int] = None) -> SlotWriteResult:
        """Legt einen Slot an (schedule_id=None) oder bearbeitet ihn.

        Konflikte werden als Ergebnis zurückgegeben, nichts wird geschrieben.
        Ablehnungen durch die Datenbank werfen ScheduleWriteError.
        """
        self._require_write("Stundenpläne ändern")
        self._validate_form(form)

        if schedule_id is not None:
            try:
                existing = self.store.get_entry(schedule_id)
            except StoreError as e:
                self._raise_write_error(e)
            if existing is None:
                raise ScheduleNotFoundError(f"Eintrag {schedule_id} existiert nicht.")

        candidate = self._candidate(form, schedule_id)
        result = self.conflict_engine(form.school_year_id, form.term_id).check(candidate)
        if isinstance(result, SlotConflict):
            logger.info(
                f"Slot abgelehnt ({result.kind.value}): {form.section_id} {candidate.slot}"
            )
            return SlotWriteResult(status="conflict", conflict=result)

        period = self.config.time_grid.get_period(form.period_number)
        entry = ScheduleEntry(
            schedule_id=schedule_id,
            school_year_id=form.school_year_id,
            term_id=form.term_id,
            section_id=form.section_id,
            day=form.day,
            period_number=form.period_number,
            subject_id=form.subject_id,
            teacher_id=form.teacher_id,
            room=form.room,
            notes=form.notes,
            start_time=period.start_time,
            end_time=period.end_time,
        )

        try:
            if schedule_id is None:
                entry = self.store.insert_entry(entry)
            elif not self.store.update_entry(entry):
                raise ScheduleNotFoundError(f"Eintrag {schedule_id} existiert nicht.")
        except StoreError as e:
            self._raise_write_error(e)
        finally:
            self.invalidate()

        logger.info(
            f"Slot gespeichert: Eintrag {entry.schedule_id}, {entry.section_id} {entry.slot}"
        )
        return SlotWriteResult(status="saved", entry=entry)

    # ─── Löschen ───

    def delete_slot(self, schedule_id: int) -> bool:
        """Löscht einen Eintrag. False wenn er nicht (mehr) existiert."""
        self._require_write("Stundenpläne löschen")
        try:
            deleted = self.store.delete_entry(schedule_id)
        except StoreError as e:
            self._raise_write_error(e)
        finally:
            self.invalidate()
        if not deleted:
            logger.info(f"Eintrag {schedule_id} nicht gefunden, nichts gelöscht")
        return deleted > 0

    def clear_section(self, school_year_id: str, term_id: str, section_id: str) -> int:
        """Löscht den kompletten Stundenplan einer Sektion (unwiderruflich).

        Die Bestätigung durch den Nutzer ist Sache des Aufrufers.
        """
        self._require_write("Stundenpläne leeren")
        self._require_scope(school_year_id, term_id)
        try:
            deleted = self.store.delete_section(school_year_id, term_id, section_id)
        except StoreError as e:
            self._raise_write_error(e)
        finally:
            self.invalidate()
        logger.info(f"Sektion {section_id} geleert: {deleted} Einträge gelöscht")
        return deleted

    # ─── Sammeloperationen ───

    def bulk_copy(
        self,
        school_year_id: str,
        term_id: str,
        source_section_id: str,
        target_section_ids: Iterable[str],
        overwrite: bool = False,
        copy_teachers: bool = True,
        copy_rooms: bool = True,
    ) -> BulkResult:
        """Kopiert den Stundenplan einer Sektion in mehrere Zielsektionen.

        overwrite=True:  Ziel wird geleert und vollständig neu befüllt.
        overwrite=False: nur Slots, die im Ziel noch frei sind, werden kopiert;
                         belegte Slots werden stillschweigend übersprungen.

        Die Lehrkraft-/Raumprüfung gegen andere Sektionen läuft hier NICHT;
        solche Doppelbelegungen lehnt ggf. die Datenbank ab. Mit
        copy_teachers/copy_rooms=False werden Lehrkraft bzw. Raum nicht
        übernommen. Jede Zielsektion wird in einer eigenen Transaktion
        geschrieben; beim ersten Fehler bricht die Operation ab.
        """
        self._require_write("Sammeloperationen ausführen")
        self._require_scope(school_year_id, term_id)
        targets = self._require_targets(target_section_ids)
        if not source_section_id:
            raise InvalidSlotError("Bitte eine Quellsektion auswählen.")

        result = BulkResult(mode="copy", source_section_id=source_section_id,
                            overwrite=overwrite)
        try:
            source = self.store.fetch_section(school_year_id, term_id, source_section_id)
            for target_id in targets:
                if target_id == source_section_id:
                    result.targets.append(
                        BulkTargetResult(section_id=target_id, skipped_as_source=True))
                    continue
                rows = [e.rekeyed(target_id, copy_teacher=copy_teachers, copy_room=copy_rooms)
                        for e in source]
                result.targets.append(
                    self._copy_into(school_year_id, term_id, target_id, rows, overwrite))
        except StoreError as e:
            self._raise_write_error(e)
        finally:
            self.invalidate()

        logger.info(
            f"Kopieren aus {source_section_id}: {result.total_inserted} Einträge "
            f"in {len(result.targets)} Sektionen"
        )
        return result

    def _copy_into(
        self,
        school_year_id: str,
        term_id: str,
        target_id: str,
        rows: list[ScheduleEntry],
        overwrite: bool,
    ) -> BulkTargetResult:
        if overwrite:
            deleted, inserted = self.store.replace_section(
                school_year_id, term_id, target_id, rows)
            return BulkTargetResult(section_id=target_id, deleted=deleted, inserted=inserted)

        occupied = {e.slot for e in self.store.fetch_section(school_year_id, term_id, target_id)}
        missing = [r for r in rows if r.slot not in occupied]
        inserted = self.store.insert_entries(missing)
        return BulkTargetResult(section_id=target_id, inserted=inserted,
                                skipped=len(rows) - len(missing))

    def bulk_clear(
        self,
        school_year_id: str,
        term_id: str,
        target_section_ids: Iterable[str],
    ) -> BulkResult:
        """Löscht die Stundenpläne mehrerer Sektionen."""
        self._require_write("Sammeloperationen ausführen")
        self._require_scope(school_year_id, term_id)
        targets = self._require_targets(target_section_ids)

        result = BulkResult(mode="clear")
        try:
            for target_id in targets:
                deleted = self.store.delete_section(school_year_id, term_id, target_id)
                result.targets.append(BulkTargetResult(section_id=target_id, deleted=deleted))
        except StoreError as e:
            self._raise_write_error(e)
        finally:
            self.invalidate()

        logger.info(f"{result.total_deleted} Einträge in {len(targets)} Sektionen gelöscht")
        return result

    # ─── Hilfsfunktionen ───

    def _require_write(self, action: str) -> None:
        if not self.capability.can_write:
            raise ViewOnlyError(
                f"Nur Ansicht: Rolle '{self.capability.role}' darf keine {action}."
            )

    def _require_scope(self, school_year_id: str, term_id: str) -> None:
        if not school_year_id:
            raise InvalidSlotError("Kein aktives Schuljahr.")
        if not term_id:
            raise InvalidSlotError("Bitte einen Term auswählen.")

    def _require_targets(self, target_section_ids: Iterable[str]) -> list[str]:
        targets = list(dict.fromkeys(t for t in target_section_ids if t))
        if not targets:
            raise InvalidSlotError("Bitte mindestens eine Zielsektion auswählen.")
        return targets

    def _validate_form(self, form: SlotForm) -> None:
        self._require_scope(form.school_year_id, form.term_id)
        tg = self.config.time_grid
        if not form.section_id:
            raise InvalidSlotError("Bitte eine Sektion auswählen.")
        if not form.subject_id:
            raise InvalidSlotError("Fach ist erforderlich.")
        if not 0 <= form.day < tg.days_per_week:
            raise InvalidSlotError(
                f"Ungültiger Tag {form.day} (erlaubt: 0–{tg.days_per_week - 1}).")
        if tg.get_period(form.period_number) is None:
            raise InvalidSlotError(f"Ungültige Stunde {form.period_number}.")
        self._validate_reference(form)

    def _validate_reference(self, form: SlotForm) -> None:
        """Stammdaten-Filter des Slot-Formulars; unbekannte IDs werden nicht geprüft."""
        ref = self.reference
        section = ref.get_section(form.section_id)
        if section is not None:
            if not section.is_schedulable:
                raise InvalidSlotError(
                    f"Sektion '{section.section_name}' erhält keinen Stundenplan.")
            subject = ref.get_subject(form.subject_id)
            if subject is not None and subject not in ref.subjects_for_section(section.section_id):
                raise InvalidSlotError(
                    f"Fach {subject.label} wird für {section.label} nicht angeboten.")
        teacher = ref.get_teacher(form.teacher_id)
        if teacher is not None and not teacher.is_active:
            raise InvalidSlotError(f"Lehrkraft {teacher.display_name} ist nicht aktiv.")

    def _candidate(self, form: SlotForm, schedule_id: Optional[int]) -> SlotCandidate:
        return SlotCandidate(
            schedule_id=schedule_id,
            school_year_id=form.school_year_id,
            term_id=form.term_id,
            section_id=form.section_id,
            day=form.day,
            period_number=form.period_number,
            teacher_id=form.teacher_id,
            room=form.room,
        )

    def _raise_write_error(self, error: StoreError) -> NoReturn:
        kind, message = translate_store_error(error)
        logger.error(f"Schreibzugriff abgelehnt: {error.raw_message}")
        raise ScheduleWriteError(message, kind=kind) from error
