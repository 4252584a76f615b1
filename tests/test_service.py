"""Tests für ScheduleService: Schreibrecht, Konfliktprüfung, Sammeloperationen."""

import pytest

from config.defaults import default_portal_config
from config.schema import StoreConfig
from engine.conflicts import ConflictKind
from models.capability import Capability
from models.reference_data import ReferenceData
from models.schedule_entry import ScheduleEntry
from models.section import Section
from models.subject import Subject
from models.teacher import Teacher
from services.errors import (
    InvalidSlotError,
    ScheduleNotFoundError,
    ScheduleWriteError,
    ViewOnlyError,
)
from services.schedule_service import ScheduleService, SlotForm
from store.errors import StoreError
from store.repository import ScheduleStore


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _form(
    section_id: str = "S1",
    day: int = 0,
    period: int = 3,
    subject_id: str = "MATH",
    teacher_id: str | None = None,
    room: str | None = None,
) -> SlotForm:
    return SlotForm(
        school_year_id="2025",
        term_id="T1",
        section_id=section_id,
        day=day,
        period_number=period,
        subject_id=subject_id,
        teacher_id=teacher_id,
        room=room,
    )


def _entry(section_id: str, day: int, period: int, **kwargs) -> ScheduleEntry:
    return ScheduleEntry(
        school_year_id="2025",
        term_id="T1",
        section_id=section_id,
        day=day,
        period_number=period,
        subject_id=kwargs.pop("subject_id", "MATH"),
        **kwargs,
    )


@pytest.fixture
def store(tmp_path) -> ScheduleStore:
    s = ScheduleStore.from_config(StoreConfig(database_url=f"sqlite:///{tmp_path / 'test.db'}"))
    s.create_schema()
    return s


@pytest.fixture
def config():
    return default_portal_config()


@pytest.fixture
def service(store, config) -> ScheduleService:
    return ScheduleService(store, config, Capability.for_role("super_admin", config.access))


@pytest.fixture
def viewer(store, config) -> ScheduleService:
    return ScheduleService(store, config, Capability.for_role("admin", config.access))


def _slots(store: ScheduleStore, section_id: str) -> list[tuple[int, int]]:
    return [(e.day, e.period_number) for e in store.fetch_section("2025", "T1", section_id)]


# ─── Anlegen / Bearbeiten ─────────────────────────────────────────────────────

class TestSaveSlot:
    def test_save_new_slot(self, service, store):
        result = service.save_slot(_form(teacher_id="garcia", room="R-101"))
        assert result.saved
        assert result.entry.schedule_id is not None
        assert (result.entry.start_time, result.entry.end_time) == ("09:20", "10:20")
        assert _slots(store, "S1") == [(0, 3)]

    def test_teacher_conflict_not_written(self, service, store):
        service.save_slot(_form(teacher_id="garcia", room="R-101"))
        result = service.save_slot(_form(section_id="S2", teacher_id="garcia"))
        assert not result.saved
        assert result.conflict.kind == ConflictKind.TEACHER
        assert _slots(store, "S2") == []

    def test_room_conflict_normalized(self, service):
        service.save_slot(_form(teacher_id="garcia", room="R-101"))
        result = service.save_slot(_form(section_id="S2", teacher_id="santos", room="r-101 "))
        assert result.conflict.kind == ConflictKind.ROOM

    def test_section_conflict(self, service):
        service.save_slot(_form())
        result = service.save_slot(_form(subject_id="ENG"))
        assert result.conflict.kind == ConflictKind.SECTION

    def test_edit_does_not_conflict_with_itself(self, service, store):
        saved = service.save_slot(_form(teacher_id="garcia", room="R-101")).entry
        result = service.save_slot(_form(subject_id="ENG", teacher_id="garcia", room="R-101"),
                                   schedule_id=saved.schedule_id)
        assert result.saved
        assert store.get_entry(saved.schedule_id).subject_id == "ENG"

    def test_edit_moves_slot(self, service, store):
        saved = service.save_slot(_form()).entry
        result = service.save_slot(_form(day=5, period=9), schedule_id=saved.schedule_id)
        assert result.saved
        assert _slots(store, "S1") == [(5, 9)]
        assert store.get_entry(saved.schedule_id).end_time == "17:30"

    def test_edit_moves_entry_to_other_section(self, service, store):
        """Sektionswechsel mit gleicher Lehrkraft und gleichem Raum kollidiert nicht mit sich selbst."""
        saved = service.save_slot(_form(teacher_id="garcia", room="R-101")).entry
        result = service.save_slot(_form(section_id="S2", teacher_id="garcia", room="R-101"),
                                   schedule_id=saved.schedule_id)
        assert result.saved
        assert _slots(store, "S1") == []
        assert _slots(store, "S2") == [(0, 3)]

    def test_edit_unknown_entry(self, service):
        with pytest.raises(ScheduleNotFoundError):
            service.save_slot(_form(), schedule_id=4711)

    def test_edit_lookup_store_failure_is_write_error(self, service, monkeypatch):
        def _fail(schedule_id):
            raise StoreError("permission denied for table section_schedules")

        monkeypatch.setattr(service.store, "get_entry", _fail)
        with pytest.raises(ScheduleWriteError):
            service.save_slot(_form(), schedule_id=1)

    def test_different_period_ok(self, service):
        service.save_slot(_form(teacher_id="garcia"))
        assert service.save_slot(_form(section_id="S2", period=4, teacher_id="garcia")).saved


# ─── Eingabeprüfung ───────────────────────────────────────────────────────────

class TestValidation:
    def test_subject_required(self, service):
        with pytest.raises(InvalidSlotError, match="Fach ist erforderlich"):
            service.save_slot(_form(subject_id="  "))

    def test_unknown_period(self, service):
        with pytest.raises(InvalidSlotError):
            service.save_slot(_form(period=10))

    def test_day_out_of_range(self, service):
        with pytest.raises(InvalidSlotError):
            service.check_slot(_form(day=6))

    def test_missing_term(self, service):
        form = _form().model_copy(update={"term_id": ""})
        with pytest.raises(InvalidSlotError):
            service.check_slot(form)

    def test_invalid_slot_error_is_value_error(self):
        assert issubclass(InvalidSlotError, ValueError)


@pytest.fixture
def seeded(store, config) -> ScheduleService:
    """Service mit Stammdaten: S1 = Jg. 11 STEM, S0 = Platzhalter-Sektion."""
    reference = ReferenceData(
        sections=[
            Section(section_id="S1", section_name="A", grade_level=11,
                    track_code="ACAD", strand_code="STEM"),
            Section(section_id="S0", section_name="Unclassified"),
        ],
        subjects=[
            Subject(subject_id="MATH", subject_title="Mathematik"),
            Subject(subject_id="ABM", subject_title="Accounting", grade_level=11,
                    strand_code="ABM"),
        ],
        teachers=[
            Teacher(teacher_id="garcia", first_name="Ana", last_name="Garcia"),
            Teacher(teacher_id="lim", first_name="Ben", last_name="Lim", is_active=False),
        ],
    )
    return ScheduleService(store, config, Capability.for_role("super_admin", config.access),
                           reference)


class TestReferenceFilters:
    def test_valid_slot_saved(self, seeded):
        assert seeded.save_slot(_form(teacher_id="garcia")).saved

    def test_unclassified_section_rejected(self, seeded, store):
        with pytest.raises(InvalidSlotError, match="keinen Stundenplan"):
            seeded.save_slot(_form(section_id="S0"))
        assert _slots(store, "S0") == []

    def test_subject_not_offered_for_section(self, seeded):
        with pytest.raises(InvalidSlotError, match="nicht angeboten"):
            seeded.save_slot(_form(subject_id="ABM"))

    def test_inactive_teacher_rejected(self, seeded):
        with pytest.raises(InvalidSlotError, match="nicht aktiv"):
            seeded.check_slot(_form(teacher_id="lim"))

    def test_unknown_ids_not_filtered(self, seeded):
        """Ohne passende Stammdaten wird nur die Slot-Prüfung ausgeführt."""
        assert seeded.save_slot(_form(section_id="S9", subject_id="ENG", teacher_id="x")).saved


# ─── Schreibrecht ─────────────────────────────────────────────────────────────

class TestCapability:
    def test_viewer_cannot_save(self, viewer, store):
        with pytest.raises(ViewOnlyError):
            viewer.save_slot(_form())
        assert _slots(store, "S1") == []

    def test_viewer_cannot_delete_or_bulk(self, viewer):
        with pytest.raises(ViewOnlyError):
            viewer.delete_slot(1)
        with pytest.raises(ViewOnlyError):
            viewer.clear_section("2025", "T1", "S1")
        with pytest.raises(ViewOnlyError):
            viewer.bulk_copy("2025", "T1", "S1", ["S2"])
        with pytest.raises(ViewOnlyError):
            viewer.bulk_clear("2025", "T1", ["S2"])

    def test_viewer_can_check(self, viewer):
        assert viewer.check_slot(_form()).is_ok

    def test_role_without_profile_is_read_only(self, config):
        cap = Capability.for_role(None, config.access)
        assert cap.role == "admin"
        assert not cap.can_write

    def test_role_case_insensitive(self, config):
        assert Capability.for_role(" Super_Admin ", config.access).can_write


# ─── Löschen ──────────────────────────────────────────────────────────────────

class TestDelete:
    def test_delete_slot(self, service, store):
        saved = service.save_slot(_form()).entry
        assert service.delete_slot(saved.schedule_id) is True
        assert _slots(store, "S1") == []

    def test_delete_missing_is_noop(self, service):
        assert service.delete_slot(999) is False

    def test_clear_section(self, service, store):
        service.save_slot(_form(period=1))
        service.save_slot(_form(period=2))
        service.save_slot(_form(section_id="S2", period=1))
        assert service.clear_section("2025", "T1", "S1") == 2
        assert _slots(store, "S1") == []
        assert _slots(store, "S2") == [(0, 1)]


# ─── Sammeloperationen ────────────────────────────────────────────────────────

class TestBulk:
    def _source(self, store):
        store.insert_entry(_entry("S1", 0, 3))
        store.insert_entry(_entry("S1", 1, 1, subject_id="ENG"))

    def test_copy_without_overwrite_fills_free_slots(self, service, store):
        """S2 hat Mo 3. Stunde schon belegt; S3 ist leer."""
        self._source(store)
        store.insert_entry(_entry("S2", 0, 3, subject_id="BIO"))

        result = service.bulk_copy("2025", "T1", "S1", ["S2", "S3"])

        by_section = {t.section_id: t for t in result.targets}
        assert (by_section["S2"].inserted, by_section["S2"].skipped) == (1, 1)
        assert by_section["S3"].inserted == 2
        assert _slots(store, "S2") == [(0, 3), (1, 1)]
        assert store.fetch_section("2025", "T1", "S2")[0].subject_id == "BIO"
        assert _slots(store, "S3") == [(0, 3), (1, 1)]
        assert result.total_inserted == 3

    def test_copy_with_overwrite_replaces(self, service, store):
        self._source(store)
        store.insert_entry(_entry("S2", 4, 8, subject_id="BIO"))

        result = service.bulk_copy("2025", "T1", "S1", ["S2"], overwrite=True)

        assert result.targets[0].deleted == 1
        assert result.targets[0].inserted == 2
        assert _slots(store, "S2") == [(0, 3), (1, 1)]

    def test_source_in_targets_is_skipped(self, service, store):
        self._source(store)
        result = service.bulk_copy("2025", "T1", "S1", ["S1", "S2"], overwrite=True)
        assert result.targets[0].skipped_as_source
        assert _slots(store, "S1") == [(0, 3), (1, 1)]

    def test_copy_with_teacher_hits_database_constraint(self, service, store):
        """Gleiche Lehrkraft in zwei Sektionen zur selben Zeit lehnt die DB ab."""
        store.insert_entry(_entry("S1", 0, 3, teacher_id="garcia"))
        with pytest.raises(ScheduleWriteError) as exc:
            service.bulk_copy("2025", "T1", "S1", ["S2"])
        assert exc.value.kind == ConflictKind.TEACHER
        assert _slots(store, "S2") == []

    def test_copy_without_teachers_and_rooms(self, service, store):
        store.insert_entry(_entry("S1", 0, 3, teacher_id="garcia", room="R-101"))
        service.bulk_copy("2025", "T1", "S1", ["S2"], copy_teachers=False, copy_rooms=False)
        copied = store.fetch_section("2025", "T1", "S2")[0]
        assert copied.teacher_id is None
        assert copied.room is None

    def test_no_targets_rejected(self, service):
        with pytest.raises(InvalidSlotError):
            service.bulk_copy("2025", "T1", "S1", [])

    def test_bulk_clear(self, service, store):
        self._source(store)
        store.insert_entry(_entry("S2", 2, 2))
        result = service.bulk_clear("2025", "T1", ["S1", "S2", "S2"])
        assert [t.section_id for t in result.targets] == ["S1", "S2"]
        assert result.total_deleted == 3


# ─── Arbeitsmenge und Nebenläufigkeit ─────────────────────────────────────────

class TestWorkingSet:
    def test_stale_working_set_rejected_by_database(self, service, store):
        """Zweite Sitzung bucht denselben Raum, bevor die erste speichert."""
        service.working_set("2025", "T1")
        store.insert_entry(_entry("S2", 0, 3, room="R-101"))

        with pytest.raises(ScheduleWriteError) as exc:
            service.save_slot(_form(room="r-101"))
        assert exc.value.kind == ConflictKind.ROOM
        assert "Raum" in str(exc.value)

    def test_cache_invalidated_after_write(self, service):
        service.save_slot(_form(teacher_id="garcia"))
        assert len(service.working_set("2025", "T1")) == 1
        service.save_slot(_form(period=4))
        assert len(service.working_set("2025", "T1")) == 2

    def test_cache_invalidated_after_failed_write(self, service, store):
        service.working_set("2025", "T1")
        store.insert_entry(_entry("S2", 0, 3, teacher_id="garcia"))
        with pytest.raises(ScheduleWriteError):
            service.save_slot(_form(teacher_id="garcia"))
        result = service.save_slot(_form(teacher_id="garcia"))
        assert result.conflict.kind == ConflictKind.TEACHER

    def test_preview_slot(self, service, store):
        store.insert_entry(_entry("S1", 0, 3))
        store.insert_entry(_entry("S2", 0, 3, teacher_id="garcia", room="Lab"))
        preview = service.preview_slot(_form(teacher_id="garcia", room="lab"))
        assert preview.kinds == [ConflictKind.SECTION, ConflictKind.TEACHER, ConflictKind.ROOM]

    def test_section_entries_sorted(self, service, store):
        store.insert_entry(_entry("S1", 2, 1))
        store.insert_entry(_entry("S1", 0, 5))
        entries = service.section_entries("2025", "T1", "S1")
        assert [(e.day, e.period_number) for e in entries] == [(0, 5), (2, 1)]
