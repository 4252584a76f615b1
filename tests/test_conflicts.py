"""Tests für die Slot-Konfliktprüfung (Sektion / Lehrkraft / Raum)."""

import pytest
from pydantic import TypeAdapter, ValidationError

from engine.conflicts import (
    CheckResult,
    ConflictKind,
    SlotCandidate,
    SlotConflict,
    SlotConflictEngine,
    SlotOk,
)
from models.schedule_entry import ScheduleEntry
from models.timeslot import TimeSlot


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

MON = 0
TUE = 1


def _entry(
    schedule_id: int,
    section_id: str = "S1",
    day: int = MON,
    period: int = 3,
    teacher_id: str | None = "garcia",
    room: str | None = "R-101",
    subject_id: str = "MATH",
    school_year_id: str = "2025",
    term_id: str = "T1",
) -> ScheduleEntry:
    return ScheduleEntry(
        schedule_id=schedule_id,
        school_year_id=school_year_id,
        term_id=term_id,
        section_id=section_id,
        day=day,
        period_number=period,
        subject_id=subject_id,
        teacher_id=teacher_id,
        room=room,
    )


def _candidate(
    section_id: str = "S2",
    day: int = MON,
    period: int = 3,
    teacher_id: str | None = None,
    room: str | None = None,
    schedule_id: int | None = None,
    school_year_id: str = "2025",
    term_id: str = "T1",
) -> SlotCandidate:
    return SlotCandidate(
        schedule_id=schedule_id,
        school_year_id=school_year_id,
        term_id=term_id,
        section_id=section_id,
        day=day,
        period_number=period,
        teacher_id=teacher_id,
        room=room,
    )


@pytest.fixture
def engine() -> SlotConflictEngine:
    """S1 hat Mo 3. Stunde: Lehrkraft garcia, Raum R-101."""
    return SlotConflictEngine(
        [_entry(1)],
        section_labels={"S1": "Jg. 11 · ACAD · STEM · A"},
    )


# ─── Konfliktfälle ────────────────────────────────────────────────────────────

class TestConflictCases:
    def test_same_teacher_other_section_is_teacher_conflict(self, engine):
        """Gleiche Lehrkraft, gleiche Zeit, andere Sektion → Lehrkraft-Konflikt."""
        result = engine.check(_candidate(teacher_id="garcia"))
        assert isinstance(result, SlotConflict)
        assert result.kind == ConflictKind.TEACHER
        assert "Jg. 11 · ACAD · STEM · A" in result.message
        assert [e.schedule_id for e in result.conflicting_entries] == [1]

    def test_room_match_ignores_case_and_whitespace(self, engine):
        """'r-101 ' gilt als derselbe Raum wie 'R-101'."""
        result = engine.check(_candidate(teacher_id="santos", room="r-101 "))
        assert isinstance(result, SlotConflict)
        assert result.kind == ConflictKind.ROOM
        assert "r-101" in result.message

    def test_different_period_same_teacher_ok(self, engine):
        """Andere Stunde, gleiche Lehrkraft → kein Konflikt."""
        result = engine.check(_candidate(period=4, teacher_id="garcia", room="R-101"))
        assert isinstance(result, SlotOk)
        assert result.is_ok

    def test_second_entry_same_section_is_section_conflict(self, engine):
        """Zweiter Eintrag für S1 Mo 3. Stunde → Sektions-Konflikt."""
        result = engine.check(_candidate(section_id="S1"))
        assert isinstance(result, SlotConflict)
        assert result.kind == ConflictKind.SECTION
        assert not result.is_ok


# ─── Eigenschaften ────────────────────────────────────────────────────────────

class TestInvariants:
    def test_section_conflict_wins_over_teacher_and_room(self, engine):
        """Reihenfolge Sektion → Lehrkraft → Raum: erster Treffer zählt."""
        result = engine.check(_candidate(section_id="S1", teacher_id="garcia", room="R-101"))
        assert result.kind == ConflictKind.SECTION

    def test_teacher_conflict_wins_over_room(self, engine):
        result = engine.check(_candidate(teacher_id="garcia", room="R-101"))
        assert result.kind == ConflictKind.TEACHER

    @pytest.mark.parametrize("day,period", [(TUE, 3), (MON, 4), (TUE, 4)])
    def test_no_false_positives_other_slot(self, engine, day, period):
        """Anderer Tag oder andere Stunde kollidiert nie."""
        result = engine.check(
            _candidate(section_id="S1", day=day, period=period,
                       teacher_id="garcia", room="R-101"))
        assert isinstance(result, SlotOk)

    def test_edit_excludes_own_entry(self, engine):
        """Bearbeiten eines Eintrags meldet sich nicht selbst als Konflikt."""
        result = engine.check(
            _candidate(section_id="S1", schedule_id=1, teacher_id="garcia", room="R-101"))
        assert isinstance(result, SlotOk)

    def test_edit_still_detects_other_entry_in_section(self):
        """Selbstausschluss gilt nur für die eigene schedule_id."""
        engine = SlotConflictEngine([_entry(1), _entry(2, day=TUE, period=1)])
        result = engine.check(_candidate(section_id="S1", schedule_id=2))
        assert result.kind == ConflictKind.SECTION
        assert [e.schedule_id for e in result.conflicting_entries] == [1]

    def test_edit_into_other_section_excludes_own_entry(self, engine):
        """Verschiebt ein Eintrag die Sektion, zählen Lehrkraft/Raum nicht gegen ihn selbst."""
        candidate = _candidate(section_id="S2", schedule_id=1, teacher_id="garcia", room="R-101")
        assert isinstance(engine.check(candidate), SlotOk)
        assert not engine.preview(candidate).has_conflicts

    def test_null_teacher_never_conflicts(self):
        """Zwei Einträge ohne Lehrkraft kollidieren nicht über die Lehrkraft."""
        engine = SlotConflictEngine([_entry(1, teacher_id=None, room=None)])
        result = engine.check(_candidate(teacher_id=None, room=None))
        assert isinstance(result, SlotOk)

    def test_blank_room_never_conflicts(self):
        """Leerer Raum ('  ') zählt als kein Raum."""
        engine = SlotConflictEngine([_entry(1, teacher_id=None, room="  ")])
        result = engine.check(_candidate(room=""))
        assert isinstance(result, SlotOk)

    def test_same_teacher_same_section_is_not_teacher_conflict(self):
        """Lehrkraftprüfung betrachtet nur ANDERE Sektionen."""
        engine = SlotConflictEngine([_entry(1)])
        preview = engine.preview(_candidate(section_id="S1", teacher_id="garcia"))
        assert preview.teacher_overlaps == []
        assert len(preview.section_overlaps) == 1

    def test_other_term_ignored(self):
        """Einträge eines anderen Terms gehören nicht zur Arbeitsmenge."""
        engine = SlotConflictEngine([_entry(1, term_id="T2")])
        result = engine.check(_candidate(section_id="S1", teacher_id="garcia"))
        assert isinstance(result, SlotOk)

    def test_other_school_year_ignored(self):
        engine = SlotConflictEngine([_entry(1, school_year_id="2024")])
        result = engine.check(_candidate(teacher_id="garcia", room="R-101"))
        assert isinstance(result, SlotOk)

    def test_empty_working_set_ok(self):
        result = SlotConflictEngine([]).check(_candidate(teacher_id="garcia"))
        assert isinstance(result, SlotOk)

    def test_unknown_section_label_falls_back_to_id(self):
        result = SlotConflictEngine([_entry(1)]).check(_candidate(teacher_id="garcia"))
        assert "S1" in result.message


# ─── Vorschau und Sektionsübersicht ───────────────────────────────────────────

class TestPreview:
    def test_preview_reports_all_categories(self):
        """Vorschau bricht nicht beim ersten Treffer ab."""
        engine = SlotConflictEngine([
            _entry(1, section_id="S1"),
            _entry(2, section_id="S2", teacher_id="santos", room="Lab"),
        ])
        preview = engine.preview(_candidate(section_id="S2", teacher_id="garcia", room="r-101"))
        assert preview.has_conflicts
        assert [e.schedule_id for e in preview.section_overlaps] == [2]
        assert [e.schedule_id for e in preview.teacher_overlaps] == [1]
        assert [e.schedule_id for e in preview.room_overlaps] == [1]
        assert preview.kinds == [ConflictKind.SECTION, ConflictKind.TEACHER, ConflictKind.ROOM]

    def test_preview_without_conflicts(self, engine):
        preview = engine.preview(_candidate(period=5, teacher_id="garcia"))
        assert not preview.has_conflicts
        assert preview.kinds == []

    def test_section_conflicts_lists_only_conflicting_slots(self):
        """Nur Slots mit Konflikt erscheinen, beide Seiten werden markiert."""
        engine = SlotConflictEngine([
            _entry(1, section_id="S1"),
            _entry(2, section_id="S1", day=TUE, period=1, teacher_id="lim", room="B2"),
            _entry(3, section_id="S2", teacher_id="garcia", room="R-202"),
        ])
        s1 = engine.section_conflicts("S1")
        assert list(s1) == [TimeSlot(MON, 3)]
        assert s1[TimeSlot(MON, 3)].kinds == [ConflictKind.TEACHER]

        s2 = engine.section_conflicts("S2")
        assert list(s2) == [TimeSlot(MON, 3)]

    def test_section_conflicts_empty_for_clean_section(self, engine):
        assert engine.section_conflicts("S1") == {}


# ─── Modelle ──────────────────────────────────────────────────────────────────

class TestModels:
    def test_candidate_blank_teacher_and_room_become_none(self):
        c = _candidate(teacher_id="  ", room="")
        assert c.teacher_id is None
        assert c.room is None

    def test_candidate_from_entry(self):
        c = SlotCandidate.from_entry(_entry(7, section_id="S3", day=TUE, period=2))
        assert c.schedule_id == 7
        assert c.slot == TimeSlot(TUE, 2)

    def test_conflict_requires_conflicting_entries(self):
        with pytest.raises(ValidationError):
            SlotConflict(kind=ConflictKind.ROOM, message="x", conflicting_entries=[])

    def test_check_result_discriminates_on_status(self):
        adapter = TypeAdapter(CheckResult)
        ok = adapter.validate_python({"status": "ok"})
        assert isinstance(ok, SlotOk)
        conflict = adapter.validate_python({
            "status": "conflict",
            "kind": "teacher",
            "message": "Lehrkraft-Konflikt",
            "conflicting_entries": [_entry(1).model_dump()],
        })
        assert isinstance(conflict, SlotConflict)
        assert conflict.kind == ConflictKind.TEACHER

    def test_timeslot_str_and_ordering(self):
        assert str(TimeSlot(MON, 3)) == "Mo 3."
        assert sorted([TimeSlot(1, 1), TimeSlot(0, 9), TimeSlot(0, 2)]) == [
            TimeSlot(0, 2), TimeSlot(0, 9), TimeSlot(1, 1),
        ]
