"""Tests für die Kommandozeile (click.testing.CliRunner)."""

from datetime import date

import pytest
from click.testing import CliRunner

from main import cli
from models.reference_data import ReferenceData
from models.school_year import SchoolYear, Term
from models.section import Section
from models.subject import Subject
from models.teacher import Teacher


def _reference() -> ReferenceData:
    return ReferenceData(
        school_years=[SchoolYear(school_year_id="2025", sy_code="2025-2026",
                                 start_date=date(2025, 6, 1))],
        terms=[Term(term_id="T1", term_code="1st Sem")],
        sections=[
            Section(section_id="S1", section_name="A", grade_level=11,
                    track_code="ACAD", strand_code="STEM"),
            Section(section_id="S2", section_name="B", grade_level=11,
                    track_code="ACAD", strand_code="STEM"),
        ],
        subjects=[Subject(subject_id="MATH", subject_title="Mathematik")],
        teachers=[Teacher(teacher_id="garcia", first_name="Ana", last_name="Garcia")],
    )


@pytest.fixture
def portal(tmp_path):
    """Eingerichtetes Portal mit SQLite-Datenbank und Stammdaten."""
    runner = CliRunner()
    config_path = tmp_path / "portal.yaml"
    base = ["--config", str(config_path)]

    result = runner.invoke(cli, base + [
        "setup", "--database-url", f"sqlite:///{tmp_path / 'portal.db'}",
    ])
    assert result.exit_code == 0, result.output

    seed = tmp_path / "stammdaten.json"
    _reference().save_json(seed)
    result = runner.invoke(cli, base + ["db", "seed", str(seed)])
    assert result.exit_code == 0, result.output
    return runner, base


def _add(runner, base, section_id, *extra, role="super_admin"):
    args = base + ["--role", role, "slot", "add", "--section", section_id,
                   "--day", "Mo", "--period", "3", "--subject", "MATH"]
    return runner.invoke(cli, args + list(extra))


class TestCli:
    def test_help(self):
        """main.py --help gibt Usage aus."""
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    @pytest.mark.parametrize("group", ["config", "db", "slot", "section", "bulk", "audit"])
    def test_commands_registered(self, group):
        result = CliRunner().invoke(cli, [group, "--help"])
        assert result.exit_code == 0

    def test_config_show_no_file(self, tmp_path):
        """config show ohne Konfiguration → Fehlermeldung."""
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "x.yaml"), "config", "show"])
        assert result.exit_code == 1
        assert "Keine Konfiguration" in result.output

    def test_config_show(self, portal):
        runner, base = portal
        result = runner.invoke(cli, base + ["config", "show"])
        assert result.exit_code == 0
        assert "Mittagspause" in result.output


class TestSlotCommands:
    def test_add_and_teacher_conflict(self, portal):
        runner, base = portal
        result = _add(runner, base, "S1", "--teacher", "garcia", "--room", "R-101")
        assert result.exit_code == 0, result.output
        assert "Gespeichert" in result.output

        result = _add(runner, base, "S2", "--teacher", "garcia")
        assert result.exit_code == 1
        assert "Lehrkraft-Konflikt" in result.output

    def test_view_only_role_rejected(self, portal):
        runner, base = portal
        result = _add(runner, base, "S1", role="admin")
        assert result.exit_code == 1
        assert "Nur Ansicht" in result.output

    def test_unknown_day(self, portal):
        runner, base = portal
        result = runner.invoke(cli, base + [
            "--role", "super_admin", "slot", "add", "--section", "S1",
            "--day", "So", "--period", "3", "--subject", "MATH",
        ])
        assert result.exit_code == 2

    def test_check_reports_room_conflict(self, portal):
        runner, base = portal
        _add(runner, base, "S1", "--room", "R-101")
        result = runner.invoke(cli, base + [
            "slot", "check", "--section", "S2", "--day", "0", "--period", "3",
            "--subject", "MATH", "--room", " r-101",
        ])
        assert result.exit_code == 1
        assert "Raum-Konflikt" in result.output

    def test_delete_missing(self, portal):
        runner, base = portal
        result = runner.invoke(cli, base + ["--role", "super_admin", "slot", "delete", "42"])
        assert result.exit_code == 0
        assert "existierte nicht" in result.output


class TestSectionAndBulk:
    def test_section_show(self, portal):
        runner, base = portal
        _add(runner, base, "S1")
        result = runner.invoke(cli, base + ["section", "show", "S1"])
        assert result.exit_code == 0, result.output
        assert "Einträge: 1" in result.output

    def test_bulk_copy_and_audit(self, portal):
        runner, base = portal
        _add(runner, base, "S1", "--teacher", "garcia")
        result = runner.invoke(cli, base + [
            "--role", "super_admin", "bulk", "copy", "--source", "S1",
            "--target", "S2", "--no-teachers",
        ])
        assert result.exit_code == 0, result.output
        assert "1 Einträge kopiert" in result.output

        result = runner.invoke(cli, base + ["audit"])
        assert result.exit_code == 0

    def test_section_clear_with_confirmation(self, portal):
        runner, base = portal
        _add(runner, base, "S1")
        result = runner.invoke(
            cli, base + ["--role", "super_admin", "section", "clear", "S1"], input="y\n")
        assert result.exit_code == 0, result.output
        assert "1 Einträge gelöscht" in result.output
