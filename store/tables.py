"""Tabellendefinitionen (SQLAlchemy Core).

Die drei benannten Unique-Constraints auf section_schedules sind die
verbindliche letzte Absicherung gegen Doppelbelegungen, auch wenn zwei
Sitzungen gleichzeitig mit veralteter Arbeitsmenge schreiben.
NULL-Werte (keine Lehrkraft, kein Raum) kollidieren dabei nie.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

SECTION_CONSTRAINT = "no_section_time_conflict"
TEACHER_CONSTRAINT = "no_teacher_time_conflict"
ROOM_CONSTRAINT = "no_room_time_conflict"

metadata = MetaData()

school_years = Table(
    "school_years", metadata,
    Column("school_year_id", String(64), primary_key=True),
    Column("sy_code", String(32), nullable=False),
    Column("status", String(16), nullable=False, default="Active"),
    Column("start_date", Date, nullable=True),
)

terms = Table(
    "terms", metadata,
    Column("term_id", String(64), primary_key=True),
    Column("term_code", String(32), nullable=False),
    Column("description", Text, nullable=True),
)

sections = Table(
    "sections", metadata,
    Column("section_id", String(64), primary_key=True),
    Column("section_name", String(64), nullable=False),
    Column("grade_level", Integer, nullable=True),
    Column("track_code", String(16), nullable=True),
    Column("strand_code", String(16), nullable=True),
)

subjects = Table(
    "subjects", metadata,
    Column("subject_id", String(64), primary_key=True),
    Column("subject_code", String(32), nullable=False, default=""),
    Column("subject_title", String(255), nullable=False),
    Column("grade_level", Integer, nullable=True),
    Column("strand_code", String(16), nullable=True),
)

teachers = Table(
    "teachers", metadata,
    Column("teacher_id", String(64), primary_key=True),
    Column("first_name", String(64), nullable=False, default=""),
    Column("last_name", String(64), nullable=False, default=""),
    Column("email", String(255), nullable=True),
    Column("employee_number", String(32), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
)

section_schedules = Table(
    "section_schedules", metadata,
    Column("schedule_id", Integer, primary_key=True, autoincrement=True),
    Column("school_year_id", String(64), ForeignKey("school_years.school_year_id"), nullable=False),
    Column("term_id", String(64), ForeignKey("terms.term_id"), nullable=False),
    Column("section_id", String(64), ForeignKey("sections.section_id"), nullable=False),
    Column("day", Integer, nullable=False),
    Column("period_number", Integer, nullable=False),
    Column("start_time", String(5), nullable=True),
    Column("end_time", String(5), nullable=True),
    Column("subject_id", String(64), ForeignKey("subjects.subject_id"), nullable=False),
    Column("teacher_id", String(64), ForeignKey("teachers.teacher_id"), nullable=True),
    Column("room", String(64), nullable=True),
    # getrimmt + case-folded, NULL wenn kein Raum
    Column("room_key", String(64), nullable=True),
    Column("notes", Text, nullable=True),
    UniqueConstraint("school_year_id", "term_id", "section_id", "day", "period_number",
                     name=SECTION_CONSTRAINT),
    UniqueConstraint("school_year_id", "term_id", "day", "period_number", "teacher_id",
                     name=TEACHER_CONSTRAINT),
    UniqueConstraint("school_year_id", "term_id", "day", "period_number", "room_key",
                     name=ROOM_CONSTRAINT),
)
