from models.timeslot import TimeSlot
from models.schedule_entry import ScheduleEntry, normalize_room
from models.school_year import SchoolYear, Term
from models.section import Section
from models.subject import Subject
from models.teacher import Teacher
from models.reference_data import ReferenceData
from models.capability import Capability

__all__ = [
    "TimeSlot",
    "ScheduleEntry",
    "normalize_room",
    "SchoolYear",
    "Term",
    "Section",
    "Subject",
    "Teacher",
    "ReferenceData",
    "Capability",
]
