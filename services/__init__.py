from services.errors import (
    InvalidSlotError,
    ScheduleError,
    ScheduleNotFoundError,
    ScheduleWriteError,
    ViewOnlyError,
)
from services.schedule_service import (
    BulkResult,
    BulkTargetResult,
    ScheduleService,
    SlotForm,
    SlotWriteResult,
)

__all__ = [
    "BulkResult",
    "BulkTargetResult",
    "InvalidSlotError",
    "ScheduleError",
    "ScheduleNotFoundError",
    "ScheduleService",
    "ScheduleWriteError",
    "SlotForm",
    "SlotWriteResult",
    "ViewOnlyError",
]
