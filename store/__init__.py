"""Datenbank-Anbindung (SQLAlchemy Core)."""

from store.errors import StoreError, translate_store_error
from store.repository import ScheduleStore

__all__ = ["ScheduleStore", "StoreError", "translate_store_error"]
