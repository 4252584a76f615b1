"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, field_validator


class Teacher(BaseModel):
    """Repräsentiert eine einzelne Lehrkraft."""

    teacher_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    employee_number: Optional[str] = None
    is_active: bool = True

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()

    @property
    def display_name(self) -> str:
        """Voller Name, sonst E-Mail, sonst Personalnummer."""
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email or self.employee_number or "(Lehrkraft ohne Namen)"
