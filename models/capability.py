"""Schreibrecht als expliziter Wert statt verstreuter Rollenabfragen."""

from typing import Optional

from pydantic import BaseModel

from config.schema import AccessConfig


class Capability(BaseModel):
    """Was der aktuelle Aufrufer am Stundenplan tun darf."""

    role: str = "admin"
    can_write: bool = False

    @classmethod
    def for_role(cls, role: Optional[str], access: AccessConfig) -> "Capability":
        """Leitet das Schreibrecht aus der Rolle ab (ohne Rolle: default_role)."""
        effective = (role or access.default_role).strip().lower()
        return cls(role=effective, can_write=effective in access.write_roles)
