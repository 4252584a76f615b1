from pydantic import BaseModel, Field, field_validator, model_validator


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


# ─── ZEITRASTER (Stundentafel der Sektionen) ───

class PeriodSlot(BaseModel):
    """Eine einzelne Unterrichtsstunde im Tagesraster."""
    # Laufende Nummer der Stunde, 1-basiert (1. Stunde, 2. Stunde, ...)
    period_number: int = Field(ge=1)
    # Anzeigename, z.B. "3. Stunde"
    label: str
    # Beginn der Stunde im Format "HH:MM"
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    # Ende der Stunde im Format "HH:MM"
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")

    @model_validator(mode='after')
    def validate_times(self):
        if _minutes(self.start_time) >= _minutes(self.end_time):
            raise ValueError(
                f"Stunde {self.period_number}: Beginn {self.start_time} "
                f"liegt nicht vor Ende {self.end_time}")
        return self

    @property
    def time_range(self) -> str:
        return f"{self.start_time}–{self.end_time}"


class PauseSlot(BaseModel):
    """Eine Pause zwischen Unterrichtsstunden (nur Anzeige)."""
    # Nach welcher Stunde die Pause folgt (z.B. 2 = nach 2. Stunde)
    after_period: int
    # Dauer der Pause in Minuten
    duration_minutes: int
    label: str = "Pause"


class TimeGridConfig(BaseModel):
    """Wochenraster: Unterrichtstage und feste Stundentafel.

    Die Stundentafel ist zur Laufzeit nicht editierbar und definiert die
    endliche Menge an Zeitslots pro Tag. Ein Slot wird immer über
    (Tag-Index, Stundennummer) adressiert.
    """
    # Anzahl Unterrichtstage pro Woche (5 oder 6)
    days_per_week: int = Field(6, ge=5, le=6,
        description="Unterrichtstage pro Woche")
    # Namen der Wochentage in Reihenfolge (Index 0 = Montag)
    day_names: list[str] = Field(
        default=["Mo", "Di", "Mi", "Do", "Fr", "Sa"],
        description="Namen der Wochentage")
    # Alle Unterrichtsstunden des Tages (Pausen ausgenommen)
    periods: list[PeriodSlot] = Field(
        description="Alle Unterrichtsstunden des Tages mit Uhrzeiten")
    # Pausen zwischen den Stunden
    pauses: list[PauseSlot] = Field(default_factory=list,
        description="Pausen zwischen den Stunden")

    @model_validator(mode='after')
    def validate_grid(self):
        """Prüft Tagesnamen, Reihenfolge und Überschneidungen der Stunden."""
        if len(self.day_names) != self.days_per_week:
            raise ValueError(
                f"{len(self.day_names)} Tagesnamen für "
                f"{self.days_per_week} Unterrichtstage angegeben")
        if not self.periods:
            raise ValueError("Stundentafel ist leer")
        numbers = [p.period_number for p in self.periods]
        if len(set(numbers)) != len(numbers):
            raise ValueError(f"Doppelte Stundennummern: {numbers}")
        if numbers != sorted(numbers):
            raise ValueError(f"Stunden nicht aufsteigend sortiert: {numbers}")
        for prev, cur in zip(self.periods, self.periods[1:]):
            if _minutes(cur.start_time) < _minutes(prev.end_time):
                raise ValueError(
                    f"Stunde {cur.period_number} beginnt vor Ende "
                    f"von Stunde {prev.period_number}")
        return self

    def get_period(self, period_number: int) -> PeriodSlot | None:
        """Gibt die Stunde zur Nummer zurück, None wenn unbekannt."""
        for p in self.periods:
            if p.period_number == period_number:
                return p
        return None

    @property
    def period_numbers(self) -> list[int]:
        return [p.period_number for p in self.periods]

    def day_name(self, day: int) -> str:
        return self.day_names[day] if 0 <= day < len(self.day_names) else str(day)

    def day_index(self, name: str) -> int:
        """Tag-Index zu einem Tagesnamen (Groß-/Kleinschreibung egal)."""
        lowered = [d.lower() for d in self.day_names]
        try:
            return lowered.index(name.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unbekannter Wochentag '{name}'. "
                f"Erlaubt: {', '.join(self.day_names)}") from None


# ─── DATENBANK ───

class StoreConfig(BaseModel):
    """Anbindung an die relationale Datenbank."""
    # SQLAlchemy-URL, z.B. "sqlite:///output/stundenplan.db" oder postgresql://...
    database_url: str = Field("sqlite:///output/stundenplan.db",
        description="SQLAlchemy-Datenbank-URL")
    # SQL-Statements loggen
    echo: bool = Field(False, description="SQL-Statements ausgeben")


# ─── ZUGRIFF ───

class AccessConfig(BaseModel):
    """Welche Rollen den Stundenplan verändern dürfen."""
    # Rollen mit Schreibrecht (alle anderen: nur Ansicht)
    write_roles: list[str] = Field(default=["super_admin"],
        description="Rollen mit Schreibrecht")
    # Rolle, wenn kein Profil gefunden wird
    default_role: str = Field("admin",
        description="Rolle ohne Profil (nur Ansicht)")

    @field_validator("write_roles")
    @classmethod
    def normalize_roles(cls, v: list[str]) -> list[str]:
        return [r.strip().lower() for r in v if r.strip()]


# ─── GESAMT-CONFIG ───

class PortalConfig(BaseModel):
    """Gesamtkonfiguration der Stundenplan-Verwaltung."""
    # Name der Schule
    school_name: str = Field("Muster-Schule",
        description="Name der Schule")
    # Wochenraster mit Tagen und Stundentafel
    time_grid: TimeGridConfig
    # Datenbank-Anbindung
    store: StoreConfig = Field(default_factory=StoreConfig)
    # Rollen und Schreibrechte
    access: AccessConfig = Field(default_factory=AccessConfig)
