from config.schema import (
    AccessConfig,
    PauseSlot,
    PeriodSlot,
    PortalConfig,
    StoreConfig,
    TimeGridConfig,
)


def default_time_grid() -> TimeGridConfig:
    """Standard-Stundentafel (nur Unterrichtsstunden, Pausen separat).

    Stundenraster:
    1. Stunde  07:00 - 08:00
    2. Stunde  08:00 - 09:00
       ── Pause (20 min) ──
    3. Stunde  09:20 - 10:20
    4. Stunde  10:20 - 11:20
       ── Mittagspause (50 min) ──
    5. Stunde  12:10 - 13:10
    6. Stunde  13:10 - 14:10
       ── Pause (20 min) ──
    7. Stunde  14:30 - 15:30
    8. Stunde  15:30 - 16:30
    9. Stunde  16:30 - 17:30

    Unterricht Montag bis Samstag.
    """
    return TimeGridConfig(
        days_per_week=6,
        day_names=["Mo", "Di", "Mi", "Do", "Fr", "Sa"],
        periods=[
            PeriodSlot(period_number=1, label="1. Stunde", start_time="07:00", end_time="08:00"),
            PeriodSlot(period_number=2, label="2. Stunde", start_time="08:00", end_time="09:00"),
            PeriodSlot(period_number=3, label="3. Stunde", start_time="09:20", end_time="10:20"),
            PeriodSlot(period_number=4, label="4. Stunde", start_time="10:20", end_time="11:20"),
            PeriodSlot(period_number=5, label="5. Stunde", start_time="12:10", end_time="13:10"),
            PeriodSlot(period_number=6, label="6. Stunde", start_time="13:10", end_time="14:10"),
            PeriodSlot(period_number=7, label="7. Stunde", start_time="14:30", end_time="15:30"),
            PeriodSlot(period_number=8, label="8. Stunde", start_time="15:30", end_time="16:30"),
            PeriodSlot(period_number=9, label="9. Stunde", start_time="16:30", end_time="17:30"),
        ],
        pauses=[
            PauseSlot(after_period=2, duration_minutes=20, label="Pause"),
            PauseSlot(after_period=4, duration_minutes=50, label="Mittagspause"),
            PauseSlot(after_period=6, duration_minutes=20, label="Pause"),
        ],
    )


def default_portal_config() -> PortalConfig:
    """Vollständige Standard-Konfiguration."""
    return PortalConfig(
        school_name="Muster-Schule",
        time_grid=default_time_grid(),
        store=StoreConfig(),
        access=AccessConfig(),
    )
