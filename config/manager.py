"""Portal-Konfiguration als kommentierte YAML-Datei (ruamel.yaml + Pydantic)."""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from config.schema import PortalConfig

logger = logging.getLogger(__name__)

yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


_YAML_HEADER = f"""\
# ============================================
# Sektions-Stundenplan: Portal-Konfiguration
# Angelegt am {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "time_grid": (
        "Zeitraster",
        "Unterrichtstage und feste Stundentafel (Pausen nur zur Anzeige).\n"
        "Ein Slot = (Tag, Stunde). Zur Laufzeit nicht editierbar.",
    ),
    "store": (
        "Datenbank",
        "SQLAlchemy-URL. Die Datenbank erzwingt die Eindeutigkeit von\n"
        "Sektion/Lehrkraft/Raum pro Slot zusätzlich zur Konfliktprüfung.",
    ),
    "access": (
        "Zugriff",
        "Nur Rollen in write_roles dürfen Stundenpläne verändern.",
    ),
}


class ConfigManager:
    """Liest und schreibt die Portal-Konfiguration (eine YAML-Datei)."""

    DEFAULT_CONFIG = Path("config") / "portal_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else self.DEFAULT_CONFIG

    def first_run_check(self) -> bool:
        """True solange noch keine Konfigurationsdatei angelegt wurde."""
        return not self.path.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> PortalConfig:
        """Liest die YAML-Datei und validiert sie als PortalConfig.

        Raises:
            FileNotFoundError: Datei fehlt (noch kein setup).
            ValueError: YAML nicht lesbar oder Inhalt ungültig.
        """
        target = Path(path) if path is not None else self.path
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py setup' aus, um das Portal einzurichten."
            )
        try:
            raw = yaml.load(target.read_text(encoding="utf-8"))
        except YAMLError as e:
            raise ValueError(f"Konfigurationsdatei ungültig: {target}\nYAML-Fehler: {e}") from e
        if raw is not None and not isinstance(raw, dict):
            raise ValueError(f"Konfigurationsdatei ungültig: {target}\nErwartet wird eine Zuordnung.")

        try:
            config = PortalConfig.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise ValueError(f"Konfigurationsdatei ungültig: {target}\n{e}") from e
        logger.debug(f"Konfiguration geladen: {target} ({len(config.time_grid.periods)} Stunden)")
        return config

    # ─── Speichern ───

    def save(self, config: PortalConfig, path: Optional[Path] = None) -> Path:
        """Schreibt die Konfiguration als kommentierte YAML-Datei."""
        target = Path(path) if path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as stream:
            stream.write(_YAML_HEADER + "\n")
            yaml.dump(self._build_commented_yaml(config), stream)
        logger.info(f"Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: PortalConfig) -> CommentedMap:
        """Abschnittsüberschriften und Zeilenkommentare für die YAML-Datei."""
        cm = CommentedMap(json.loads(config.model_dump_json()))
        for key, (title, text) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(key, before=f"\n─── {title} ───\n{text}")

        store_map = CommentedMap(cm["store"])
        store_map.yaml_add_eol_comment("z.B. postgresql://user@host/db", "database_url")
        cm["store"] = store_map

        access_map = CommentedMap(cm["access"])
        access_map.yaml_add_eol_comment("ohne Profil: nur Ansicht", "default_role")
        cm["access"] = access_map
        return cm
