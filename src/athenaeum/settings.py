"""Settings management for Athenaeum catalogue.

Settings are persisted as JSON in ``_ATHENAEUM_DIR/athenaeum-settings.json``.
The file is created with defaults on first launch; users edit it directly
and restart the app to apply changes.
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

_ATHENAEUM_DIR = Path.home() / ".athenaeum"
_DEFAULT_SETTINGS_PATH = _ATHENAEUM_DIR / "athenaeum-settings.json"

CSV_DIALECTS = ("simple", "quoted")


@dataclass
class Settings:
    """Application settings persisted as JSON.

    Relative paths are resolved from ``_ATHENAEUM_DIR/``. Absolute paths and
    ``~`` expansion are supported.

    Attributes
    ----------
    db_path : str
        SQLite file holding the local catalogue snapshot.
    dataset_path : str
        Book dataset parsed when no snapshot exists. Empty means the
        dataset bundled with the package.
    snapshot_key : str
        Key of the snapshot blob.
    backend_path : str
        SQLite file standing in for the remote document backend.
    csv_dialect : str
        ``simple`` (split on every comma) or ``quoted`` (quote-aware).
    """

    db_path: str = "data/athenaeum.db"
    dataset_path: str = ""
    snapshot_key: str = "savedBooks"
    backend_path: str = "data/backend.db"
    csv_dialect: str = "simple"

    @staticmethod
    def _resolve(value: str) -> Path:
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = _ATHENAEUM_DIR / p
        return p.resolve()

    def resolve_db_path(self) -> Path:
        """Resolve ``db_path`` to an absolute path."""
        return self._resolve(self.db_path)

    def resolve_backend_path(self) -> Path:
        """Resolve ``backend_path`` to an absolute path."""
        return self._resolve(self.backend_path)

    def resolve_dataset_path(self) -> Optional[Path]:
        """Resolve ``dataset_path`` to an absolute path.

        Returns
        -------
        Path or None
            Absolute path to the dataset, or ``None`` for the bundled one.
        """
        if not self.dataset_path:
            return None
        return self._resolve(self.dataset_path)

    @property
    def quoted_csv(self) -> bool:
        return self.csv_dialect == "quoted"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a JSON file.

    Creates the default settings file if it does not exist. Unknown keys
    are ignored and an unreadable file yields the defaults.

    Parameters
    ----------
    path : Path, optional
        Path to the settings file. Defaults to
        ``_ATHENAEUM_DIR/athenaeum-settings.json``.

    Returns
    -------
    Settings
        Loaded (or default) application settings.
    """
    path = path or _DEFAULT_SETTINGS_PATH
    if not path.exists():
        settings = Settings()
        save_settings(settings, path)
        return settings
    try:
        data = json.loads(path.read_text())
        known = {f.name for f in fields(Settings)}
        settings = Settings(**{k: v for k, v in data.items() if k in known})
    except (json.JSONDecodeError, AttributeError, TypeError):
        return Settings()
    if settings.csv_dialect not in CSV_DIALECTS:
        settings.csv_dialect = "simple"
    return settings


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    """Write settings to a JSON file, creating parent directories."""
    path = path or _DEFAULT_SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2) + "\n")
