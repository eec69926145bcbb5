"""Configuration management for the church-hymn console.

Settings for the hymn library database, the secondary display, the
worship session snapshot and the automatic presentation timers.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

DISPLAY_PROBES = ("xrandr", "static")


def get_app_config_dir() -> Path:
    """Get the platform-specific config directory for church-hymn.

    Returns:
        Path to the config directory for church-hymn.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "church-hymn"
        return Path.home() / "AppData" / "Roaming" / "church-hymn"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "church-hymn"
    return Path.home() / ".config" / "church-hymn"


def get_app_config_path() -> Path:
    """Get the path to the config.toml file.

    Returns:
        Path to config.toml
    """
    return get_app_config_dir() / "config.toml"


@dataclass
class AppConfig:
    """Configuration for the church-hymn console.

    Attributes:
        db_path: Hymn library SQLite database
        display_probe: How secondary displays are detected ("xrandr" or "static")
        poll_interval_seconds: Seconds between display probes
        background_image: Image shown behind worship mode
        max_transition_history: Transition records kept for diagnostics
        snapshot_path: Worship session snapshot file
        snapshot_max_age_minutes: Older snapshots are ignored on resume
        auto_present_enabled: Start auto-present on launch
        auto_present_delay_seconds: Auto-present delay
        auto_advance_enabled: Start queue auto-advance on launch
        auto_advance_delay_seconds: Queue auto-advance delay
        log_dir: Directory for church_hymn.log
    """

    # Library
    db_path: Path = field(default_factory=lambda: get_app_config_dir() / "hymns.db")

    # Display
    display_probe: str = "xrandr"
    poll_interval_seconds: float = 2.0
    background_image: str = "serene"
    max_transition_history: int = 50

    # Session
    snapshot_path: Path = field(default_factory=lambda: get_app_config_dir() / "session_snapshot.json")
    snapshot_max_age_minutes: int = 30
    auto_present_enabled: bool = False
    auto_present_delay_seconds: int = 3
    auto_advance_enabled: bool = False
    auto_advance_delay_seconds: int = 5

    # App
    log_dir: Path = field(default_factory=lambda: get_app_config_dir() / "logs")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            AppConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If display.probe is not a known probe
        """
        if path is None:
            path = get_app_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        if "library" in data:
            library_data = data["library"]
            if "db_path" in library_data:
                config.db_path = Path(library_data["db_path"])

        if "display" in data:
            display_data = data["display"]
            config.display_probe = display_data.get("probe", config.display_probe)
            config.poll_interval_seconds = display_data.get("poll_interval_seconds", config.poll_interval_seconds)
            config.background_image = display_data.get("background_image", config.background_image)
            config.max_transition_history = display_data.get("max_transition_history", config.max_transition_history)

        if "session" in data:
            session_data = data["session"]
            if "snapshot_path" in session_data:
                config.snapshot_path = Path(session_data["snapshot_path"])
            config.snapshot_max_age_minutes = session_data.get("snapshot_max_age_minutes", config.snapshot_max_age_minutes)
            config.auto_present_enabled = session_data.get("auto_present_enabled", config.auto_present_enabled)
            config.auto_present_delay_seconds = session_data.get("auto_present_delay_seconds", config.auto_present_delay_seconds)
            config.auto_advance_enabled = session_data.get("auto_advance_enabled", config.auto_advance_enabled)
            config.auto_advance_delay_seconds = session_data.get("auto_advance_delay_seconds", config.auto_advance_delay_seconds)

        if "app" in data:
            app_data = data["app"]
            if "log_dir" in app_data:
                config.log_dir = Path(app_data["log_dir"])

        if config.display_probe not in DISPLAY_PROBES:
            raise ValueError(f"Unknown display probe '{config.display_probe}', expected one of {DISPLAY_PROBES}")

        return config

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_app_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "library": {
                "db_path": str(self.db_path),
            },
            "display": {
                "probe": self.display_probe,
                "poll_interval_seconds": self.poll_interval_seconds,
                "background_image": self.background_image,
                "max_transition_history": self.max_transition_history,
            },
            "session": {
                "snapshot_path": str(self.snapshot_path),
                "snapshot_max_age_minutes": self.snapshot_max_age_minutes,
                "auto_present_enabled": self.auto_present_enabled,
                "auto_present_delay_seconds": self.auto_present_delay_seconds,
                "auto_advance_enabled": self.auto_advance_enabled,
                "auto_advance_delay_seconds": self.auto_advance_delay_seconds,
            },
            "app": {
                "log_dir": str(self.log_dir),
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def ensure_directories(self) -> None:
        """Ensure all configured directories exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def ensure_app_config_exists(path: Optional[Path] = None) -> AppConfig:
    """Ensure config file exists, creating default if needed.

    Args:
        path: Config file (defaults to standard location)

    Returns:
        AppConfig instance
    """
    config_path = path or get_app_config_path()

    if config_path.exists():
        try:
            return AppConfig.load(config_path)
        except (tomllib.TOMLDecodeError, ValueError, TypeError):
            # If config is corrupted, create a new one
            pass

    config = AppConfig()
    config.save(config_path)
    return config
