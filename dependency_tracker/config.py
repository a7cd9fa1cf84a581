"""
Tracker settings and logging setup.

Settings are read in order, later sources overriding earlier ones:
1. Built-in defaults
2. `.dependency-tracker.yaml` at the project root (or an explicit file)
3. `DEPENDENCY_TRACKER_*` environment variables (a `.env` file is loaded first)

Values of the wrong type are logged and ignored; values under a minimum
are clamped to it.
"""

import logging
import os
import sys
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

import dotenv
import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


SETTINGS_FILE_NAME = ".dependency-tracker.yaml"
ENV_PREFIX = "DEPENDENCY_TRACKER_"

DEFAULT_EXCLUDED_FOLDERS = [
    "node_modules", ".next", ".git", "dist", "out",
    ".vscode", ".cursor", ".vibesync", ".dependencies",
]

MINIMUMS = {
    "debounce_delay_ms": 500,
    "polling_interval_seconds": 10,
    "max_files": 1,
    "max_file_size_bytes": 1,
}

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


@dataclass
class LivenessSettings:
    """
    The `liveness:` section.

    Attributes:
        disabled_rules: Rule names to skip (e.g. 'actions-directory')
        page_file_stems: Extra file stems treated as page components
        special_export_names: Extra export names the framework reads
        actions_directories: Extra directory names whose exports are actions
        route_roots: Extra route tree roots, relative to the project root
    """
    disabled_rules: List[str] = field(default_factory=list)
    page_file_stems: List[str] = field(default_factory=list)
    special_export_names: List[str] = field(default_factory=list)
    actions_directories: List[str] = field(default_factory=list)
    route_roots: List[str] = field(default_factory=list)


@dataclass
class TrackerSettings:
    """All user-facing settings."""
    excluded_folders: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_FOLDERS))
    debounce_delay_ms: int = 2000
    polling_interval_seconds: int = 60
    enable_polling: bool = False
    output_dir: str = ".dependencies"
    max_files: int = 20000
    max_file_size_bytes: int = 2 * 1024 * 1024
    liveness: LivenessSettings = field(default_factory=LivenessSettings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _valid(value: Any, expected: type) -> bool:
    if expected is list:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


def apply_values(settings: TrackerSettings, values: Mapping[str, Any], source: str) -> None:
    """Copy valid values onto settings, logging anything unusable."""
    setting_names = {f.name for f in fields(TrackerSettings)}
    for key, value in values.items():
        if key == "liveness":
            _apply_liveness(settings.liveness, value, source)
            continue
        if key not in setting_names:
            logger.warning("Unknown setting '%s' in %s ignored", key, source)
            continue
        expected = type(getattr(TrackerSettings(), key))
        if not _valid(value, expected):
            logger.warning("Setting '%s' in %s must be %s, got %r; ignored", key, source, expected.__name__, value)
            continue
        setattr(settings, key, value)


def _apply_liveness(liveness: LivenessSettings, values: Any, source: str) -> None:
    if not isinstance(values, dict):
        logger.warning("Setting 'liveness' in %s must be a mapping; ignored", source)
        return
    names = {f.name for f in fields(LivenessSettings)}
    for key, value in values.items():
        if key not in names:
            logger.warning("Unknown liveness setting '%s' in %s ignored", key, source)
        elif not _valid(value, list):
            logger.warning("Liveness setting '%s' in %s must be a list of strings; ignored", key, source)
        else:
            setattr(liveness, key, value)


def clamp(settings: TrackerSettings) -> None:
    for key, minimum in MINIMUMS.items():
        if getattr(settings, key) < minimum:
            logger.warning("Setting '%s' below minimum %d, using %d", key, minimum, minimum)
            setattr(settings, key, minimum)


def read_settings_file(path: str) -> Dict[str, Any]:
    """
    Load a YAML settings file.

    Raises:
        ConfigError: if the file cannot be read or is not a mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return raw


def _parse_env_value(raw: str, expected: type) -> Any:
    if expected is list:
        return [item.strip() for item in raw.split(",") if item.strip()]
    if expected is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        return raw
    if expected is int:
        try:
            return int(raw)
        except ValueError:
            return raw
    return raw


def env_values(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Settings found in DEPENDENCY_TRACKER_* variables."""
    values = {}
    defaults = TrackerSettings()
    for f in fields(TrackerSettings):
        if f.name == "liveness":
            continue
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None:
            values[f.name] = _parse_env_value(raw, type(getattr(defaults, f.name)))
    return values


def load_settings(
    project_root: str,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TrackerSettings:
    """
    Build settings for a project.

    Args:
        project_root: Project whose settings file to read
        config_path: Explicit settings file (must exist)
        environ: Environment mapping, os.environ by default

    Returns:
        TrackerSettings
    """
    settings = TrackerSettings()

    path = config_path or os.path.join(project_root, SETTINGS_FILE_NAME)
    if os.path.isfile(path):
        apply_values(settings, read_settings_file(path), path)
        logger.debug("Loaded settings from %s", path)
    elif config_path:
        raise ConfigError(f"Settings file not found: {config_path}")

    if environ is None:
        dotenv.load_dotenv()
        environ = os.environ
    apply_values(settings, env_values(environ), "environment")

    clamp(settings)
    return settings


def configure_logging(verbose: bool = False) -> None:
    """Send package logs to stderr with timestamps."""
    package_logger = logging.getLogger("dependency_tracker")
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(getattr(h, "_dependency_tracker", False) for h in package_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handler._dependency_tracker = True
        package_logger.addHandler(handler)
