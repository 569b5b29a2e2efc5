import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from .utils import get_home, read_json, write_json


FALLBACK_NAME_ENV = "EXAMPLE_1"
ROUTE_PREFIX_ENV = "HELLOFN_ROUTE_PREFIX"
INVOCATION_LOGS_ENV = "HELLOFN_INVOCATION_LOGS"
LOCAL_SETTINGS_FILE = "local.settings.json"

_FALSY = {"0", "false", "no", "off"}


class SettingsError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    home: Path
    fallback_name: Optional[str] = None
    route_prefix: str = ""
    invocation_logs: bool = True


def read_local_settings(path: Path) -> Dict[str, str]:
    """Return the ``Values`` block of a local.settings.json file.

    A missing file yields an empty mapping. A file that exists but cannot be
    parsed, or whose ``Values`` is not an object, raises SettingsError.
    """
    if not path.exists():
        return {}
    try:
        data = read_json(path)
    except (OSError, ValueError) as e:
        raise SettingsError(f"Cannot read settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")
    values = data.get("Values", {}) or {}
    if not isinstance(values, dict):
        raise SettingsError(f"'Values' in {path} must be an object")
    return {str(k): "" if v is None else str(v) for k, v in values.items()}


def write_local_settings(path: Path, values: Mapping[str, str]) -> None:
    write_json(path, {"IsEncrypted": False, "Values": dict(values)})


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    settings_path: Optional[Path] = None,
) -> Settings:
    """Build Settings from the environment and local.settings.json.

    Variables already present in the environment win over the file.
    """
    env = dict(os.environ if environ is None else environ)
    path = settings_path or Path.cwd() / LOCAL_SETTINGS_FILE
    merged = {**read_local_settings(path), **env}

    prefix = merged.get(ROUTE_PREFIX_ENV, "").strip("/")
    logs_flag = merged.get(INVOCATION_LOGS_ENV, "1").strip().lower()
    return Settings(
        home=get_home(merged),
        fallback_name=merged.get(FALLBACK_NAME_ENV) or None,
        route_prefix=prefix,
        invocation_logs=logs_flag not in _FALSY,
    )
