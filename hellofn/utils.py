import json
import os
from pathlib import Path
from typing import Mapping, Optional


HELLOFN_HOME_ENV = "HELLOFN_HOME"


def get_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    home = (os.environ if environ is None else environ).get(HELLOFN_HOME_ENV)
    if home:
        return Path(home).expanduser()
    return Path.home() / ".hellofn"


def logs_dir(home: Optional[Path] = None) -> Path:
    return (home or get_home()) / "logs"


def log_path(name: str, home: Optional[Path] = None) -> Path:
    return logs_dir(home) / f"{name}.log"


def read_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    os.replace(tmp, path)
