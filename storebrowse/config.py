from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from .api import DEFAULT_TIMEOUT_SECONDS

DEFAULT_BASE_URL = "http://localhost:8080"
URL_ENV_VAR = "STOREBROWSE_URL"


@dataclass(frozen=True)
class BrowserConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    download_dir: str = str(Path.home() / "Downloads")


def config_base_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / "storebrowse"


def default_config_path() -> Path:
    return config_base_dir() / "config.json"


def _read_config_file(path: Path) -> dict[str, object]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload


def load_config(path: Optional[Path] = None) -> BrowserConfig:
    payload = _read_config_file(path or default_config_path())
    defaults = BrowserConfig()
    base_url = payload.get("base_url")
    if not isinstance(base_url, str) or not base_url.strip():
        base_url = defaults.base_url
    env_url = os.environ.get(URL_ENV_VAR, "").strip()
    if env_url:
        base_url = env_url
    timeout = payload.get("timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        timeout = defaults.timeout
    download_dir = payload.get("download_dir")
    if not isinstance(download_dir, str) or not download_dir.strip():
        download_dir = defaults.download_dir
    return BrowserConfig(
        base_url=base_url.strip().rstrip("/"),
        timeout=float(timeout),
        download_dir=download_dir,
    )


def save_config(config: BrowserConfig, path: Optional[Path] = None) -> bool:
    target = path or default_config_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_suffix(".tmp")
        temp_path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")
        temp_path.replace(target)
    except Exception:
        return False
    return True
