from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List


def get_user_config_dir() -> Path:
    """Return the user-specific configuration directory."""
    app_name = "notegen"
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        # Linux / Unix
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    config_dir = base / app_name
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


USER_CONFIG_DIR = get_user_config_dir()
ENV_PATH = USER_CONFIG_DIR / "config.env"

GROQ_KEY_NAME = "GROQ_API_KEY"
MISTRAL_KEY_NAME = "MISTRAL_API_KEY"
MANAGED_KEYS = (GROQ_KEY_NAME, MISTRAL_KEY_NAME)


def parse_env_file(path: Path = ENV_PATH) -> Dict[str, str]:
    if not path.exists():
        return {}
    result: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if not value:
            continue
        result[name] = value
    return result


def collect_preserved_lines(path: Path = ENV_PATH) -> List[str]:
    if not path.exists():
        return []
    preserved: List[str] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        stripped = raw_line.strip()
        if not stripped:
            continue
        if stripped.startswith("# notegen configuration") or stripped.startswith("# Last updated:"):
            continue
        if stripped == "# Other values preserved from before":
            continue
        if stripped.startswith("#") or "=" not in stripped:
            preserved.append(raw_line)
            continue
        name = stripped.split("=", 1)[0].strip()
        if name in MANAGED_KEYS:
            continue
        preserved.append(raw_line)
    return preserved


def write_env_file(
    values: Dict[str, str],
    preserved_lines: Iterable[str],
    path: Path = ENV_PATH,
) -> None:
    lines = ["# notegen configuration", f"# Last updated: {datetime.now():%Y-%m-%d %H:%M:%S}"]
    for key in MANAGED_KEYS:
        value = values.get(key, "")
        if value:
            lines.append(f'{key}="{value}"')
    preserved = list(preserved_lines)
    if preserved:
        lines.append("")
        lines.append("# Other values preserved from before")
        lines.extend(preserved)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def preview_key(key: str) -> str:
    if len(key) <= 8:
        return key
    return f"{key[:4]}...{key[-4:]}"
