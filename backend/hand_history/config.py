from __future__ import annotations

import os
from pathlib import Path


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def parse_env_lines(lines: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw_line in lines:
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        env_key = key.strip()
        if env_key:
            values[env_key] = _strip_quotes(value.strip())
    return values


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return

    for env_key, env_value in parse_env_lines(path.read_text(encoding="utf-8").splitlines()).items():
        # Exported variables win over file values.
        os.environ.setdefault(env_key, env_value)


def load_environment() -> None:
    """Load GEMINI_*, LLM_*, AUTO_ANALYZE_ON_QUESTION and MAX_SESSIONS from .env files."""
    backend_root = Path(__file__).resolve().parents[1]
    project_root = backend_root.parent

    _load_env_file(project_root / ".env")
    _load_env_file(backend_root / ".env")
