"""
Environment-driven database configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

_ENV_FILES = (".env", ".env.local")
_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` in the project root.
    Variables already present in the process environment win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in _ENV_FILES:
        env_path = project_root / filename
        if not env_path.exists():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is not None and parsed[0] not in os.environ:
                os.environ[parsed[0]] = parsed[1]


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg 3 driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def resolve_database_url() -> str:
    """
    DATABASE_URL first, then CLOUD_DATABASE_URL when ENVIRONMENT is a
    deployed one, then LOCAL_DATABASE_URL.
    """

    load_env_files()

    candidates = [os.getenv("DATABASE_URL")]
    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    if environment in _CLOUD_ENVIRONMENTS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for url in candidates:
        if url:
            return normalize_postgres_url(url)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
