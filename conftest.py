"""Root conftest: pins client settings before chat_session.config is imported."""
from __future__ import annotations

import os
from pathlib import Path


def load_env_file(path: Path) -> None:
    """Apply KEY=VALUE lines from ``path`` without overriding the real environment."""
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())


load_env_file(Path(__file__).resolve().parent / ".env.test")

os.environ.setdefault("API_BASE_URL", "http://chat.test")
os.environ.setdefault("ACCESS_TOKEN", "")
