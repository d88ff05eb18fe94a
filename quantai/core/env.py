from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger as log


def load_local_environment() -> None:
    """Load environment variables (LLM_API_KEY, LLM_BASE_URL, ...) from a .env file.

    Canonical path: <project_root>/.env, falling back to ~/.quantai/.env.
    Already-set variables win over file values. The resolved path is exposed
    via QUANTAI_ENV_PATH for diagnostics.
    """
    project_root = Path(__file__).resolve().parents[2]
    candidates = [project_root / ".env", Path.home() / ".quantai" / ".env"]

    for env_path in candidates:
        if not env_path.exists():
            continue
        try:
            load_dotenv(dotenv_path=env_path, override=False)
        except OSError as e:
            log.warning(f"Could not read {env_path}: {e}")
            continue
        os.environ["QUANTAI_ENV_PATH"] = str(env_path)
        return

    os.environ.setdefault("QUANTAI_ENV_PATH", str(candidates[0]))
