from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

# Checked in order; a variable already set wins over later files.
ENV_FILES = (
    Path(__file__).resolve().parents[1] / ".env",
    Path(__file__).resolve().parents[2] / ".env",
)


def load_env() -> List[Path]:
    """Load the backend and repo-root .env files and return the ones that were read."""
    loaded = [path for path in ENV_FILES if path.exists()]
    for path in loaded:
        load_dotenv(path)
    if not loaded:
        fallback = find_dotenv(usecwd=True)
        if fallback:
            load_dotenv(fallback)
            loaded.append(Path(fallback))

    if not os.getenv("PUBG_API_KEY", "").strip():
        logger.warning("PUBG_API_KEY is not set; provider calls require DEBUG_MODE=true")
    return loaded
