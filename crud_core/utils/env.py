"""Locate and load ``.env`` files so uvicorn, scripts and tests see the same variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Tuple

from dotenv import load_dotenv


REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE_VARIABLE = "CRUD_ENV_FILE"


def candidate_env_files() -> list[Path]:
    """显式指定的 CRUD_ENV_FILE 优先，其次是工作目录和仓库根目录。"""

    candidates: list[Path] = []
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(Path.cwd() / ".env")
    root_env = REPO_ROOT / ".env"
    if root_env not in candidates:
        candidates.append(root_env)
    return candidates


@lru_cache(maxsize=1)
def load_env(paths: Tuple[str | Path, ...] | None = None) -> Tuple[Path, ...]:
    """Load every existing candidate once; already-set variables win.

    Returns the files that were actually read.
    """

    candidates: Iterable[str | Path] = paths if paths is not None else candidate_env_files()
    loaded: list[Path] = []
    for path in candidates:
        p = Path(path)
        if not p.is_file():
            continue
        load_dotenv(p, override=False)
        loaded.append(p)
    return tuple(loaded)
