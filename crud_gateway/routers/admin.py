"""运维路由：读取网关日志尾部，便于排查失败的写操作。"""

from __future__ import annotations

from collections import deque
from pathlib import Path

from fastapi import APIRouter, Depends, Query

from crud_core.utils.config import Settings, get_settings
from crud_core.utils.env import REPO_ROOT

from ..schemas import Envelope, LogLine, LogListData, ok


router = APIRouter()


def resolve_log_path(settings: Settings) -> Path | None:
    """LOG_FILE_PATH may be relative to the repository root."""

    if not settings.log_file_path:
        return None
    path = Path(settings.log_file_path)
    if path.is_absolute():
        return path
    return (REPO_ROOT / path).resolve()


def tail_lines(path: Path, limit: int) -> tuple[list[str], int]:
    """Last ``limit`` lines plus the total line count, streaming the file."""

    if not path.exists():
        return [], 0

    lines: deque[str] = deque(maxlen=limit)
    total = 0
    with path.open("r", encoding="utf-8", errors="ignore") as fp:
        for line in fp:
            total += 1
            lines.append(line.rstrip("\n"))
    return list(lines), total


@router.get("/logs", response_model=Envelope[LogListData])
def fetch_latest_logs(
    limit: int = Query(200, ge=10, le=2000, description="最多返回的行数"),
    settings: Settings = Depends(get_settings),
) -> Envelope[LogListData]:
    log_path = resolve_log_path(settings)
    if log_path is None:
        return ok(LogListData(lines=[], total=0, truncated=False), msg="LOG_FILE_PATH not configured")

    lines, total = tail_lines(log_path, limit)
    items = [
        LogLine(idx=total - len(lines) + index + 1, content=content)
        for index, content in enumerate(lines)
    ]
    return ok(LogListData(lines=items, total=total, truncated=len(lines) < total))
