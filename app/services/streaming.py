from __future__ import annotations

from typing import Any

from app.models.events import EventType, SSEEvent


def progress(percent: int, status: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(
        event=EventType.PROGRESS,
        data={"progress": percent, "status": status, **kwargs},
    )


def completed(result: dict[str, Any], *, from_cache: bool) -> SSEEvent:
    """Terminal success event carrying the research result."""
    return SSEEvent(event=EventType.COMPLETED, data={**result, "fromCache": from_cache})


def error(message: str, status_code: int | None = None) -> SSEEvent:
    data: dict[str, Any] = {"error": message}
    if status_code is not None:
        data["statusCode"] = status_code
    return SSEEvent(event=EventType.ERROR, data=data)
