from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TrendItem:
    title: str
    summary: str
    pub_date: datetime | str | None
    source: str
    source_type: str
    url: str = ""
    score: int = 0
    categories: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        pub_date = data.pop("pub_date")
        data["pubDate"] = pub_date.isoformat() if isinstance(pub_date, datetime) else pub_date
        data["sourceType"] = data.pop("source_type")
        data["categories"] = list(self.categories)
        return data
