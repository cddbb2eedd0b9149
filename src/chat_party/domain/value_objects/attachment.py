from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Attachment:
    """Descriptor of an already-uploaded file."""

    url: str
    original_name: str
    mime_type: str
    size_bytes: int
    is_image: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attachment:
        return cls(
            url=data["url"],
            original_name=data["original_name"],
            mime_type=data["mime_type"],
            size_bytes=int(data["size_bytes"]),
            is_image=bool(data.get("is_image", False)),
        )
