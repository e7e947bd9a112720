from dataclasses import dataclass, replace
from typing import Dict, Optional


@dataclass
class ImageRef:
    url: str
    alt_text: Optional[str] = None
    position: Optional[int] = None
    # remote id; None for entries that were never persisted
    identifier: Optional[str] = None

    def copy(self, **changes) -> "ImageRef":
        return replace(self, **changes)

    @classmethod
    def from_server(cls, data: Dict) -> "ImageRef":
        return cls(
            url=data.get("url") or "",
            alt_text=data.get("alt_text"),
            position=data.get("position"),
            identifier=data.get("uuid") or data.get("id"),
        )

    def to_dict(self) -> Dict:
        return {
            "url": self.url,
            "alt_text": self.alt_text,
            "position": self.position,
            "identifier": self.identifier,
        }


@dataclass(frozen=True)
class LocalFile:
    """Binary picked by the operator, held in memory until commit."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class PendingUpload:
    file: LocalFile
    alt_text: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "filename": self.file.filename,
            "size": self.file.size,
            "content_type": self.file.content_type,
            "alt_text": self.alt_text,
        }


@dataclass
class PendingDeletion:
    remote_identifier: str
    # kept so the thumbnail can still be shown and the undo can find the original
    url: str

    def to_dict(self) -> Dict:
        return {"remote_identifier": self.remote_identifier, "url": self.url}


@dataclass(frozen=True)
class ReorderItem:
    image_identifier: str
    position: int

    def to_payload(self) -> Dict:
        return {"imageId": self.image_identifier, "position": self.position}
