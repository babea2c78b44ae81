"""Value objects returned by the Google Workspace collaborators."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class EmailSendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    mime_type: str
    link: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name, "mimeType": self.mime_type}
        if self.link:
            result["link"] = self.link
        return result


@dataclass(frozen=True)
class CalendarEventResult:
    success: bool
    event_id: Optional[str] = None
    link: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BusySlot:
    """A booked interval on the calendar (ISO strings)."""

    start: str
    end: str

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end}
