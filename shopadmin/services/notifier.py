import enum
from dataclasses import dataclass
from typing import Dict, List

from shopadmin.services.batch import BatchResult


class NoticeLevel(str, enum.Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str

    def to_dict(self) -> Dict:
        return {"level": self.level.value, "message": self.message}


class Notifier:
    """Collects operator-facing messages; the UI decides how to show them."""

    def __init__(self):
        self.notices: List[Notice] = []

    def success(self, message: str) -> None:
        self.notices.append(Notice(NoticeLevel.SUCCESS, message))

    def info(self, message: str) -> None:
        self.notices.append(Notice(NoticeLevel.INFO, message))

    def warning(self, message: str) -> None:
        self.notices.append(Notice(NoticeLevel.WARNING, message))

    def error(self, message: str) -> None:
        self.notices.append(Notice(NoticeLevel.ERROR, message))

    def report_batch(self, result: BatchResult, success_message: str, failure_message: str) -> None:
        """
        Two independent messages, each only when its count is non-zero.
        `{n}` in a message is replaced with the count.
        """
        if result.success_count > 0:
            self.success(success_message.replace("{n}", str(result.success_count)))
        if result.fail_count > 0:
            self.warning(failure_message.replace("{n}", str(result.fail_count)))

    def drain(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices
