"""
Notice board
Short, source-attributed messages shown in the dismissible banner area
"""
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

@dataclass(frozen=True)
class Notice:
    id: int
    level: NoticeLevel
    message: str
    source: Optional[str] = None

    def __str__(self) -> str:
        if self.source:
            return f"[{self.source}] {self.message}"
        return self.message

class NoticeBoard:
    """Collects notices for one storefront session"""

    def __init__(self):
        self._notices: List[Notice] = []
        self._ids = itertools.count(1)

    def post(self, level: NoticeLevel, message: str, source: Optional[str] = None) -> Notice:
        notice = Notice(id=next(self._ids), level=level, message=message, source=source)
        self._notices.append(notice)
        logger.log(
            logging.INFO if level == NoticeLevel.INFO else logging.WARNING,
            "Notice posted: %s", notice,
        )
        return notice

    def info(self, message: str, source: Optional[str] = None) -> Notice:
        return self.post(NoticeLevel.INFO, message, source)

    def warning(self, message: str, source: Optional[str] = None) -> Notice:
        return self.post(NoticeLevel.WARNING, message, source)

    def error(self, message: str, source: Optional[str] = None) -> Notice:
        return self.post(NoticeLevel.ERROR, message, source)

    def dismiss(self, notice_id: int) -> bool:
        """Remove a notice; returns False if it was already gone"""
        for index, notice in enumerate(self._notices):
            if notice.id == notice_id:
                del self._notices[index]
                return True
        return False

    def clear(self) -> None:
        self._notices.clear()

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices)

    def messages(self) -> List[str]:
        return [str(notice) for notice in self._notices]

    def __len__(self) -> int:
        return len(self._notices)
