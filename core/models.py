from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class SkipReason(Enum):
    EMPTY = "empty"
    FILTERED = "filtered"
    PARSE_ANOMALY = "parse_anomaly"
    NOT_TODAY = "not_today"
    ALREADY_SEEN = "already_seen"
    NO_LINK = "no_link"
    SEARCH_LINK = "search_link"


class TickState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    PROCESSING = "processing"
    DELIVERING = "delivering"


class TickStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ListingEntry:
    text: str
    link: str | None


@dataclass(frozen=True)
class TitleLine:
    title: str
    date_added: date
    trailing_text: str


@dataclass(frozen=True)
class ParsedProduct:
    title: str
    date_added: date
    description_lines: tuple[str, ...]
    price: str
    link: str


@dataclass(frozen=True)
class Kept:
    product: ParsedProduct
    message: str


@dataclass(frozen=True)
class Skipped:
    reason: SkipReason
    title: str = ""
    detail: str = ""


Outcome = Kept | Skipped


@dataclass
class TickReport:
    status: TickStatus = TickStatus.COMPLETED
    rows: int = 0
    sent: int = 0
    skipped: dict[SkipReason, int] = field(default_factory=dict)
    error: str | None = None

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())
