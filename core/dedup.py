import logging
from dataclasses import dataclass, field
from datetime import date

log = logging.getLogger(__name__)


@dataclass
class DedupMemory:
    """Titles already seen on the current day. Cleared when the day changes."""

    current_day: date = field(default_factory=date.today)
    seen_titles: set[str] = field(default_factory=set)

    def roll(self, today: date) -> bool:
        if today == self.current_day:
            return False
        log.info(
            f"Day changed {self.current_day} -> {today}, "
            f"forgetting {len(self.seen_titles)} titles"
        )
        self.seen_titles = set()
        self.current_day = today
        return True

    def observe(self, title: str) -> bool:
        """Record a title. Returns True if it was already seen today."""
        if title in self.seen_titles:
            return True
        self.seen_titles.add(title)
        return False

    def __contains__(self, title: object) -> bool:
        return title in self.seen_titles

    def __len__(self) -> int:
        return len(self.seen_titles)
