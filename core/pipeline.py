import logging
from collections.abc import Iterable, Iterator
from datetime import date

from core.assembler import build_product, format_message, is_search_link
from core.dedup import DedupMemory
from core.errors import ParseAnomaly
from core.extract import parse_title_line
from core.models import Kept, ListingEntry, Outcome, Skipped, SkipReason
from core.text import classify, split_title_line

log = logging.getLogger(__name__)


def process_entry(
    entry: ListingEntry,
    memory: DedupMemory,
    title_filter: str = "",
    affiliate_id: str = "",
) -> Outcome:
    title_text, body_lines = split_title_line(classify(entry.text))
    if title_text is None:
        return Skipped(SkipReason.EMPTY)

    title_line = parse_title_line(title_text, title_filter)
    if title_line is None:
        return Skipped(SkipReason.FILTERED, detail=title_text)

    title = title_line.title
    already_seen = memory.observe(title)
    if title_line.date_added != memory.current_day:
        return Skipped(SkipReason.NOT_TODAY, title, title_line.date_added.isoformat())
    if already_seen:
        return Skipped(SkipReason.ALREADY_SEEN, title)
    if not entry.link:
        return Skipped(SkipReason.NO_LINK, title)
    if is_search_link(entry.link):
        return Skipped(SkipReason.SEARCH_LINK, title, entry.link)

    product = build_product(entry, title_line, body_lines)
    return Kept(product, format_message(product, title_line.trailing_text, affiliate_id))


def process_entries(
    entries: Iterable[ListingEntry],
    memory: DedupMemory,
    today: date,
    title_filter: str = "",
    affiliate_id: str = "",
) -> Iterator[Outcome]:
    """Yield one outcome per row, lazily.

    ``today`` is sampled once per tick by the caller, so a tick that straddles
    midnight does not reset the memory halfway through its rows.
    """
    memory.roll(today)
    for entry in entries:
        try:
            outcome = process_entry(entry, memory, title_filter, affiliate_id)
        except ParseAnomaly as e:
            log.warning(f"Skipping row: {e}")
            outcome = Skipped(SkipReason.PARSE_ANOMALY, detail=str(e))
        if isinstance(outcome, Skipped):
            log.debug(f"Skipped ({outcome.reason.value}): {outcome.title or outcome.detail}")
        yield outcome
