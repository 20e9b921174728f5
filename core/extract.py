import logging
import re
from datetime import date

from core.errors import ParseAnomaly
from core.models import TitleLine

log = logging.getLogger(__name__)

DATE_MARKER = re.compile(r"\s*(?:[-–—]\s*)?Date\s+Added:\s*", re.IGNORECASE)
ADDED_TOKEN = "added:"
DATE_LEN = 10

DISCOUNT_PATTERN = re.compile(r"^\$?[\d.,]*\d\s+\$")
FLAT_PRICES = ("FREE", "Pay What You Want")


def split_title(line: str) -> tuple[str, str]:
    """Return (title, remainder) where remainder starts at the "Date Added" marker."""
    line = line.strip()
    match = DATE_MARKER.search(line)
    if not match:
        return line, ""
    return line[: match.start()].strip(), line[match.start() :].strip()


def parse_date_tokens(line: str, remainder: str) -> tuple[date, str]:
    tokens = remainder.split()
    for i, token in enumerate(tokens):
        if token.lower() != ADDED_TOKEN:
            continue
        if i + 1 >= len(tokens):
            raise ParseAnomaly(line, "date token missing after 'Added:'")
        work = tokens[i + 1]
        try:
            date_added = date.fromisoformat(work[:DATE_LEN])
        except ValueError:
            raise ParseAnomaly(line, "malformed date") from None
        trailing = [work[DATE_LEN:]] if len(work) > DATE_LEN else []
        trailing.extend(tokens[i + 2 :])
        return date_added, " ".join(trailing)
    raise ParseAnomaly(line, "no 'Added:' token")


def parse_title_line(line: str, title_filter: str = "") -> TitleLine | None:
    """Pull the title, date added and any trailing description text out of a title line.

    Returns None when a title filter is set and the title does not contain it.
    Raises ParseAnomaly when the date cannot be found.
    """
    title, remainder = split_title(line)
    if title_filter and title_filter not in title:
        return None
    date_added, trailing = parse_date_tokens(line, remainder)
    return TitleLine(title=title, date_added=date_added, trailing_text=trailing)


def is_price_line(line: str) -> bool:
    line = line.strip()
    return (
        line.startswith("$")
        or line in FLAT_PRICES
        or DISCOUNT_PATTERN.search(line) is not None
    )


def extract_price(line: str) -> str:
    line = line.strip()
    if DISCOUNT_PATTERN.search(line):
        tokens = line.split()
        if len(tokens) > 2:
            log.warning(f"Unexpected extra price tokens ignored: {tokens[2:]}")
        return f"Normal Price: {tokens[0]}\nSale Price: {tokens[1]}"
    if line.startswith("$") or line in FLAT_PRICES:
        return f"Price: {line}"
    raise ParseAnomaly(line, "not a price line")
