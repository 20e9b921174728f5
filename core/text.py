"""Cleanup helpers for the flattened text of a listing row."""

CLICK_SENTINEL = "[click"
URL_SCHEMES = ("https://", "http://")


def disable_urls(s: str) -> str:
    """Strip URL schemes so Discord does not unfurl links found in descriptions."""
    while any(scheme in s for scheme in URL_SCHEMES):
        for scheme in URL_SCHEMES:
            s = s.replace(scheme, "")
    return s.strip()


def normalize(line: str) -> str:
    """Drop the "[click here for more...]" trailer and any URL schemes."""
    kept: list[str] = []
    for token in disable_urls(line).split():
        if token.lower() == CLICK_SENTINEL:
            break
        kept.append(token)
    return " ".join(kept).strip()


def classify(raw_text: str) -> list[str]:
    return [line.strip() for line in raw_text.splitlines() if line.strip()]


def split_title_line(lines: list[str]) -> tuple[str | None, list[str]]:
    if not lines:
        return None, []
    return lines[0], lines[1:]
