from urllib.parse import quote, urlsplit, urlunsplit

from core.extract import extract_price, is_price_line
from core.models import ListingEntry, ParsedProduct, TitleLine
from core.text import normalize

STOREFRONT_FOOTER = "Dungeon Masters Guild"
SEARCH_ENDPOINT = "browse.php"
CALL_TO_ACTION = "[*click the link below for more information*]"
NO_PRICE = "Price: N/A"


def affiliate_link(link: str, affiliate_id: str) -> str:
    if not affiliate_id:
        return link
    # the existing query text is kept as-is, never decoded and re-encoded
    parts = urlsplit(link)
    param = f"affiliate_id={quote(affiliate_id, safe='')}"
    query = f"{parts.query}&{param}" if parts.query else param
    return urlunsplit(parts._replace(query=query))


def is_search_link(link: str) -> bool:
    """The browse page sometimes links rows back to itself instead of a product."""
    return SEARCH_ENDPOINT in urlsplit(link).path


def build_product(entry: ListingEntry, title_line: TitleLine, body_lines: list[str]) -> ParsedProduct:
    price = ""
    description: list[str] = []
    for line in body_lines:
        if is_price_line(line):
            price = extract_price(line)
            continue
        if line == STOREFRONT_FOOTER:
            continue
        cleaned = normalize(line)
        if cleaned:
            description.append(cleaned)

    return ParsedProduct(
        title=title_line.title,
        date_added=title_line.date_added,
        description_lines=tuple(description),
        price=price or NO_PRICE,
        link=entry.link or "",
    )


def format_price(price: str) -> list[str]:
    lines = []
    for field in price.splitlines():
        label, _, value = field.partition(": ")
        lines.append(f"**{label}**: {value}")
    return lines


def format_message(product: ParsedProduct, trailing_text: str, affiliate_id: str) -> str:
    lines = [
        f"**__{product.title}__**",
        f"**Date Added**: {product.date_added.isoformat()}",
        "**Description**:",
    ]
    trailing = normalize(trailing_text)
    if trailing:
        lines.append(trailing)
    lines.extend(product.description_lines)
    lines.append(CALL_TO_ACTION)
    lines.extend(format_price(product.price))
    lines.append(f"**Link**: {affiliate_link(product.link, affiliate_id)}")
    return "\n".join(lines)
