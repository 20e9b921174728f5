import logging

import httpx
from bs4 import BeautifulSoup

from core.errors import FetchError
from core.models import ListingEntry

log = logging.getLogger(__name__)

BASE_URL = "https://www.dmsguild.com"
SEARCH_URL = f"{BASE_URL}/browse.php"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def search_url(keywords: str) -> str:
    # keywords come from config already url-encoded (e.g. "fantasy%20grounds")
    return f"{SEARCH_URL}?keywords={keywords}&page=1&sort=4a"


def extract_rows(html: str) -> list[ListingEntry]:
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table", class_="productListing")
    if table is None:
        log.warning("No productListing table found in search results")
        return []

    entries = []
    for row in table.find_all("tr"):
        anchor = row.find("a", href=True)
        entries.append(
            ListingEntry(
                text=row.get_text(),
                link=anchor["href"] if anchor else None,
            )
        )
    log.info(f"Found {len(entries)} listing rows")
    return entries


class DMsGuildClient:
    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> str:
        client = await self._get_client()
        log.info(f"Searching: {url}")
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(url, f"DMs Guild search failed: {e}") from e
        return resp.text

    async def search(self, keywords: str) -> str:
        return await self.fetch(search_url(keywords))
