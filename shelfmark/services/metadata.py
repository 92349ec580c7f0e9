"""Link preview metadata: fetch a page and read its Open Graph/Twitter tags."""

from __future__ import annotations

import logging
import warnings
from dataclasses import asdict, dataclass
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from shelfmark.errors import FetchError

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_BYTES = 2_500_000

TITLE_SOURCES = (("property", "og:title"), ("name", "twitter:title"))
DESCRIPTION_SOURCES = (
    ("property", "og:description"),
    ("name", "twitter:description"),
    ("name", "description"),
)
IMAGE_SOURCES = (("property", "og:image"), ("name", "twitter:image"))


@dataclass
class PageMetadata:
    title: str | None
    description: str | None
    image: str | None

    def as_dict(self) -> dict:
        return asdict(self)


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _meta_content(soup: BeautifulSoup, sources) -> str | None:
    for attribute, key in sources:
        tag = soup.find("meta", attrs={attribute: key})
        if tag is None:
            continue
        content = _clean(tag.get("content"))
        if content:
            return content
    return None


def _absolute_image(image: str | None, base_url: str) -> str | None:
    if not image or not image.startswith("/"):
        return image
    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        return image
    if image.startswith("//"):
        return f"{parsed.scheme}:{image}"
    return f"{parsed.scheme}://{parsed.netloc}{image}"


def _build_soup(html: str) -> BeautifulSoup:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        return BeautifulSoup(html, "lxml")


def extract_metadata(html: str | None, base_url: str) -> PageMetadata:
    """Read title, description and image from a page, most specific tag first.

    Absent fields come back as ``None``. A root-relative image path is made
    absolute against ``base_url``'s scheme and host.
    """
    soup = _build_soup(html or "")

    title = _meta_content(soup, TITLE_SOURCES)
    if not title and soup.title is not None:
        title = _clean(soup.title.get_text())

    return PageMetadata(
        title=title,
        description=_meta_content(soup, DESCRIPTION_SOURCES),
        image=_absolute_image(_meta_content(soup, IMAGE_SOURCES), base_url),
    )


def fetch_page(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    max_bytes: int = DEFAULT_MAX_BYTES,
    transport: httpx.BaseTransport | None = None,
) -> tuple[str, str]:
    """GET ``url`` and return ``(html, final_url)``; raise ``FetchError`` otherwise."""
    try:
        with httpx.Client(
            follow_redirects=True,
            max_redirects=max_redirects,
            timeout=timeout,
            headers=DEFAULT_HEADERS,
            transport=transport,
        ) as client:
            with client.stream("GET", url) as response:
                if not response.is_success:
                    raise FetchError(
                        "Error fetching metadata from URL",
                        detail=f"HTTP {response.status_code}",
                    )
                chunks = []
                total = 0
                for chunk in response.iter_bytes():
                    total += len(chunk)
                    if total > max_bytes:
                        break
                    chunks.append(chunk)
                encoding = response.encoding or "utf-8"
                return (
                    b"".join(chunks).decode(encoding, errors="ignore"),
                    str(response.url),
                )
    except httpx.TimeoutException as exc:
        raise FetchError(
            "Error fetching metadata from URL", detail="Request timed out"
        ) from exc
    except httpx.TooManyRedirects as exc:
        raise FetchError(
            "Error fetching metadata from URL", detail="Too many redirects"
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(
            "Error fetching metadata from URL", detail=str(exc) or exc.__class__.__name__
        ) from exc


def fetch_url_metadata(url: str, **fetch_options) -> dict:
    """Fetch ``url`` and return its preview metadata plus the requested URL."""
    url = (url or "").strip()
    try:
        html, _ = fetch_page(url, **fetch_options)
    except FetchError as exc:
        logger.warning("Error fetching URL metadata for %s: %s", url, exc.detail)
        raise
    payload = extract_metadata(html, url).as_dict()
    payload["url"] = url
    return payload


def fetch_options_from_config(config) -> dict:
    return {
        "timeout": config["METADATA_FETCH_TIMEOUT"],
        "max_redirects": config["METADATA_MAX_REDIRECTS"],
        "max_bytes": config["METADATA_MAX_BYTES"],
    }
