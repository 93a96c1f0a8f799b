"""Internal/external classification of raw hrefs."""

from typing import Iterable
from urllib.parse import urljoin

from site_indexer.constants import (
    EXTERNAL_HREF_PREFIX,
    IGNORED_EXACT_HREFS,
    IGNORED_HREF_PREFIXES,
)
from site_indexer.models.page_models import ClassifiedLinks


def is_ignored_href(href: str | None) -> bool:
    """True for hrefs that are never crawled: empty, "/", anchors, mailto:, tel:."""
    if not href:
        return True
    if href in IGNORED_EXACT_HREFS:
        return True
    return href.startswith(IGNORED_HREF_PREFIXES)


def classify_links(hrefs: Iterable[str | None]) -> ClassifiedLinks:
    """
    Partition raw href values into internal and external sets.

    Classification is literal: hrefs starting with "http" are external, all
    others (relative, root-relative, protocol-relative) are internal and are
    resolved against the page URL later with ``resolve_link``. No
    normalization is applied, so both collections deduplicate by exact string
    and keep first-seen document order.
    """
    internal: dict[str, None] = {}
    external: dict[str, None] = {}

    for href in hrefs:
        if is_ignored_href(href):
            continue
        if href.startswith(EXTERNAL_HREF_PREFIX):
            external[href] = None
        else:
            internal[href] = None

    return ClassifiedLinks(internal=tuple(internal), external=tuple(external))


def resolve_link(link: str, base_url: str) -> str:
    """Resolve an internal link to an absolute URL against the page URL."""
    return urljoin(base_url, link)
