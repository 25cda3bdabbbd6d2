"""Anchor href extraction from HTML document bodies."""

import logging
from typing import List

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def extract_links(body: str) -> List[str]:
    """Return the href of every <a> tag in document order, empty ones dropped."""
    if not body:
        return []

    soup = BeautifulSoup(body, 'html.parser')
    links = []
    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if href:
            links.append(href)

    logger.debug(f"Extracted {len(links)} links")
    return links
