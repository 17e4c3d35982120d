from __future__ import annotations

import logging
import urllib.request
from typing import List, Optional

from ..core.errors import ReferenceFetchError
from ..core.types import MoonEvent
from ..engines.specs import STATIC_API_BASE_URL
from .wire import loads_events

logger = logging.getLogger(__name__)


def year_url(year: int, base_url: str = STATIC_API_BASE_URL) -> str:
    return f"{base_url}{year}.json"


def _fetch(url: str, timeout: float) -> str:
    with urllib.request.urlopen(url, timeout=timeout) as r:
        status = getattr(r, "status", 200)
        if status != 200:
            raise ReferenceFetchError(f"HTTP status {status} for {url}")
        return r.read().decode("utf-8", errors="replace")


def fetch_year(year: int, *, base_url: Optional[str] = None, timeout: float = 30.0) -> List[MoonEvent]:
    """Download and decode one year of published events."""
    url = year_url(year, base_url or STATIC_API_BASE_URL)
    logger.info("fetching %s", url)
    try:
        text = _fetch(url, timeout)
    except OSError as e:
        raise ReferenceFetchError(f"cannot fetch {url}: {e}") from e
    return loads_events(text)
