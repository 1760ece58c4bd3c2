import logging
import re
import time
from typing import Iterable, Optional

import requests

from community_map.config import DEFAULT_DENYLIST, NOMINATIM_DELAY, NOMINATIM_URL, USER_AGENT
from community_map.errors import RateLimitedError
from community_map.geocoding.retry import with_retry
from community_map.models.user import CoordinateResult

# Constants
REQUEST_TIMEOUT = 10
MAX_CONFIDENCE = 95

# Get logger
logger = logging.getLogger(__name__)


def compile_denylist(patterns: Iterable[str]):
    patterns = [p for p in patterns if p]
    if not patterns:
        return None
    return re.compile("|".join(re.escape(p) for p in patterns), re.IGNORECASE)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class NominatimGeocoder:
    """
    Forward geocoder for a single free-text location.

    Placeholder and joke answers matched by the denylist are rejected without a
    request. Every request is followed by a fixed delay to stay within the
    Nominatim usage policy of one request per second.
    """

    def __init__(
        self,
        base_url=NOMINATIM_URL,
        user_agent=USER_AGENT,
        delay=NOMINATIM_DELAY,
        denylist=DEFAULT_DENYLIST,
        timeout=REQUEST_TIMEOUT,
        max_retries=10,
    ):
        self.search_url = base_url.rstrip("/") + "/search"
        self.user_agent = user_agent
        self.delay = delay
        self.timeout = timeout
        self.max_retries = max_retries
        self._denylist = compile_denylist(denylist)

    def is_denied(self, location: Optional[str]) -> bool:
        if not location or not location.strip():
            return True
        return bool(self._denylist and self._denylist.search(location))

    def _search(self, location: str):
        params = {
            "q": location,
            "format": "json",
            "limit": 1,
        }
        headers = {
            "User-Agent": self.user_agent
        }
        try:
            response = requests.get(self.search_url, params=params, headers=headers, timeout=self.timeout)
        finally:
            # Nominatim rate limit
            time.sleep(self.delay)

        if response.status_code == 429:
            raise RateLimitedError(
                f"Nominatim rate limit hit for '{location}'",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        response.raise_for_status()
        return response.json()

    def geocode(self, location: Optional[str]) -> Optional[CoordinateResult]:
        """
        Resolve ``location`` to the top-ranked Nominatim match.

        Returns None for denylisted input, an empty result set, or any
        transport or parse failure. Rate limiting is retried with backoff and
        becomes fatal once the retry ceiling is reached.
        """
        if self.is_denied(location):
            logger.debug(f"Skipping denylisted location '{location}'")
            return None

        try:
            data = with_retry(lambda: self._search(location), max_retries=self.max_retries)
        except requests.RequestException as e:
            logger.warning(f"Geocoding request failed for '{location}': {e}")
            return None
        except ValueError as e:
            logger.warning(f"Geocoding returned an unreadable response for '{location}': {e}")
            return None

        if not isinstance(data, list) or not data:
            logger.info(f"No Nominatim match for '{location}'")
            return None

        top = data[0]
        try:
            importance = float(top.get("importance") or 0)
            result = CoordinateResult(
                lat=float(top["lat"]),
                long=float(top["lon"]),
                confidence=min(importance * 100, MAX_CONFIDENCE),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Unexpected Nominatim result for '{location}': {top!r} ({e})")
            return None

        logger.info(f"Successfully geocoded '{location}' to ({result.lat}, {result.long})")
        return result
