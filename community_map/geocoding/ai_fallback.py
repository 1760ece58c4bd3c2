import json
import logging
from typing import Dict, List, Optional

import openai
from pydantic import ValidationError

from community_map.config import OPENAI_MODEL
from community_map.errors import RateLimitedError
from community_map.geocoding.retry import with_retry
from community_map.models.user import CoordinateResult, UserRecord

# Get logger
logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Extract approximate latitude and longitude for each user based on their location. "
    'Return JSON in format: {"results": [{"id": "user_id", "lat": number, "long": number, "confidence": number}]}. '
    "Confidence is 0-100. Skip locations that are jokes or invalid."
)


def _retry_after(error) -> Optional[float]:
    response = getattr(error, "response", None)
    if response is None:
        return None
    try:
        return float(response.headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


class AIGeocoder:
    """Resolves a whole batch of leftover locations with one chat completion."""

    def __init__(self, client, model=OPENAI_MODEL, max_retries=10):
        self.client = client
        self.model = model
        self.max_retries = max_retries

    def _complete(self, users: List[UserRecord]) -> str:
        payload = [{"id": user.id, "location": user.location_field} for user in users]
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": json.dumps(payload)},
                ],
            )
        except openai.RateLimitError as e:
            raise RateLimitedError("OpenAI rate limit hit", retry_after=_retry_after(e)) from e
        return response.choices[0].message.content or "{}"

    def geocode_batch(self, users: List[UserRecord]) -> Dict[str, CoordinateResult]:
        """
        Ask the model for coordinates of every user in ``users``.

        Returns a mapping of user id to result for the users the model could
        place. Ids the model skipped are simply absent. A failed request or an
        unparseable reply yields an empty mapping.
        """
        if not users:
            return {}

        try:
            content = with_retry(lambda: self._complete(users), max_retries=self.max_retries)
            payload = json.loads(content)
        except openai.APIError as e:
            logger.error(f"AI geocoding failed for batch of {len(users)}: {e}")
            return {}
        except (ValueError, IndexError, AttributeError) as e:
            logger.error(f"AI geocoding returned an unreadable response: {e}")
            return {}

        entries = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            logger.warning("AI geocoding response has no results list")
            return {}

        requested = {user.id for user in users}
        results = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            user_id = str(entry.get("id"))
            if user_id not in requested:
                logger.debug(f"Ignoring AI result for unknown id {user_id}")
                continue
            try:
                results.setdefault(user_id, CoordinateResult.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Invalid AI result for {user_id}: {e.errors()}")

        logger.info(f"AI geocoding resolved {len(results)}/{len(users)} locations")
        return results
