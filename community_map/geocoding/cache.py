import json
import logging
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from community_map.models.user import CoordinateResult

# Get logger
logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON next to ``path`` and move it into place, so readers never see a partial file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


class CacheStore:
    """JSON file mapping normalized location text to resolved coordinates."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Dict[str, CoordinateResult]:
        """Read the cache file. A missing or malformed file gives an empty cache."""
        if not self.path.exists():
            logger.info(f"No cache file at {self.path}, starting with an empty cache")
            return {}

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read cache file {self.path}: {e}. Starting with an empty cache")
            return {}

        if not isinstance(payload, dict):
            logger.warning(f"Cache file {self.path} does not hold a JSON object, ignoring it")
            return {}

        cache = {}
        for key, value in payload.items():
            try:
                cache[key] = CoordinateResult.model_validate(value)
            except ValidationError as e:
                logger.warning(f"Dropping invalid cache entry for '{key}': {e.errors()}")

        logger.info(f"Loaded {len(cache)} cached locations from {self.path}")
        return cache

    def save(self, cache: Dict[str, CoordinateResult]) -> None:
        write_json_atomic(self.path, {key: value.model_dump() for key, value in cache.items()})
