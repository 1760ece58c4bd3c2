import json
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List

from community_map.config import BATCH_DELAY, BATCH_SIZE
from community_map.geocoding.cache import CacheStore, write_json_atomic
from community_map.models.user import (
    CoordinateResult,
    GeocodedUserRecord,
    ResolutionMethod,
    UserRecord,
)

# Get logger
logger = logging.getLogger(__name__)


def chunked(items: List, size: int) -> Iterator[List]:
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    for i in range(0, len(items), size):
        yield items[i:i + size]


def load_users(path) -> List[UserRecord]:
    """Read the member list written by the directory export."""
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of users")
    return [UserRecord.model_validate(item) for item in payload]


@dataclass
class RunContext:
    """Mutable state of one geocoding run, threaded through every batch."""

    cache: Dict[str, CoordinateResult]
    results: List[GeocodedUserRecord] = field(default_factory=list)
    batches_completed: int = 0


class BatchGeocoder:
    def __init__(
        self,
        primary,
        fallback,
        cache_store: CacheStore,
        output_path,
        batch_size=BATCH_SIZE,
        batch_delay=BATCH_DELAY,
    ):
        if batch_size < 1:
            raise ValueError(f"batch size must be at least 1, got {batch_size}")
        self.primary = primary
        self.fallback = fallback
        self.cache_store = cache_store
        self.output_path = Path(output_path)
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    def process_batch(self, batch: List[UserRecord], ctx: RunContext) -> List[GeocodedUserRecord]:
        """
        Resolve one batch: cache hit, then Nominatim, then a single AI call for
        whatever is left. Records come back in input order, one per user.
        """
        resolved: Dict[int, GeocodedUserRecord] = {}
        needs_ai: List[int] = []
        primary_keys = set()

        for index, user in enumerate(batch):
            key = user.cache_key

            if key and key in ctx.cache:
                resolved[index] = GeocodedUserRecord.resolved(user, ctx.cache[key], ResolutionMethod.GEOCODING)
                continue

            result = self.primary.geocode(user.location_field)
            if result is not None:
                if key:
                    result = ctx.cache.setdefault(key, result)
                    primary_keys.add(key)
                resolved[index] = GeocodedUserRecord.resolved(user, result, ResolutionMethod.GEOCODING)
            else:
                needs_ai.append(index)

        if needs_ai:
            ai_results = self.fallback.geocode_batch([batch[i] for i in needs_ai])

            # First resolution of a key wins
            for index in needs_ai:
                user = batch[index]
                if user.cache_key and user.id in ai_results:
                    ctx.cache.setdefault(user.cache_key, ai_results[user.id])

            # Duplicates share the cached answer even if the service skipped some of them
            for index in needs_ai:
                user = batch[index]
                result = ctx.cache.get(user.cache_key) if user.cache_key else ai_results.get(user.id)
                if result is None:
                    resolved[index] = GeocodedUserRecord.failed(user)
                else:
                    method = ResolutionMethod.GEOCODING if user.cache_key in primary_keys else ResolutionMethod.AI
                    resolved[index] = GeocodedUserRecord.resolved(user, result, method)

        return [resolved[i] for i in range(len(batch))]

    def persist(self, ctx: RunContext) -> None:
        self.cache_store.save(ctx.cache)
        write_json_atomic(self.output_path, [record.to_json() for record in ctx.results])

    def run(self, users: List[UserRecord], ctx: RunContext = None) -> RunContext:
        """
        Geocode every user, persisting cache and output after each batch.

        A crash between batches leaves both files reflecting exactly the
        batches completed so far.
        """
        if ctx is None:
            ctx = RunContext(cache=self.cache_store.load())

        total = len(users)
        total_batches = math.ceil(total / self.batch_size)
        start_time = time.time()
        logger.info(f"Geocoding {total} users in {total_batches} batches of {self.batch_size}")

        for batch_number, batch in enumerate(chunked(users, self.batch_size), start=1):
            logger.info(f"Processing batch {batch_number}/{total_batches}...")

            ctx.results.extend(self.process_batch(batch, ctx))
            self.persist(ctx)
            ctx.batches_completed += 1

            logger.info(f"Completed: {len(ctx.results)}/{total}")

            if batch_number < total_batches:
                time.sleep(self.batch_delay)

        duration = time.time() - start_time
        logger.info(f"Geocoding run finished in {duration:.2f} seconds")
        return ctx
