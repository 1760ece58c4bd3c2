from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from community_map.models.user import GeocodedUserRecord, ResolutionMethod


@dataclass(frozen=True)
class RunSummary:
    geocoded: int
    ai: int
    failed: int

    @property
    def total(self) -> int:
        return self.geocoded + self.ai + self.failed


def summarize(records: Iterable[GeocodedUserRecord]) -> RunSummary:
    counts = Counter(record.method for record in records)
    return RunSummary(
        geocoded=counts[ResolutionMethod.GEOCODING],
        ai=counts[ResolutionMethod.AI],
        failed=counts[ResolutionMethod.FAILED],
    )


def format_summary(summary: RunSummary, output_path) -> str:
    return "\n".join([
        "Summary:",
        f"- Geocoded: {summary.geocoded}",
        f"- AI: {summary.ai}",
        f"- Failed: {summary.failed}",
        f"- Total: {summary.total}",
        "",
        f"Results saved to: {output_path}",
    ])


def print_summary(summary: RunSummary, output_path) -> None:
    print(f"\n{format_summary(summary, output_path)}")
