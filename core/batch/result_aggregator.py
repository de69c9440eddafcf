"""
Result aggregation and merging.
Rejoins translated chunks into the final subtitle document.
"""

from dataclasses import dataclass
from typing import List

from config.constants import ENTRY_SEPARATOR
from config.logging_config import get_logger
from .chunk_processor import ChunkResult

logger = get_logger(__name__)


@dataclass
class AggregatedResult:
    """Final aggregated translation result."""
    text: str
    chunk_count: int
    total_chars: int
    total_duration_ms: float


class ResultAggregator:
    """
    Aggregates chunk results into the final document.

    Results are merged by chunk index, never by completion order.
    """

    def __init__(self, separator: str = ENTRY_SEPARATOR):
        """
        Initialize aggregator.

        Args:
            separator: Separator between chunks (same as the chunker's)
        """
        self.separator = separator

    def aggregate(self, results: List[ChunkResult]) -> AggregatedResult:
        """
        Aggregate chunk results into single output.

        Raises:
            ValueError: If chunk indices are duplicated or have gaps
        """
        if not results:
            return AggregatedResult(text="", chunk_count=0, total_chars=0, total_duration_ms=0.0)

        ordered = sorted(results, key=lambda r: r.index)
        indices = [r.index for r in ordered]
        if indices != list(range(len(ordered))):
            raise ValueError(f"Chunk results are incomplete or duplicated: {indices}")

        text = self.separator.join(r.translated for r in ordered)

        logger.debug(f"Aggregated {len(ordered)} chunks ({len(text)} chars)")

        return AggregatedResult(
            text=text,
            chunk_count=len(ordered),
            total_chars=len(text),
            total_duration_ms=sum(r.duration_ms for r in ordered),
        )
