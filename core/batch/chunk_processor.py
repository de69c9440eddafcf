"""
Chunk-level translation processing.
Dispatches every chunk of a job concurrently and returns results in
chunk order, whatever order the calls complete in.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from config.logging_config import get_logger
from core.cancellation import CancellationToken
from core.chunker import SubtitleChunk
from core.errors import AbortError, ChunkTranslationError

logger = get_logger(__name__)


@dataclass
class ChunkResult:
    """Result of translating a single chunk."""
    index: int
    original: str
    translated: str
    duration_ms: float = 0.0


# async (chunk, token) -> translated text
TranslateFunc = Callable[[SubtitleChunk, CancellationToken], Awaitable[str]]
# (completed_count, total) after each successful chunk
ChunkDoneFunc = Callable[[int, int], None]


class ChunkProcessor:
    """
    Processes the chunks of one translation run.

    Features:
    - All chunks in flight at once (optionally capped)
    - One shared cancellation token for every chunk call
    - First non-abort failure cancels the sibling calls and fails the run
    - Results always returned in chunk order

    Usage:
        processor = ChunkProcessor(translate_func=translate_one)
        results = await processor.process_all(chunks, token, on_chunk_done)
    """

    def __init__(
        self,
        translate_func: TranslateFunc,
        max_concurrency: Optional[int] = None,
    ):
        """
        Initialize chunk processor.

        Args:
            translate_func: Async function(chunk, token) -> translated text
            max_concurrency: Optional cap on simultaneous calls (None = all)
        """
        self.translate_func = translate_func
        self.max_concurrency = max_concurrency

    async def process_all(
        self,
        chunks: Sequence[SubtitleChunk],
        token: CancellationToken,
        on_chunk_done: Optional[ChunkDoneFunc] = None,
    ) -> List[ChunkResult]:
        """
        Translate all chunks concurrently.

        Returns:
            ChunkResults ordered by chunk index

        Raises:
            AbortError: If ``token`` is cancelled
            ChunkTranslationError: If any chunk fails for another reason
        """
        if not chunks:
            return []

        total = len(chunks)
        completed_count = 0
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        logger.debug(f"Dispatching {total} chunks")

        async def process_single(chunk: SubtitleChunk) -> ChunkResult:
            nonlocal completed_count

            token.raise_if_cancelled()
            start_time = time.time()
            try:
                if semaphore is not None:
                    async with semaphore:
                        token.raise_if_cancelled()
                        translated = await token.run(self.translate_func(chunk, token))
                else:
                    translated = await token.run(self.translate_func(chunk, token))
            except (AbortError, asyncio.CancelledError):
                raise
            except Exception as e:
                if token.cancelled:
                    raise AbortError(token.reason or "Request aborted by user.") from e
                logger.error(f"Chunk {chunk.number}/{total} failed: {e}")
                raise ChunkTranslationError(chunk.number, total, e) from e

            completed_count += 1
            if on_chunk_done and not token.cancelled:
                on_chunk_done(completed_count, total)

            return ChunkResult(
                index=chunk.index,
                original=chunk.text,
                translated=translated,
                duration_ms=(time.time() - start_time) * 1000,
            )

        tasks = [asyncio.ensure_future(process_single(chunk)) for chunk in chunks]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return sorted(results, key=lambda r: r.index)
