"""
Pytest configuration and shared fixtures for Subtitle Translator tests.
"""
import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.errors import ConfigurationError


# ============================================================================
# Fake provider
# ============================================================================

class FakeProvider:
    """
    In-memory stand-in for the Gemini provider.

    Knobs (set them inside the test body):
        delays: chunk_number -> seconds to sleep before answering
        default_delay: delay for chunks not in ``delays``
        fail_chunks: chunk_number -> exception to raise
        gate: asyncio.Event every call waits on (None = no gate)
        glossary / glossary_error: outcome of extract_glossary
    """

    def __init__(self):
        self.configured = True
        self.delays: Dict[int, float] = {}
        self.default_delay = 0.0
        self.fail_chunks: Dict[int, Exception] = {}
        self.gate: Optional[asyncio.Event] = None
        self.glossary: Dict[str, str] = {"Naruto": "Naruto (nam)", "Hokage": "Hỏa Ảnh"}
        self.glossary_error: Optional[Exception] = None

        self.translate_calls: List[dict] = []
        self.extract_calls: List[dict] = []
        self.completed_order: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def ensure_configured(self):
        if not self.configured:
            raise ConfigurationError("GOOGLE_API_KEY not set in .env")

    async def extract_glossary(self, text, source_lang, target_lang, token=None):
        self.extract_calls.append({
            "text": text, "source_lang": source_lang, "target_lang": target_lang,
        })
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.glossary_error is not None:
            raise self.glossary_error
        return dict(self.glossary)

    async def translate_chunk(self, text, source_lang, target_lang, instruction,
                              glossary, model, token=None, chunk_number=1, chunk_total=1):
        self.translate_calls.append({
            "text": text,
            "instruction": instruction,
            "glossary": glossary,
            "model": model,
            "chunk_number": chunk_number,
            "chunk_total": chunk_total,
        })
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(chunk_number, self.default_delay)
            await asyncio.sleep(delay)
            if self.gate is not None:
                await self.gate.wait()
            if chunk_number in self.fail_chunks:
                raise self.fail_chunks[chunk_number]
            self.completed_order.append(chunk_number)
            return f"[{target_lang}] {text}"
        finally:
            self.in_flight -= 1


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def build_srt(count: int, start: int = 1) -> str:
    """SRT document with ``count`` numbered entries."""
    entries = []
    for i in range(start, start + count):
        seconds = i * 3
        entries.append(
            f"{i}\n"
            f"00:{seconds // 60 % 60:02d}:{seconds % 60:02d},000 --> "
            f"00:{(seconds + 2) // 60 % 60:02d}:{(seconds + 2) % 60:02d},500\n"
            f"Line number {i}"
        )
    return "\n\n".join(entries)


async def settle(rounds: int = 5):
    """Let scheduled tasks run a few loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def srt_factory():
    """Callable building SRT documents: srt_factory(151)."""
    return build_srt


@pytest.fixture
def settle_loop():
    """Coroutine function yielding control to pending tasks."""
    return settle


@pytest.fixture
def sample_srt() -> str:
    return (
        "1\n00:00:01,000 --> 00:00:03,000\n<i>Hello, Naruto.</i>\n\n"
        "2\n00:00:04,000 --> 00:00:06,000\nWhere is the Hokage?\n\n"
        "3\n00:00:07,000 --> 00:00:09,500\nLet's go.\nNow!"
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)
