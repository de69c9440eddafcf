#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SubtitleChunker - Entry-aligned chunking of subtitle documents.

A subtitle document is treated as an ordered sequence of blank-line
separated entries. Chunks group up to ``chunk_size`` consecutive entries so
that each chunk can be translated by an independent API call and the
translated chunks can be rejoined by plain ordered concatenation.

Usage:
    from core.chunker import SubtitleChunker

    chunker = SubtitleChunker(chunk_size=75)
    for chunk in chunker.iter_chunks(srt_text):
        print(chunk.index, chunk.entry_count)

    # reassembly
    document = chunker.join([chunk.text for chunk in chunker.iter_chunks(srt_text)])

Classes:
    SubtitleChunk: One immutable slice of the document.
    SubtitleChunks: Lazy, restartable sequence of chunks for one document.
    SubtitleChunker: Splitting and joining rules.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List

from config.constants import CHUNK_SIZE, ENTRY_SEPARATOR


# Two or more consecutive line breaks end an entry (handles \r\n files)
ENTRY_BOUNDARY = re.compile(r'(?:\r?\n){2,}')


def split_entries(content: str) -> List[str]:
    """
    Split a subtitle document into its entries.

    Empty or whitespace-only content has no entries.
    """
    stripped = content.strip()
    if not stripped:
        return []
    return ENTRY_BOUNDARY.split(stripped)


@dataclass(frozen=True)
class SubtitleChunk:
    """
    A bounded group of consecutive subtitle entries.

    Attributes:
        index: 0-based position of the chunk in the document.
        text: Entries of this chunk joined with the entry separator.
        entry_count: Number of entries in the chunk.
    """
    index: int
    text: str
    entry_count: int

    @property
    def number(self) -> int:
        """1-based position, used in prompts and error messages."""
        return self.index + 1


class SubtitleChunks:
    """
    Lazy sequence of chunks for one document.

    Iterating it twice yields the same chunks; nothing is split until the
    first iteration.
    """

    def __init__(self, content: str, chunk_size: int, separator: str):
        self._content = content
        self._chunk_size = chunk_size
        self._separator = separator
        self._entries = None

    def _get_entries(self) -> List[str]:
        if self._entries is None:
            self._entries = split_entries(self._content)
        return self._entries

    def __iter__(self) -> Iterator[SubtitleChunk]:
        entries = self._get_entries()
        for index, start in enumerate(range(0, len(entries), self._chunk_size)):
            group = entries[start:start + self._chunk_size]
            yield SubtitleChunk(
                index=index,
                text=self._separator.join(group),
                entry_count=len(group),
            )

    def __len__(self) -> int:
        entries = self._get_entries()
        return -(-len(entries) // self._chunk_size)

    @property
    def entry_count(self) -> int:
        return len(self._get_entries())


class SubtitleChunker:
    """Splits subtitle documents on entry boundaries and rejoins them."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, separator: str = ENTRY_SEPARATOR):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.chunk_size = chunk_size
        self.separator = separator

    def iter_chunks(self, content: str) -> SubtitleChunks:
        """Return the lazy chunk sequence for ``content``."""
        return SubtitleChunks(content, self.chunk_size, self.separator)

    def create_chunks(self, content: str) -> List[SubtitleChunk]:
        """Materialize all chunks of ``content``."""
        return list(self.iter_chunks(content))

    def join(self, texts: List[str]) -> str:
        """Rejoin chunk texts in the given order."""
        return self.separator.join(texts)
