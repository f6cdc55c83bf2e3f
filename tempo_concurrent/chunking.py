"""Splitting large batches into bounded chunks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, TypeVar

from .errors import ValidationError

DEFAULT_CHUNK_SIZE = 50
DEFAULT_CHUNK_DELAY = 0.5

T = TypeVar("T")


@dataclass(frozen=True)
class Chunk:
    index: int
    offset: int
    size: int
    start_key: int

    @property
    def stop(self) -> int:
        return self.offset + self.size

    @property
    def slots(self) -> range:
        return range(self.start_key, self.start_key + self.size)


class ChunkPlanner:
    """Pure arithmetic chunking policy; no I/O or scheduling lives here."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        inter_chunk_delay: float = DEFAULT_CHUNK_DELAY,
    ) -> None:
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ValidationError.custom("chunkSize", "Chunk size must be a positive integer", str(chunk_size))
        if inter_chunk_delay < 0:
            raise ValidationError.custom(
                "chunkDelay", "Chunk delay cannot be negative", str(inter_chunk_delay)
            )
        self.chunk_size = chunk_size
        self.inter_chunk_delay = inter_chunk_delay

    def plan(self, count: int, start_key: int) -> list[Chunk]:
        return [
            Chunk(
                index=index,
                offset=offset,
                size=min(self.chunk_size, count - offset),
                start_key=start_key + offset,
            )
            for index, offset in enumerate(range(0, count, self.chunk_size))
        ]

    @staticmethod
    def split(items: Sequence[T], chunk: Chunk) -> list[T]:
        return list(items[chunk.offset : chunk.stop])
