"""Splitting HTTP body chunks into the records of a watch or log stream."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

log = logging.getLogger(__name__)

SEPARATOR = b"\n"


def watch_chunks(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Yield newline-separated records from a stream of byte chunks.

    A final record without a trailing newline is yielded when the input ends.
    If reading the input fails, the stream stops and buffered data is dropped.
    """
    buffer = bytearray()
    iterator = iter(chunks)
    while True:
        try:
            chunk = next(iterator)
        except StopIteration:
            break
        except OSError as err:
            log.error("error getting chunk: %s", err)
            return
        buffer.extend(chunk)
        while True:
            index = buffer.find(SEPARATOR)
            if index < 0:
                break
            record = bytes(buffer[:index])
            del buffer[: index + 1]
            yield record
    if buffer:
        yield bytes(buffer)


class LogStream:
    """Log lines read one chunk at a time, each followed by a newline."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)

    def read(self) -> bytes:
        """The next chunk with a newline appended, or ``b""`` at the end."""
        chunk = next(self._chunks, None)
        if chunk is None:
            return b""
        return bytes(chunk) + SEPARATOR

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._chunks:
            yield bytes(chunk) + SEPARATOR