"""Incremental `data:` line consumer shared by the streaming providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from .cancellation import CancellationToken, check
from .types import BadResponse, RequestFailed, TokenUsage

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
NO_CONTENT = "No completion content in response"

PartialSink = Callable[[str], None]


@dataclass
class StreamChunk:
    text: str = ""
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None
    done: bool = False


@dataclass
class StreamOutcome:
    text: str
    usage: Optional[TokenUsage] = None


ChunkDecoder = Callable[[str], Optional[StreamChunk]]


def merge_usage(current: Optional[TokenUsage], update: Optional[TokenUsage]) -> Optional[TokenUsage]:
    """Overwrites `current` with every field `update` reports; the last value seen wins."""
    if update is None:
        return current
    if current is None:
        return update
    return TokenUsage(
        prompt_tokens=update.prompt_tokens if update.prompt_tokens is not None else current.prompt_tokens,
        completion_tokens=(
            update.completion_tokens if update.completion_tokens is not None else current.completion_tokens
        ),
        total_tokens=update.total_tokens if update.total_tokens is not None else current.total_tokens,
        is_estimated=update.is_estimated or current.is_estimated,
    )


def _payload_from_line(raw_line: Union[bytes, str]) -> Optional[str]:
    if isinstance(raw_line, bytes):
        raw_line = raw_line.decode("utf-8", errors="replace")
    line = raw_line.strip()
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def consume_event_stream(
    lines: Iterable[Union[bytes, str]],
    decode_chunk: ChunkDecoder,
    *,
    sentinel: Optional[str] = "[DONE]",
    on_partial: Optional[PartialSink] = None,
    token: Optional[CancellationToken] = None,
) -> StreamOutcome:
    accumulated = ""
    usage: Optional[TokenUsage] = None
    iterator = iter(lines)

    while True:
        check(token)
        try:
            raw_line = next(iterator)
        except StopIteration:
            break

        payload = _payload_from_line(raw_line)
        if payload is None:
            continue
        if sentinel is not None and payload == sentinel:
            break

        chunk = decode_chunk(payload)
        if chunk is None:
            logger.debug("Skipping malformed stream chunk: %s", payload[:120])
            continue
        if chunk.error:
            raise RequestFailed(chunk.error)

        usage = merge_usage(usage, chunk.usage)

        if chunk.text:
            accumulated += chunk.text
            if on_partial is not None:
                on_partial(accumulated)

        if chunk.done:
            break

    final = accumulated.strip()
    if not final:
        raise BadResponse(NO_CONTENT)
    return StreamOutcome(text=final, usage=usage)
