"""Relays — bridge upstream text streams to HTTP response bodies.

Chat relay:      model stream -> plain text fragments
Pipeline relay:  pipeline fragments -> NDJSON StreamEvent lines

Both close the upstream iterator on every exit path, so a client disconnect
(which cancels the response task) stops the producer as well.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from ragstudio.schemas import StreamEvent

if TYPE_CHECKING:
    from ragstudio.models.registry import ModelRegistry

logger = logging.getLogger(__name__)


class UnknownProviderError(LookupError):
    def __init__(self, provider: Any) -> None:
        self.provider = provider
        super().__init__(f"Unknown provider: {provider!r}")


# ---------------------------------------------------------------------------
# Chat relay
# ---------------------------------------------------------------------------


async def open_chat_stream(
    registry: ModelRegistry,
    messages: Sequence[Any],
    provider: Any = None,
    default_provider: str = "openai",
) -> AsyncIterator[str]:
    """Resolve the model and start its stream.

    The first fragment is pulled here so that setup failures (credentials,
    upstream rejection) surface before any response headers are sent.

    Raises UnknownProviderError if the provider key is not in the registry.
    """
    key = default_provider if provider is None else provider
    model = registry.resolve(key) if isinstance(key, str) else None
    if model is None:
        raise UnknownProviderError(key)

    fragments = registry.stream_generate(model, messages)
    try:
        first = await anext(fragments)
    except StopAsyncIteration:
        return _relay_text(None, fragments)
    except BaseException:
        await fragments.aclose()
        raise
    return _relay_text(first, fragments)


async def _relay_text(
    first: str | None, fragments: AsyncGenerator[str, None]
) -> AsyncIterator[str]:
    async with aclosing(fragments):
        if first is not None:
            yield first
        try:
            async for fragment in fragments:
                yield fragment
        except Exception as e:
            # Headers are already sent; the plain-text body just ends early.
            logger.error(f"Chat stream aborted after start: {e}", exc_info=True)


# ---------------------------------------------------------------------------
# Pipeline query relay
# ---------------------------------------------------------------------------


async def pipeline_event_lines(
    fragments: AsyncGenerator[str, None],
) -> AsyncIterator[str]:
    """Frame pipeline fragments as NDJSON lines.

    Yields one ``chunk`` line per fragment, then ``complete``. If the
    pipeline fails mid-stream, a single ``error`` line replaces the rest.
    """
    async with aclosing(fragments):
        try:
            async for fragment in fragments:
                yield StreamEvent.chunk(fragment).to_line()
        except Exception as e:
            logger.error(f"Pipeline stream failed: {e}", exc_info=True)
            yield StreamEvent.failure(str(e) or "Unknown error").to_line()
            return
        yield StreamEvent.complete().to_line()
