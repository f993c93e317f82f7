"""Shared plumbing for the reasoning components.

Provides:

- ``gather_bounded`` -- ``asyncio.gather`` with a concurrency cap that
  cancels the remaining work once one awaitable fails.
- ``ReasoningComponent`` -- base class holding the text generation service,
  the reasoning settings and the response parser.  Its ``_generate`` helper
  is the only path through which components call the service, and it holds
  one of the component's ``max_concurrency`` call slots for the duration of
  the call, so nested fan-outs share a single limit.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Iterable, TypeVar

from deliberate.config.settings import ReasoningSettings, get_settings
from deliberate.llm.base import PLAIN, REASONING, TextGenerationService
from deliberate.reasoning.parser import MarkerResponseParser, ResponseParser

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_bounded(
    aws: Iterable[Awaitable[T]],
    limit: int,
    return_exceptions: bool = False,
) -> list[Any]:
    """Await *aws* concurrently with at most *limit* in flight.

    Results keep input order.  With ``return_exceptions=False`` the first
    failure cancels everything still running or queued, waits for the
    cancellations to settle and then propagates.
    """
    semaphore = asyncio.Semaphore(max(1, limit))
    failed = False

    async def bounded(aw: Awaitable[T]) -> T:
        nonlocal failed
        async with semaphore:
            # A slot freed by a failure wakes the next waiter first
            if failed:
                raise asyncio.CancelledError()
            try:
                return await aw
            except Exception:
                failed = not return_exceptions
                raise

    aws = list(aws)
    tasks = [asyncio.ensure_future(bounded(aw)) for aw in aws]
    if not tasks:
        return []
    if return_exceptions:
        return await asyncio.gather(*tasks, return_exceptions=True)

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelling %d pending task(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        # Queued coroutines that never started
        for aw in aws:
            if asyncio.iscoroutine(aw) and inspect.getcoroutinestate(aw) == inspect.CORO_CREATED:
                aw.close()

    for task in tasks:
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()
    return [task.result() for task in tasks]


class ReasoningComponent:
    """Base for components that talk to a ``TextGenerationService``.

    Args:
        service: The text generation service.
        settings: Reasoning bounds; defaults to the global settings.
        parser: Response parser; defaults to ``MarkerResponseParser``.
    """

    def __init__(
        self,
        service: TextGenerationService,
        settings: ReasoningSettings | None = None,
        parser: ResponseParser | None = None,
    ) -> None:
        self.service = service
        self.settings = settings or get_settings().reasoning
        self.parser = parser or MarkerResponseParser()
        self._call_slots: asyncio.Semaphore | None = None
        self._call_slots_loop: asyncio.AbstractEventLoop | None = None

    def _slots(self) -> asyncio.Semaphore:
        # Created lazily so the semaphore belongs to the running loop
        loop = asyncio.get_running_loop()
        if self._call_slots is None or self._call_slots_loop is not loop:
            self._call_slots = asyncio.Semaphore(self.settings.max_concurrency)
            self._call_slots_loop = loop
        return self._call_slots

    async def _generate(self, prompt: str, reasoning: bool = False) -> str:
        """Call the service once.  ``GenerationError`` propagates unchanged."""
        async with self._slots():
            text = await self.service.generate(prompt, REASONING if reasoning else PLAIN)
        logger.debug("%s received %d chars", type(self).__name__, len(text))
        return text
