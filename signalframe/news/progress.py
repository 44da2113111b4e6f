"""
Progress channel: typed progress events fanned out to subscribers.

The pipeline only ever calls emit(); presentation (CLI printing, SSE streaming)
subscribes from outside. Subscriber queues are bounded and drop on overflow,
so a slow consumer can never stall ingestion.
"""

import asyncio
import logging
from typing import List, Optional

from signalframe.schemas import ProgressEvent, ProgressStage, TERMINAL_STAGES

logger = logging.getLogger(__name__)


class ProgressChannel:

    def __init__(self, run_id: Optional[str] = None, maxsize: int = 1000):
        self.run_id = run_id
        self.maxsize = maxsize
        self._subscribers: List[asyncio.Queue] = []
        self.history: List[ProgressEvent] = []
        self.closed = False

    def subscribe(self, replay: bool = True) -> asyncio.Queue:
        """New subscriber queue. With replay, past events are queued first."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        if replay:
            for event in self.history[-self.maxsize:]:
                queue.put_nowait(event)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def emit(self, stage: ProgressStage, message: str = "", level: str = "info", **data) -> ProgressEvent:
        event = ProgressEvent(
            stage=stage,
            message=message,
            level=level,
            run_id=self.run_id,
            data=data,
        )
        self.history.append(event)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug(f"Progress subscriber full, dropped {event.stage} event")
        if event.stage in TERMINAL_STAGES:
            self.closed = True
        return event

    def close(self):
        """Mark the channel finished without emitting a terminal event."""
        self.closed = True
