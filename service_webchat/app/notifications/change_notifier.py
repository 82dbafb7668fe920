"""
In-process fan-out of workgroup change events.
"""

import asyncio
import threading
from typing import List, Optional

from shared.logging import get_logger
from ..domain.models import WorkgroupId


class WorkgroupChangeChannel:
    """Queue of changed workgroups for a single subscriber.

    The channel binds to the event loop of its consumer on ``attach``;
    publishers running on other threads hand events over to that loop.
    A channel outlives its consumer: after ``detach`` events queue up and a
    later ``attach`` (possibly on another loop) picks them up.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[WorkgroupId]" = asyncio.Queue()
        self._queue_loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()
        self.closed = False

    def attach(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Bind the channel to the consumer's running loop."""
        loop = loop or asyncio.get_running_loop()
        with self._lock:
            if self._queue_loop is not loop:
                # asyncio queues stay tied to the first loop that waited on them
                queue: "asyncio.Queue[WorkgroupId]" = asyncio.Queue()
                while not self._queue.empty():
                    queue.put_nowait(self._queue.get_nowait())
                self._queue = queue
                self._queue_loop = loop
            self._loop = loop

    def detach(self):
        """Forget the consumer's loop; events are held until the next attach."""
        with self._lock:
            self._loop = None

    def put(self, workgroup_id: WorkgroupId):
        if self.closed:
            return
        with self._lock:
            loop = self._loop
            if loop is None or loop.is_closed():
                self._queue.put_nowait(workgroup_id)
                return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._enqueue(workgroup_id)
        else:
            loop.call_soon_threadsafe(self._enqueue, workgroup_id)

    def _enqueue(self, workgroup_id: WorkgroupId):
        with self._lock:
            self._queue.put_nowait(workgroup_id)

    async def get(self) -> WorkgroupId:
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    async def join(self):
        """Wait until every queued event has been processed."""
        await self._queue.join()

    def pending(self) -> int:
        return self._queue.qsize()


class WorkgroupChangeNotifier:
    """Delivers "workgroup changed" events to every subscribed channel."""

    def __init__(self):
        self.logger = get_logger("webchat.change_notifier")
        self._channels: List[WorkgroupChangeChannel] = []
        self._lock = threading.Lock()

    def subscribe(self) -> WorkgroupChangeChannel:
        channel = WorkgroupChangeChannel()
        with self._lock:
            self._channels.append(channel)
        self.logger.debug("Change channel subscribed", subscribers=len(self._channels))
        return channel

    def unsubscribe(self, channel: WorkgroupChangeChannel):
        channel.closed = True
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)

    def publish(self, workgroup_id: WorkgroupId) -> int:
        """Publish a change event; returns the number of channels reached."""
        with self._lock:
            channels = list(self._channels)

        for channel in channels:
            channel.put(workgroup_id)

        self.logger.info("Workgroup change published", workgroup=str(workgroup_id), subscribers=len(channels))
        return len(channels)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)
