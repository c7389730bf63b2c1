# discovery/dispatch_queue.py

import asyncio
import inspect
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Hashable, List, Union

from .channel import ChannelClosed, KeyChannel
from .models import KeyState, QueueStats, is_empty_key

log = logging.getLogger("uvicorn")

Processor = Callable[[Any], Union[None, Awaitable[None]]]


class DispatchQueue:
    """
    Ordered queue of discovery requests with no duplicates.

    Keys read from the input channel are queued in FIFO order and handed to
    `processor`, with at most `max_concurrency` jobs running at once.
    A key that is already queued or being processed is silently ignored.
    Once processing of a key finishes, the same key may be queued again.
    """

    def __init__(self, max_concurrency: int, input_channel: KeyChannel, processor: Processor):
        if isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be a positive integer, got {max_concurrency!r}")

        self.max_concurrency = max_concurrency
        self.input_channel = input_channel
        self.processor = processor

        # Number of jobs currently running
        self.concurrency = 0
        # Completion signals from finished jobs
        self.done: asyncio.Queue = asyncio.Queue()
        # Every key in flight: PENDING while in self.queue, ACTIVE while processed
        self.known_keys: Dict[Hashable, KeyState] = {}
        # Keys waiting for a free slot, oldest first
        self.queue: Deque[Hashable] = deque()
        # Protects concurrency, known_keys and queue
        self.lock = asyncio.Lock()

        self._jobs: set = set()
        self._started = False
        self._drained = False
        self._is_async = inspect.iscoroutinefunction(processor)
        self.counters = {
            "received": 0,
            "duplicates": 0,
            "empty_keys_dropped": 0,
            "dispatched": 0,
            "completed": 0,
            "peak_active": 0,
        }

    # --- Internal operations (caller holds self.lock) ---
    def _push(self, key: Hashable) -> None:
        if key in self.known_keys:
            # Already pending or active: merge with the existing request
            self.counters["duplicates"] += 1
            return
        self.known_keys[key] = KeyState.PENDING
        self.queue.append(key)

    def _pop(self) -> Hashable:
        if not self.queue:
            log.critical("DispatchQueue._pop() called on empty queue")
            raise SystemExit(1)
        key = self.queue.popleft()
        del self.known_keys[key]
        return key

    def _dispatch(self) -> None:
        key = self._pop()

        self.concurrency += 1
        self.known_keys[key] = KeyState.ACTIVE
        self.counters["dispatched"] += 1
        self.counters["peak_active"] = max(self.counters["peak_active"], self.concurrency)

        task = asyncio.create_task(self._run_job(key))
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)

    def _can_dispatch(self) -> bool:
        return self.concurrency < self.max_concurrency and len(self.queue) > 0

    # --- Job side ---
    async def _run_job(self, key: Hashable) -> None:
        """Runs the processor for one key, then reports the key as done."""
        try:
            if self._is_async:
                await self.processor(key)
            else:
                await asyncio.to_thread(self.processor, key)
        except Exception as e:
            log.error(f"Processor failed for {key}: {e}", exc_info=True)
        finally:
            await self.done.put(key)

    # --- Locked operations used by the run loop ---
    async def _acknowledge_job(self, key: Hashable) -> None:
        async with self.lock:
            self.known_keys.pop(key, None)
            self.concurrency -= 1
            self.counters["completed"] += 1

    async def _maybe_dispatch(self) -> None:
        async with self.lock:
            if self._can_dispatch():
                self._dispatch()

    async def _queue_and_maybe_dispatch(self, key: Hashable) -> None:
        async with self.lock:
            self.counters["received"] += 1
            self._push(key)
            if self._can_dispatch():
                self._dispatch()

    async def _cleanup(self) -> None:
        """
        Input is closed: keep dispatching what is left in the queue and
        wait for running jobs until nothing is pending or active.
        """
        while True:
            async with self.lock:
                if not self.queue and self.concurrency == 0:
                    break
            await self._maybe_dispatch()
            key = await self.done.get()
            await self._acknowledge_job(key)

    async def run(self) -> None:
        """
        Reads keys from the input channel and processes them, up to
        max_concurrency at a time. Returns once the channel is closed and
        every queued and running job has finished.
        """
        if self._started:
            raise RuntimeError("DispatchQueue.run() can only be called once")
        self._started = True

        arrival = asyncio.create_task(self.input_channel.get())
        completion = asyncio.create_task(self.done.get())

        while True:
            finished, _ = await asyncio.wait(
                {arrival, completion}, return_when=asyncio.FIRST_COMPLETED
            )

            if completion in finished:
                await self._acknowledge_job(completion.result())
                await self._maybe_dispatch()
                completion = asyncio.create_task(self.done.get())

            if arrival not in finished:
                continue

            try:
                key = arrival.result()
            except ChannelClosed:
                completion.cancel()
                await asyncio.wait({completion})
                # May have finished before the cancel landed
                if not completion.cancelled():
                    await self._acknowledge_job(completion.result())
                break

            if is_empty_key(key):
                self.counters["received"] += 1
                self.counters["empty_keys_dropped"] += 1
                log.warning(
                    f"DispatchQueue.run() input channel received empty key {key!r}, "
                    "ignoring (fix the upstream code to prevent this)"
                )
            else:
                await self._queue_and_maybe_dispatch(key)
            arrival = asyncio.create_task(self.input_channel.get())

        await self._cleanup()
        self._drained = True
        log.info(f"DispatchQueue drained: {self.counters['completed']} jobs completed.")

    # --- Helpers ---
    def is_known(self, key: Hashable) -> bool:
        return key in self.known_keys

    def pending_keys(self) -> List[Hashable]:
        return list(self.queue)

    def active_keys(self) -> List[Hashable]:
        return [k for k, state in self.known_keys.items() if state is KeyState.ACTIVE]

    @property
    def drained(self) -> bool:
        return self._drained

    def stats(self) -> QueueStats:
        return QueueStats(
            max_concurrency=self.max_concurrency,
            pending=len(self.queue),
            active=self.concurrency,
            known=len(self.known_keys),
            drained=self._drained,
            **self.counters,
        )
