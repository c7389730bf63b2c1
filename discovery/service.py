# discovery/service.py

import asyncio
import logging
import os
from typing import Any, Iterable, List, Optional

from .channel import KeyChannel
from .config import DispatchConfig, load_config
from .discovery_store import DiscoveryStore
from .dispatch_queue import DispatchQueue
from .models import DiscoveredInstance, InstanceKey, QueueStats

log = logging.getLogger("uvicorn")


class DiscoveryService:
    """
    Host side of the dispatch queue: owns the input channel, the queue and
    the background task running it. The processor records every discovered
    instance in the DiscoveryStore.
    """

    def __init__(self, config: Optional[DispatchConfig] = None):
        self.config = config or load_config()
        self.store = DiscoveryStore(self.config.db_path)
        self.channel: Optional[KeyChannel] = None
        self.queue: Optional[DispatchQueue] = None
        self.run_task: Optional[asyncio.Task] = None
        # Keys handed to the channel by this service
        self.requested = 0

    async def initialize(self):
        """Called from the 'lifespan': init the DB and start the queue."""
        await self.store.init_db()

        self.channel = KeyChannel()
        self.requested = 0
        self.queue = DispatchQueue(self.config.max_concurrency, self.channel, self.discover_instance)
        self.run_task = asyncio.create_task(self.queue.run())
        log.info(f"Discovery queue started (max_concurrency={self.config.max_concurrency}).")

    async def shutdown(self):
        """
        Closes the input channel and waits for the queue to drain.
        Running discoveries are never cancelled.
        """
        if self.channel:
            self.channel.close()
        if self.run_task:
            await self.run_task
            self.run_task = None
            log.info("Discovery queue drained and stopped.")

    # --- Processor ---
    async def discover_instance(self, key: InstanceKey):
        """Only called by the dispatch queue, once per in-flight key."""
        if self.config.discovery_delay_seconds > 0:
            await asyncio.sleep(self.config.discovery_delay_seconds)
        await self.store.record_discovery(key)
        log.info(f"Discovered instance {key}")

    # --- API-facing methods (fast, never wait for processing) ---
    async def request_discovery(self, key: Any):
        await self.channel.put(key)
        self.requested += 1

    async def request_batch(self, keys: Iterable[Any]):
        for key in keys:
            await self.request_discovery(key)

    # --- Helpers ---
    async def get_stats(self) -> QueueStats:
        async with self.queue.lock:
            return self.queue.stats()

    async def get_instances(self) -> List[DiscoveredInstance]:
        return await self.store.get_instances()

    async def wait_idle(self, timeout: float = 5.0, interval: float = 0.01):
        """
        Waits until the queue has read every requested key and nothing is
        pending or active.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            async with self.queue.lock:
                idle = (
                    self.queue.counters["received"] == self.requested
                    and not self.queue.queue
                    and self.queue.concurrency == 0
                )
            if idle and self.queue.done.empty():
                return
            await asyncio.sleep(interval)
        raise TimeoutError(f"discovery queue still busy after {timeout}s")

    async def reset_for_testing(self):
        """Drains the current queue, removes the DB and starts fresh (pytest)."""
        await self.shutdown()

        if os.path.exists(self.store.path):
            os.remove(self.store.path)

        await self.initialize()
