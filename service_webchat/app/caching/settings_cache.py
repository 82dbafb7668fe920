"""
Cache-aside store of workgroup chat settings.
"""

import asyncio
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Protocol, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import ValidationError
from ..domain.models import SettingSlot, SettingsBundle, WorkgroupId
from ..notifications.change_notifier import WorkgroupChangeChannel, WorkgroupChangeNotifier

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class RemoteSettingsClient(Protocol):
    """Anything able to fetch a workgroup's settings bundle."""

    async def fetch(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        ...


class SettingsCache:
    """In-memory cache of settings bundles keyed by workgroup.

    Lookups populate the cache on a miss; entries go away only when the
    workgroup changes (or, with ``max_entries`` set, on LRU eviction). The
    lock guards dictionary access only; remote fetches run outside it, so
    concurrent misses on one workgroup may fetch twice and the last store wins.
    """

    def __init__(self,
                 client: RemoteSettingsClient,
                 notifier: Optional[WorkgroupChangeNotifier] = None,
                 *,
                 metrics: Optional["MetricsCollector"] = None,
                 max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")

        self.client = client
        self.notifier = notifier
        self.metrics = metrics
        self.max_entries = max_entries
        self.logger = get_logger("webchat.settings_cache")

        self._bundles: "OrderedDict[WorkgroupId, SettingsBundle]" = OrderedDict()
        # Fetches in flight per workgroup, and invalidations seen while they run.
        # Both entries go away with the last pending fetch of a workgroup.
        self._pending_fetches: Dict[WorkgroupId, int] = {}
        self._generations: Dict[WorkgroupId, int] = {}
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "fetch_failures": 0, "invalidations": 0, "evictions": 0}

        self._channel: Optional[WorkgroupChangeChannel] = notifier.subscribe() if notifier is not None else None
        self._consumer_task: Optional[asyncio.Task] = None
        self._starts = 0

    async def get(self, workgroup_id: WorkgroupId, setting_key: str) -> Optional[SettingSlot]:
        """Return the setting slot for a workgroup, or None when unavailable.

        None covers both "setting not defined" and "remote fetch failed";
        failures are logged and counted but never raised.
        """
        if not workgroup_id:
            raise ValidationError("Workgroup must be specified", {"key": setting_key})

        with self._lock:
            bundle = self._bundles.get(workgroup_id)
            if bundle is not None:
                self._bundles.move_to_end(workgroup_id)
                self._stats["hits"] += 1
            else:
                self._stats["misses"] += 1
                self._pending_fetches[workgroup_id] = self._pending_fetches.get(workgroup_id, 0) + 1
            generation = self._generations.get(workgroup_id, 0)

        if bundle is not None:
            self._count("settings_cache_hits_total")
        else:
            self._count("settings_cache_misses_total")
            bundle = await self._fetch(workgroup_id, setting_key, generation)
            if bundle is None:
                return None

        return bundle.get_setting(setting_key)

    async def _fetch(self, workgroup_id: WorkgroupId, setting_key: str,
                     generation: int) -> Optional[SettingsBundle]:
        try:
            bundle = await self.client.fetch(workgroup_id)
        except asyncio.CancelledError:
            with self._lock:
                self._finish_fetch(workgroup_id)
            raise
        except Exception as e:
            with self._lock:
                self._finish_fetch(workgroup_id)
                self._stats["fetch_failures"] += 1
            self._count("settings_fetch_failures_total")
            self.logger.error(
                "Error retrieving chat settings",
                operation="get",
                key=setting_key,
                workgroup=str(workgroup_id),
                error=str(e)
            )
            return None

        with self._lock:
            if self._generations.get(workgroup_id, 0) == generation:
                self._bundles[workgroup_id] = bundle
                self._bundles.move_to_end(workgroup_id)
                self._evict_over_bound()
                stored = True
            else:
                stored = False
            self._finish_fetch(workgroup_id)
            entries = len(self._bundles)

        self._gauge_entries(entries)
        if stored:
            self.logger.debug("Chat settings cached", workgroup=str(workgroup_id), settings=len(bundle))
        else:
            self.logger.info("Workgroup changed during fetch, not caching", workgroup=str(workgroup_id))
        return bundle

    def _finish_fetch(self, workgroup_id: WorkgroupId):
        # Caller holds the lock
        pending = self._pending_fetches.get(workgroup_id, 0) - 1
        if pending > 0:
            self._pending_fetches[workgroup_id] = pending
        else:
            self._pending_fetches.pop(workgroup_id, None)
            self._generations.pop(workgroup_id, None)

    def _evict_over_bound(self):
        # Caller holds the lock
        if self.max_entries is None:
            return
        while len(self._bundles) > self.max_entries:
            evicted, _ = self._bundles.popitem(last=False)
            self._stats["evictions"] += 1
            self.logger.debug("Evicted least recently used settings", workgroup=str(evicted))

    def invalidate(self, workgroup_id: WorkgroupId):
        """Drop the cached bundle of a workgroup. Idempotent, thread-safe."""
        with self._lock:
            removed = self._bundles.pop(workgroup_id, None) is not None
            if workgroup_id in self._pending_fetches:
                # Fetches already running must not store what they bring back
                self._generations[workgroup_id] = self._generations.get(workgroup_id, 0) + 1
            self._stats["invalidations"] += 1
            entries = len(self._bundles)

        self._count("settings_invalidations_total")
        self._gauge_entries(entries)
        self.logger.info("Workgroup settings invalidated", workgroup=str(workgroup_id), removed=removed)

    def follow(self, notifier: WorkgroupChangeNotifier):
        """Subscribe to a notifier's change events unless already subscribed."""
        if self.notifier is notifier:
            return
        if self.notifier is not None:
            raise ValueError("Settings cache already follows another change notifier")
        self.notifier = notifier
        self._channel = notifier.subscribe()

    async def start(self):
        """Start draining the change channel; nested starts share one consumer."""
        self._starts += 1
        if self._channel is None or self.is_consuming():
            return
        self._channel.attach()
        self._consumer_task = asyncio.create_task(self._drain_changes())
        self.logger.info("Settings invalidation consumer started")

    async def stop(self):
        """Stop the change consumer once every start has been matched.

        The notifier subscription stays for the life of the cache; changes
        published while stopped are applied on the next start.
        """
        self._starts = max(self._starts - 1, 0)
        if self._starts or self._consumer_task is None:
            return
        self._consumer_task.cancel()
        try:
            await self._consumer_task
        except asyncio.CancelledError:
            pass
        self._consumer_task = None
        self._channel.detach()
        self.logger.info("Settings invalidation consumer stopped")

    async def _drain_changes(self):
        channel = self._channel
        while True:
            workgroup_id = await channel.get()
            try:
                self.invalidate(workgroup_id)
            except Exception as e:
                self.logger.error("Failed to apply workgroup change", workgroup=str(workgroup_id), error=str(e))
            finally:
                channel.task_done()

    @property
    def channel(self) -> Optional[WorkgroupChangeChannel]:
        return self._channel

    def is_consuming(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    def contains(self, workgroup_id: WorkgroupId) -> bool:
        with self._lock:
            return workgroup_id in self._bundles

    def __len__(self) -> int:
        with self._lock:
            return len(self._bundles)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._bundles),
                "max_entries": self.max_entries,
                "pending_fetches": sum(self._pending_fetches.values()),
                **self._stats
            }

    def _count(self, metric_name: str):
        if self.metrics:
            self.metrics.increment_counter(metric_name)

    def _gauge_entries(self, entries: int):
        if self.metrics:
            self.metrics.set_gauge("settings_cache_entries", entries)


_settings_cache: Optional[SettingsCache] = None
_settings_cache_lock = threading.Lock()


def get_settings_cache(factory: Callable[[], SettingsCache]) -> SettingsCache:
    """Return the process-wide settings cache, building it on first use.

    Concurrent first calls still construct exactly one instance.
    """
    global _settings_cache
    if _settings_cache is None:
        with _settings_cache_lock:
            if _settings_cache is None:
                _settings_cache = factory()
    return _settings_cache


def reset_settings_cache():
    """Forget the process-wide cache; the next accessor call builds a new one."""
    global _settings_cache
    with _settings_cache_lock:
        _settings_cache = None
