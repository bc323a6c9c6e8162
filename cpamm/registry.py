"""Pool registry: pool storage, lookup and per-pool writer locks.

Each pool gets its own lock. PoolEngine holds it from the moment it reads a
pool's snapshot until the operation commits or aborts, which serializes
operations on one pool while leaving different pools independent.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from cpamm.errors import PoolAlreadyExists, PoolNotFound
from cpamm.models.pool import Pool

logger = structlog.get_logger()


class PoolRegistry:
    """Registry of pools keyed by pool id."""

    def __init__(self, pools: list[Pool] | None = None) -> None:
        """Initialize the registry with optional pools.

        Args:
            pools: Initial pools. If None, starts empty.
        """
        self._pools: dict[str, Pool] = {}
        self._locks: dict[str, threading.RLock] = {}
        # Guards the two dicts above, never held during an operation
        self._registry_lock = threading.Lock()

        if pools:
            for pool in pools:
                self.add(pool)

    def add(self, pool: Pool) -> None:
        """Register a new pool.

        Raises:
            PoolAlreadyExists: If a pool with the same id is registered
        """
        with self._registry_lock:
            if pool.pool_id in self._pools:
                raise PoolAlreadyExists(f"Pool {pool.pool_id} already initialized")
            self._pools[pool.pool_id] = pool
            self._locks[pool.pool_id] = threading.RLock()
        logger.debug("pool_registered", pool_id=pool.pool_id)

    def get(self, pool_id: str) -> Pool:
        """Get a pool by id.

        Raises:
            PoolNotFound: If no pool has this id
        """
        with self._registry_lock:
            pool = self._pools.get(pool_id)
        if pool is None:
            raise PoolNotFound(f"No pool with id {pool_id}")
        return pool

    @contextmanager
    def writer(self, pool_id: str) -> Iterator[Pool]:
        """Hold the pool's writer lock for the duration of the block.

        Raises:
            PoolNotFound: If no pool has this id
        """
        with self._registry_lock:
            lock = self._locks.get(pool_id)
        if lock is None:
            raise PoolNotFound(f"No pool with id {pool_id}")
        with lock:
            yield self._pools[pool_id]

    @property
    def pool_ids(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._pools)

    def __contains__(self, pool_id: object) -> bool:
        with self._registry_lock:
            return pool_id in self._pools

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._pools)
