"""Base classes for SQL drivers and their connection pools."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

DEFAULT_POOL = "default_pool"


@dataclass
class DatasourceConfig:
    """Where and how to connect to a database."""

    address: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    database: str = ""
    max_retry: int = 3

    def __str__(self) -> str:
        return (
            f'{{addr="{self.address}", username="{self.username}", '
            f'database="{self.database}"}}'
        )


class ConnectionPool(ABC):
    """A set of connections built from a list of configs."""

    def __init__(self) -> None:
        self.configs: list[DatasourceConfig] = []

    def add_config(self, config: DatasourceConfig) -> None:
        """Add a copy of ``config``; call before :meth:`initialize`."""
        self.configs.append(dataclasses.replace(config))

    @abstractmethod
    def initialize(self) -> None:
        """Build the connections for every config."""


PoolT = TypeVar("PoolT", bound=ConnectionPool)


class Driver(ABC, Generic[PoolT]):
    """A driver owns named connection pools of one pool type."""

    def __init__(self, pool_type: type[PoolT]) -> None:
        if not (isinstance(pool_type, type) and issubclass(pool_type, ConnectionPool)):
            raise TypeError("pool type must be derived of ConnectionPool")
        self._pool_type = pool_type
        self.pools: dict[str, PoolT] = {}
        self.initialized = False

    def add_config_to_pool(self, config: DatasourceConfig, pool_id: str = DEFAULT_POOL) -> None:
        """Add ``config`` to the pool ``pool_id``, creating the pool if needed."""
        pool = self.pools.get(pool_id)
        if pool is None:
            pool = self._pool_type()
            self.pools[pool_id] = pool
        pool.add_config(config)

    def initialize_all_pools(self) -> None:
        for pool in self.pools.values():
            pool.initialize()

    @abstractmethod
    def initialize(self) -> None:
        """Start the driver; sets ``initialized``."""

    @abstractmethod
    def shutdown(self) -> None:
        """Stop the driver and release its pools."""