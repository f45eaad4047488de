"""Name-keyed registry of repository factories."""

import logging
import threading
from typing import Dict, List

from uow.adapters.repository import RepositoryFactory
from uow.domain.errors import RepositoryNotFound

logger = logging.getLogger(__name__)


class RepositoryRegistry:
    """Maps logical repository names to factories. Mutation is not transactional."""

    def __init__(self):
        self._factories = {}  # type: Dict[str, RepositoryFactory]
        self._lock = threading.Lock()

    def register(self, name: str, factory: RepositoryFactory):
        if not callable(factory):
            raise TypeError(f"factory for {name} is not callable: {factory!r}")
        with self._lock:
            replaced = name in self._factories
            self._factories[name] = factory
        logger.debug(f"{'Replaced' if replaced else 'Registered'} repository factory {name}")

    def unregister(self, name: str):
        with self._lock:
            self._factories.pop(name, None)

    def get(self, name: str) -> RepositoryFactory:
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise RepositoryNotFound(name)
        return factory

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)

    def __contains__(self, name) -> bool:
        with self._lock:
            return name in self._factories

    def __len__(self) -> int:
        with self._lock:
            return len(self._factories)
