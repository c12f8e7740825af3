"""
Identity registry module.

In-memory collection of enrolled identities keyed by id. Every read
returns a snapshot taken under the registry lock, so callers never see
a half-applied add or remove.
"""

import threading
from typing import Dict, Iterable, List, Optional
from .models import Identity
from .logging_config import get_logger

logger = get_logger(__name__)


class Registry:
    """
    Enrolled identities.

    Identities are kept in enrollment order; replacing an identity keeps
    its position. Callers must not rely on any particular order.
    """

    def __init__(self, identities: Iterable[Identity] = ()):
        self._lock = threading.Lock()
        self._identities: Dict[str, Identity] = {}
        for identity in identities:
            self._identities[identity.id] = identity

    def add_or_replace(self, identity: Identity) -> None:
        """
        Insert an identity or overwrite the one sharing its id.

        Args:
            identity: Identity to store
        """
        with self._lock:
            replaced = identity.id in self._identities
            self._identities[identity.id] = identity

        logger.debug(
            f"{'Replaced' if replaced else 'Added'} identity {identity.id} "
            f"({identity.display_name})"
        )

    def remove(self, identity_id: str) -> Optional[Identity]:
        """
        Delete an identity. Unknown ids are ignored.

        Returns:
            The removed identity, or None if it was not registered
        """
        with self._lock:
            return self._identities.pop(identity_id, None)

    def get(self, identity_id: str) -> Optional[Identity]:
        with self._lock:
            return self._identities.get(identity_id)

    def list(self) -> List[Identity]:
        """Snapshot of every registered identity."""
        with self._lock:
            return list(self._identities.values())

    def matchable_subset(self) -> List[Identity]:
        """Snapshot of the identities that carry a descriptor."""
        with self._lock:
            return [i for i in self._identities.values() if i.descriptor is not None]

    def load(self, identities: Iterable[Identity]) -> None:
        """
        Replace the registry contents.

        Duplicate ids collapse to the last record seen.
        """
        loaded: Dict[str, Identity] = {}
        for identity in identities:
            loaded[identity.id] = identity

        with self._lock:
            self._identities = loaded

        logger.debug(f'Registry loaded with {len(loaded)} identities')

    def clear(self) -> None:
        with self._lock:
            self._identities = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._identities)
