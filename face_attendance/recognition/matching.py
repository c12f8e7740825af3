"""
Descriptor matching module.

Matches a query descriptor against enrolled identities using Euclidean
distance. The threshold is deliberately stricter than the usual 0.6 so
that an unknown face is preferred over a wrong identity.
"""

import numpy as np
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence
from .descriptor import Descriptor

if TYPE_CHECKING:
    from ..models import Identity

MATCH_THRESHOLD = 0.5


@dataclass(frozen=True)
class Match:
    """Nearest accepted identity for a query descriptor."""

    identity: 'Identity'
    distance: float


def find_best_match(
    query: Descriptor,
    candidates: Sequence['Identity'],
    threshold: float = MATCH_THRESHOLD
) -> Optional[Match]:
    """
    Find the enrolled identity closest to a query descriptor.

    Args:
        query: Descriptor extracted from the current capture
        candidates: Identities to search, in priority order
        threshold: A match requires distance strictly below this value

    Returns:
        Match with identity and distance, or None for an unknown face

    Candidates without a descriptor are ignored. When several candidates
    share the minimum distance the one listed first wins.
    """
    query = Descriptor.of(query)
    searchable = [c for c in candidates if c.descriptor is not None]

    if len(searchable) == 0:
        return None

    known = np.stack([c.descriptor.values for c in searchable])
    distances = np.linalg.norm(known - query.values, axis=1)

    # argmin returns the first index on ties
    best_idx = int(np.argmin(distances))
    best_distance = float(distances[best_idx])

    if best_distance < threshold:
        return Match(searchable[best_idx], best_distance)

    return None
