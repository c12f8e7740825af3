"""
Recognition algorithms package.

Contains modules for:
- Fixed-length face descriptors
- Descriptor matching against enrolled identities
- Face quality assessment
"""

from .descriptor import DESCRIPTOR_LENGTH, Descriptor, distance
from .matching import MATCH_THRESHOLD, Match, find_best_match
from .quality import compute_blur_score, is_face_acceptable

__all__ = [
    'DESCRIPTOR_LENGTH',
    'Descriptor',
    'distance',
    'MATCH_THRESHOLD',
    'Match',
    'find_best_match',
    'compute_blur_score',
    'is_face_acceptable',
]
