"""
Face descriptor module.

A descriptor is the fixed-length biometric vector produced by the
extractor for a single face. Descriptors are only ever compared by
Euclidean distance.
"""

import numpy as np
from typing import Iterable, Iterator, List, Union
from ..errors import InvalidDescriptorLength, NonFiniteDescriptor

DESCRIPTOR_LENGTH = 128


class Descriptor:
    """
    Immutable 128-component face descriptor.

    Construction validates the length; a descriptor of any other size
    is rejected instead of being truncated or padded.
    """

    __slots__ = ('_values',)

    def __init__(self, values: Iterable[float]):
        """
        Build a descriptor.

        Args:
            values: Sequence of exactly 128 numbers

        Raises:
            InvalidDescriptorLength: If values is not a flat sequence of 128
            NonFiniteDescriptor: If any component is NaN or infinite
        """
        array = np.array(values, dtype=np.float64)
        if array.ndim != 1 or array.shape[0] != DESCRIPTOR_LENGTH:
            raise InvalidDescriptorLength(array.size, DESCRIPTOR_LENGTH)
        if not np.isfinite(array).all():
            raise NonFiniteDescriptor()
        array.setflags(write=False)
        self._values = array

    @classmethod
    def of(cls, value: Union['Descriptor', Iterable[float]]) -> 'Descriptor':
        """Return value unchanged if it already is a Descriptor, otherwise wrap it."""
        if isinstance(value, cls):
            return value
        return cls(value)

    @property
    def values(self) -> np.ndarray:
        """Read-only numpy view of the components."""
        return self._values

    def distance_to(self, other: 'Descriptor') -> float:
        """Euclidean distance to another descriptor."""
        return float(np.linalg.norm(self._values - other._values))

    def to_list(self) -> List[float]:
        return [float(v) for v in self._values]

    def __len__(self) -> int:
        return DESCRIPTOR_LENGTH

    def __iter__(self) -> Iterator[float]:
        return iter(self.to_list())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Descriptor):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    __hash__ = None

    def __repr__(self) -> str:
        head = ', '.join(f'{v:.3f}' for v in self._values[:3])
        return f'Descriptor([{head}, ...])'


def distance(
    a: Union[Descriptor, Iterable[float]],
    b: Union[Descriptor, Iterable[float]]
) -> float:
    """
    Euclidean distance between two descriptors.

    Args:
        a: First descriptor (or raw 128-component sequence)
        b: Second descriptor (or raw 128-component sequence)

    Returns:
        Distance (0.0 for identical descriptors)

    Raises:
        InvalidDescriptorLength: If either operand is not 128 long
    """
    return Descriptor.of(a).distance_to(Descriptor.of(b))
