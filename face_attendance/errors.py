"""
Exception hierarchy.

Runtime conditions a caller is expected to handle derive from
AttendanceError. Caller bugs derive from ContractViolation and are not
meant to be caught.
"""


class AttendanceError(Exception):
    """Base exception for recoverable attendance failures."""


class EnrollmentError(AttendanceError):
    """Raised when an identity cannot be enrolled."""


class NoFaceDetectedError(EnrollmentError):
    """Raised when the enrollment photo contains no usable face."""


class DetectionError(AttendanceError):
    """Raised when a live frame cannot be analysed."""


class ExtractionFailure(DetectionError):
    """Raised when the descriptor extractor fails (model, camera or decoding fault)."""


class StorageError(AttendanceError):
    """Raised when the persistence backend cannot be read or written."""


class ContractViolation(Exception):
    """Raised when a caller breaks an invariant of the core."""


class InvalidDescriptorLength(ContractViolation, ValueError):
    """Raised when a descriptor does not have exactly 128 components."""

    def __init__(self, length: int, expected: int):
        super().__init__(f'Descriptor must have {expected} components, got {length}')
        self.length = length
        self.expected = expected


class NonFiniteDescriptor(ContractViolation, ValueError):
    """Raised when a descriptor holds a NaN or infinite component."""

    def __init__(self):
        super().__init__('Descriptor components must be finite numbers')
