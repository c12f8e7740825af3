"""
Descriptor extraction module.

Turns enrollment photos and live camera frames into 128-component face
descriptors using the face_recognition (dlib) models.
"""

import cv2
import numpy as np
from typing import Optional, Protocol, Union
from .config import Config
from .errors import ExtractionFailure
from .recognition.descriptor import Descriptor
from .recognition.quality import face_height, is_face_acceptable
from .logging_config import get_logger

logger = get_logger(__name__)

ImageInput = Union[bytes, np.ndarray]


class DescriptorExtractor(Protocol):
    """
    Extraction contract consumed by the attendance service.

    Both methods return None when no sufficiently confident single face
    is found and raise ExtractionFailure only for genuine faults.
    """

    def extract_from_still_image(self, image: ImageInput) -> Optional[Descriptor]: ...

    def extract_from_live_frame(self, frame: ImageInput) -> Optional[Descriptor]: ...


class FaceRecognitionExtractor:
    """
    face_recognition based extractor.

    Still images must show exactly one face. Live frames are downscaled
    for speed and the largest face that passes the quality gate is used.
    """

    def __init__(self, config: Config):
        import face_recognition

        self._fr = face_recognition
        self.config = config

    def extract_from_still_image(self, image: ImageInput) -> Optional[Descriptor]:
        rgb = _to_rgb(image)

        try:
            locations = self._fr.face_locations(rgb, model=self.config.detection_model)
            if len(locations) != 1:
                logger.warning(f'Expected one face in still image, found {len(locations)}')
                return None

            encodings = self._fr.face_encodings(rgb, locations)
        except Exception as e:
            raise ExtractionFailure(f'Face model failed on still image: {e}') from e

        if not encodings:
            return None
        return Descriptor(encodings[0])

    def extract_from_live_frame(self, frame: ImageInput) -> Optional[Descriptor]:
        rgb = _to_rgb(frame)

        scale = self.config.frame_scale
        if scale != 1.0:
            rgb = cv2.resize(rgb, (0, 0), fx=scale, fy=scale)

        try:
            locations = self._fr.face_locations(rgb, model=self.config.detection_model)
            if not locations:
                return None

            # Largest face is the one closest to the camera
            location = max(locations, key=face_height)

            acceptable, quality = is_face_acceptable(rgb, location, self.config)
            if not acceptable:
                logger.debug(
                    f"Face quality too low: height={quality.get('height')}px, "
                    f"blur={quality.get('blur_score', 0):.1f}"
                )
                return None

            encodings = self._fr.face_encodings(rgb, [location])
        except Exception as e:
            raise ExtractionFailure(f'Face model failed on live frame: {e}') from e

        if not encodings:
            return None
        return Descriptor(encodings[0])


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (JPEG, PNG, ...) to a BGR array.

    Raises:
        ExtractionFailure: If the bytes are not a decodable image
    """
    nparr = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if image is None:
        raise ExtractionFailure('Failed to decode image')
    return image


def _to_rgb(image: ImageInput) -> np.ndarray:
    """Decode if needed and convert OpenCV BGR to the RGB order face_recognition expects."""
    if isinstance(image, (bytes, bytearray)):
        image = decode_image(bytes(image))

    if image is None or image.size == 0:
        raise ExtractionFailure('Empty image')

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def initialize_extractor(config: Config) -> FaceRecognitionExtractor:
    """
    Load the face_recognition models.

    Args:
        config: Service configuration

    Returns:
        Ready extractor
    """
    logger.info('Initializing face_recognition models...')
    extractor = FaceRecognitionExtractor(config)
    logger.info(f'✅ Extractor initialized (model={config.detection_model}, scale={config.frame_scale})')
    return extractor
