"""
Camera connection module.

Opens the scanning device's video source:
- Local webcams (index 0, 1, 2)
- RTSP / HTTP streams

Connection attempts back off exponentially between retries.
"""

import time
import cv2
from typing import Union
from .config import Config
from .logging_config import get_logger

logger = get_logger(__name__)


def resolve_source(camera_source: str) -> Union[int, str]:
    """Camera index for numeric sources, the URL otherwise."""
    source = camera_source.strip()
    if source.isdigit():
        return int(source)
    return source


def connect_camera(config: Config, max_retries: int = 5) -> cv2.VideoCapture:
    """
    Connect to camera with retry logic.

    Args:
        config: Service configuration
        max_retries: Maximum connection attempts

    Returns:
        Opened VideoCapture object

    Raises:
        RuntimeError: If connection fails after max_retries
    """
    source = resolve_source(config.camera_source)
    label = f'index {source}' if isinstance(source, int) else sanitize_url(source)

    for attempt in range(max_retries):
        logger.info(f'Connecting to camera {label} (attempt {attempt + 1}/{max_retries})...')

        video_capture = cv2.VideoCapture(source)
        if isinstance(source, str) and source.startswith('rtsp://'):
            video_capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        if video_capture.isOpened():
            ret, frame = video_capture.read()
            if ret and frame is not None:
                logger.info(f'✅ Camera connected, frame size: {frame.shape[1]}x{frame.shape[0]}')
                return video_capture
            logger.warning('Camera opened but failed to read frame')
        else:
            logger.warning('Failed to open camera')

        video_capture.release()

        if attempt < max_retries - 1:
            wait_time = 2 ** attempt
            logger.info(f'Retrying in {wait_time} seconds...')
            time.sleep(wait_time)

    raise RuntimeError(f'Cannot connect to camera after {max_retries} attempts')


def reconnect_camera(video_capture: cv2.VideoCapture, config: Config) -> cv2.VideoCapture:
    """
    Release the current capture and open a new one.

    Raises:
        RuntimeError: If the camera cannot be reopened
    """
    logger.error('Too many read failures, reconnecting camera...')
    video_capture.release()
    time.sleep(2)
    return connect_camera(config)


def sanitize_url(url: str) -> str:
    """
    Remove password from URL for logging.

    Args:
        url: URL with potential credentials

    Returns:
        URL with only the user name kept
    """
    if '://' not in url:
        return url

    protocol, rest = url.split('://', 1)
    if '@' not in rest:
        return url

    creds, host = rest.rsplit('@', 1)
    username = creds.split(':', 1)[0]
    return f'{protocol}://{username}@{host}'
