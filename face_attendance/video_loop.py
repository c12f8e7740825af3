"""
Camera polling loop.

Reads a frame from the scanning device at a fixed cadence and hands it
to the attendance service. Retrying is simply the next tick: a frame
that fails extraction is logged and skipped.
"""

import threading
import time
from typing import Optional
from .camera import connect_camera, reconnect_camera
from .config import Config
from .errors import ExtractionFailure
from .models import CheckInOutcome, CheckInStatus
from .service import AttendanceService
from .logging_config import get_logger

logger = get_logger(__name__)

MAX_FAILURES = 10


def describe_outcome(outcome: CheckInOutcome) -> str:
    """Status line for an outcome, as shown to the person being scanned."""
    if outcome.status is CheckInStatus.ADMITTED:
        return f'✅ PRESENT: {outcome.identity.display_name}'
    if outcome.status is CheckInStatus.ALREADY_CHECKED_IN:
        return f'⚠️ Already registered: {outcome.identity.display_name}'
    if outcome.status is CheckInStatus.UNKNOWN:
        return '❓ Unknown face'
    return 'Searching for faces...'


def run(
    service: AttendanceService,
    config: Config,
    stop_flag: Optional[threading.Event] = None
) -> None:
    """
    Main scanning loop.

    Args:
        service: Loaded attendance service
        config: Service configuration
        stop_flag: Optional threading.Event to signal graceful shutdown
    """
    if not service.registry.matchable_subset():
        logger.warning('No enrolled identities with a descriptor yet, every face will be unknown')

    video_capture = connect_camera(config)
    consecutive_failures = 0
    last_status = None

    logger.info(f'🎬 Scanning every {config.scan_interval_seconds}s...')

    try:
        while not (stop_flag and stop_flag.is_set()):
            ret, frame = video_capture.read()

            if not ret or frame is None:
                consecutive_failures += 1
                logger.warning(f'Failed to read frame ({consecutive_failures}/{MAX_FAILURES})')

                if consecutive_failures >= MAX_FAILURES:
                    video_capture = reconnect_camera(video_capture, config)
                    consecutive_failures = 0
                else:
                    time.sleep(config.scan_interval_seconds)
                continue

            consecutive_failures = 0

            try:
                outcome = service.process_frame(frame)
            except ExtractionFailure as e:
                logger.error(f'Detection error: {e}')
            else:
                status = describe_outcome(outcome)
                if status != last_status:
                    logger.info(status)
                    last_status = status

            time.sleep(config.scan_interval_seconds)

        logger.info('Stop signal received, exiting gracefully...')

    finally:
        video_capture.release()
        logger.info('Camera released')
