"""
Configuration module for Face Attendance.

Loads configuration from environment variables with sensible defaults.
All settings are immutable after initialization.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration for Face Attendance.

    Service Identity:
        service_name: Name of this service instance
        device_id: Identifier of the scanning device (for logging)
        api_port: Port for Flask HTTP server

    Matching:
        match_threshold: Maximum Euclidean distance (exclusive) for a match

    Attendance:
        dedup_window_seconds: Repeat check-ins of the same identity on the
            same day inside this window are suppressed

    Storage:
        storage_backend: 'file' for local JSON files, 'http' for the backend API
        data_dir: Directory holding identities.json and events.json
        backend_url: Base URL of the backend API (e.g., http://backend:3000)
        request_timeout: Timeout in seconds for backend requests

    Camera Settings:
        camera_source: Camera source - can be:
            - Integer (0, 1, 2) for local webcam
            - RTSP URL: rtsp://user:pass@ip:port/path
            - HTTP URL: http://camera-gateway:4000/streams/1.mjpg
        scan_interval_seconds: Delay between processed frames

    Extraction:
        frame_scale: Resize factor applied to live frames before detection
        detection_model: face_recognition detector ('hog' or 'cnn')
        min_face_height_pixels: Minimum face height in pixels to process
        min_blur_variance: Minimum Laplacian variance (higher = sharper required)

    System:
        debug_mode: Enable debug logging
    """

    # Service
    service_name: str
    device_id: str
    api_port: int

    # Matching
    match_threshold: float

    # Attendance
    dedup_window_seconds: float

    # Storage
    storage_backend: str
    data_dir: str
    backend_url: str
    request_timeout: float

    # Camera
    camera_source: str
    scan_interval_seconds: float

    # Extraction
    frame_scale: float
    detection_model: str
    min_face_height_pixels: int
    min_blur_variance: float

    # System
    debug_mode: bool


def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Config: Immutable configuration object
    """
    return Config(
        # Service
        service_name=os.getenv('SERVICE_NAME', 'attendance'),
        device_id=os.getenv('DEVICE_ID', 'default'),
        api_port=int(os.getenv('API_PORT', '5001')),

        # Matching
        match_threshold=float(os.getenv('MATCH_THRESHOLD', '0.5')),

        # Attendance
        dedup_window_seconds=float(os.getenv('DEDUP_WINDOW', '3600')),

        # Storage
        storage_backend=os.getenv('STORAGE_BACKEND', 'file').lower(),
        data_dir=os.getenv('DATA_DIR', 'data'),
        backend_url=os.getenv('BACKEND_URL', 'http://localhost:3000'),
        request_timeout=float(os.getenv('REQUEST_TIMEOUT', '10')),

        # Camera
        camera_source=os.getenv('CAMERA_SOURCE', '0'),
        scan_interval_seconds=float(os.getenv('SCAN_INTERVAL', '0.5')),

        # Extraction
        frame_scale=float(os.getenv('FRAME_SCALE', '0.5')),
        detection_model=os.getenv('DETECTION_MODEL', 'hog'),
        min_face_height_pixels=int(os.getenv('MIN_FACE_HEIGHT', '40')),
        min_blur_variance=float(os.getenv('MIN_BLUR_VAR', '50.0')),

        # System
        debug_mode=os.getenv('DEBUG', 'false').lower() == 'true',
    )
