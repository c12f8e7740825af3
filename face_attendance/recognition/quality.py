"""
Face quality assessment module.

Rejects live-frame faces that are too small or too blurry to produce a
trustworthy descriptor:
- Size (face height in pixels)
- Sharpness (Laplacian variance)
"""

import cv2
import numpy as np
from typing import Dict, Tuple
from ..config import Config

# (top, right, bottom, left), the order face_recognition reports
FaceLocation = Tuple[int, int, int, int]


def compute_blur_score(gray_face: np.ndarray) -> float:
    """
    Compute blur score using Laplacian variance.

    Higher values indicate sharper images.
    """
    return float(cv2.Laplacian(gray_face, cv2.CV_64F).var())


def face_height(location: FaceLocation) -> int:
    top, _, bottom, _ = location
    return bottom - top


def is_face_acceptable(
    image_rgb: np.ndarray,
    location: FaceLocation,
    config: Config
) -> Tuple[bool, Dict[str, float]]:
    """
    Check if face quality is acceptable for identification.

    Args:
        image_rgb: Full frame in RGB order
        location: Face box as (top, right, bottom, left)
        config: Service configuration

    Returns:
        Tuple of (acceptable, metrics) where metrics holds
        height, width and blur_score
    """
    top, right, bottom, left = location
    face_crop = image_rgb[max(top, 0):bottom, max(left, 0):right]

    metrics = {
        'height': float(bottom - top),
        'width': float(right - left),
        'blur_score': 0.0,
    }

    if face_crop.size == 0:
        return False, metrics

    gray_face = cv2.cvtColor(face_crop, cv2.COLOR_RGB2GRAY)
    metrics['blur_score'] = compute_blur_score(gray_face)

    if metrics['height'] < config.min_face_height_pixels:
        return False, metrics

    if metrics['blur_score'] < config.min_blur_variance:
        return False, metrics

    return True, metrics
