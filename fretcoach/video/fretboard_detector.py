"""
OpenCV rectangle and contour detectors for the guitar neck and its lines
"""
import logging
from typing import List

import cv2
import numpy as np

from fretcoach.config.guitar_config import (
    CONTOUR_CANNY_HIGH,
    CONTOUR_CANNY_LOW,
    MAX_CONTOURS,
    RECT_CANNY_HIGH,
    RECT_CANNY_HIGH_2,
    RECT_CANNY_LOW,
    RECT_CANNY_LOW_2,
    RECT_MAX_OBSERVATIONS,
)
from fretcoach.errors import DetectorFailure
from fretcoach.geometry.coordinates import image_box_to_detector
from fretcoach.geometry.types import ContourDetection, RectangleDetection

logger = logging.getLogger(__name__)


def _to_gray(frame: np.ndarray) -> np.ndarray:
    """RGB (or already gray) uint8 frame to grayscale"""
    if not isinstance(frame, np.ndarray) or frame.size == 0:
        raise DetectorFailure("Frame is empty or not an image array")

    if frame.ndim == 2:
        gray = frame
    elif frame.ndim == 3 and frame.shape[2] == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
    elif frame.ndim == 3 and frame.shape[2] == 4:
        gray = cv2.cvtColor(frame, cv2.COLOR_RGBA2GRAY)
    else:
        raise DetectorFailure(f"Unsupported frame shape {frame.shape}")

    if gray.dtype != np.uint8:
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    return gray


class OpenCVRectangleDetector:
    """Find large rectangular outlines (neck candidates) in a frame"""

    def __init__(self, max_observations=RECT_MAX_OBSERVATIONS):
        """
        Args:
            max_observations: Keep only the N largest candidates
        """
        self.max_observations = max_observations

    def detect_rectangles(self, frame: np.ndarray) -> List[RectangleDetection]:
        """
        Detect rectangle candidates

        Args:
            frame: RGB image frame

        Returns:
            Rectangles in detector space (bottom-left origin), largest first
        """
        try:
            return self._detect(frame)
        except cv2.error as e:
            raise DetectorFailure(f"Rectangle detection failed: {e}") from e

    def _detect(self, frame: np.ndarray) -> List[RectangleDetection]:
        gray = _to_gray(frame)
        h, w = gray.shape[:2]

        # Enhance contrast
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        enhanced = clahe.apply(gray)

        # Reduce noise while keeping edges
        blurred = cv2.bilateralFilter(enhanced, 9, 75, 75)

        # Multi-scale edge detection
        edges1 = cv2.Canny(blurred, RECT_CANNY_LOW, RECT_CANNY_HIGH)
        edges2 = cv2.Canny(blurred, RECT_CANNY_LOW_2, RECT_CANNY_HIGH_2)
        edges = cv2.bitwise_or(edges1, edges2)

        # Connect broken edges
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
        edges = cv2.dilate(edges, kernel, iterations=1)
        edges = cv2.erode(edges, kernel, iterations=1)

        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        candidates = []
        for contour in contours:
            x, y, w_rect, h_rect = cv2.boundingRect(contour)
            if w_rect <= 1 or h_rect <= 1:
                continue

            # How much of the bounding box the outline fills
            hull_area = cv2.contourArea(cv2.convexHull(contour))
            rectangularity = min(1.0, hull_area / float(w_rect * h_rect))

            candidates.append(RectangleDetection(
                bounding_box=image_box_to_detector(x, y, w_rect, h_rect, w, h),
                confidence=rectangularity,
            ))

        candidates.sort(key=lambda d: d.bounding_box.area, reverse=True)
        logger.debug("%d rectangle candidates from %d contours", len(candidates), len(contours))
        return candidates[:self.max_observations]


class OpenCVContourDetector:
    """Find thin line-like contours (fret wires, strings) on an edge image"""

    def __init__(self, max_contours=MAX_CONTOURS):
        self.max_contours = max_contours

    def detect_contours(self, frame: np.ndarray) -> List[ContourDetection]:
        """
        Detect contours on the edge-filtered frame

        Args:
            frame: RGB image frame

        Returns:
            Contours in detector space, longest first
        """
        try:
            return self._detect(frame)
        except cv2.error as e:
            raise DetectorFailure(f"Line detection failed: {e}") from e

    def _detect(self, frame: np.ndarray) -> List[ContourDetection]:
        gray = _to_gray(frame)
        h, w = gray.shape[:2]

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(8, 8))
        enhanced = clahe.apply(gray)
        edges = cv2.Canny(enhanced, CONTOUR_CANNY_LOW, CONTOUR_CANNY_HIGH)

        contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        contours = sorted(contours, key=lambda c: cv2.arcLength(c, False), reverse=True)

        detections = []
        for contour in contours[:self.max_contours]:
            x, y, w_rect, h_rect = cv2.boundingRect(contour)
            detections.append(ContourDetection(
                bounding_box=image_box_to_detector(x, y, w_rect, h_rect, w, h),
            ))

        return detections

