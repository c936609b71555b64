"""
Hand tracking using MediaPipe
"""
import logging
from pathlib import Path
from typing import Dict, Optional

import mediapipe as mp
import numpy as np
from mediapipe.tasks.python import BaseOptions
from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode

from fretcoach.config.guitar_config import (
    HAND_LANDMARK_INDICES,
    HAND_LANDMARKER_MODEL_PATH,
    HAND_MIN_DETECTION_CONFIDENCE,
    HAND_MIN_TRACKING_CONFIDENCE,
    JOINT_CONFIDENCE_THRESHOLD,
)
from fretcoach.errors import DetectorFailure
from fretcoach.geometry.coordinates import image_point_to_detector
from fretcoach.geometry.types import JointDetection

logger = logging.getLogger(__name__)


class MediaPipeHandDetector:
    """Detect the fretting hand's fingertips with the MediaPipe hand landmarker"""

    def __init__(self,
                 model_path=HAND_LANDMARKER_MODEL_PATH,
                 min_detection_confidence=HAND_MIN_DETECTION_CONFIDENCE,
                 min_tracking_confidence=HAND_MIN_TRACKING_CONFIDENCE,
                 confidence_threshold=JOINT_CONFIDENCE_THRESHOLD):
        """
        Args:
            model_path: Path to the hand_landmarker.task model file
            min_detection_confidence: Minimum confidence for hand detection
            min_tracking_confidence: Minimum confidence for hand tracking
            confidence_threshold: Joints at or below this confidence are dropped
        """
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(
                f"Hand landmarker model not found: {model_path}\n"
                "Download it from https://storage.googleapis.com/mediapipe-models/"
                "hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task"
            )

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=RunningMode.VIDEO,
            num_hands=1,
            min_hand_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self.landmarker = HandLandmarker.create_from_options(options)
        logger.info("Hand landmarker loaded from %s", model_path)
        self.confidence_threshold = confidence_threshold
        self._timestamp_ms = 0

    def detect_hand(self, frame: np.ndarray, timestamp: Optional[float] = None) -> Optional[Dict[str, JointDetection]]:
        """
        Detect one hand in the frame

        Args:
            frame: RGB image frame
            timestamp: Frame time in seconds (VIDEO mode needs increasing times)

        Returns:
            Joint name -> detection in detector space, or None if no hand
        """
        if not isinstance(frame, np.ndarray) or frame.ndim != 3:
            raise DetectorFailure("Hand detection needs an RGB image array")

        # VIDEO mode requires strictly increasing timestamps
        if timestamp is not None:
            self._timestamp_ms = max(self._timestamp_ms + 1, int(timestamp * 1000))
        else:
            self._timestamp_ms += 33

        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(frame))
        try:
            result = self.landmarker.detect_for_video(image, self._timestamp_ms)
        except (RuntimeError, ValueError) as e:
            raise DetectorFailure(f"Hand pose detection failed: {e}") from e

        if not result.hand_landmarks:
            return None

        landmarks = result.hand_landmarks[0]
        score = 1.0
        if result.handedness and result.handedness[0]:
            score = float(result.handedness[0][0].score)

        joints = {}
        for name, idx in HAND_LANDMARK_INDICES.items():
            if idx >= len(landmarks):
                continue
            # MediaPipe only scores the hand as a whole
            if score <= self.confidence_threshold:
                continue
            lm = landmarks[idx]
            joints[name] = JointDetection(
                location=image_point_to_detector(float(lm.x), float(lm.y)),
                confidence=score,
            )

        return joints

    def close(self):
        """Release MediaPipe resources"""
        self.landmarker.close()

    def __enter__(self) -> "MediaPipeHandDetector":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
