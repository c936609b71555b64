"""
Read frames from a camera or a video file
"""
import logging
import time
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FrameSource:
    """Iterate RGB frames with timestamps from a webcam index or a video file"""

    def __init__(self, source: Union[int, str, Path] = 0, max_frames: Optional[int] = None):
        """
        Args:
            source: Camera index, or path to a video file
            max_frames: Stop after this many frames (None = until the source ends)
        """
        self.source = source
        self.max_frames = max_frames
        self.is_camera = isinstance(source, int)
        self.cap = None
        self.fps = 0.0

    def open(self):
        if self.is_camera:
            cap = cv2.VideoCapture(self.source)
            if not cap.isOpened():
                raise RuntimeError(f"Failed to open camera {self.source}")
        else:
            video_path = Path(self.source)
            if not video_path.exists():
                raise FileNotFoundError(f"Video file not found: {video_path}")
            cap = cv2.VideoCapture(str(video_path))
            if not cap.isOpened():
                raise RuntimeError(f"Failed to open video: {video_path}")

        self.cap = cap
        self.fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Opened %s: %dx%d @ %.2f fps", self.source, width, height, self.fps)
        return self

    def frames(self) -> Iterator[Tuple[np.ndarray, float]]:
        """
        Yield frames until the source ends

        Returns:
            Iterator of (rgb_frame, timestamp_seconds); camera frames are
            stamped with the monotonic clock, file frames with their position
        """
        if self.cap is None:
            self.open()

        frame_count = 0
        while self.max_frames is None or frame_count < self.max_frames:
            ret, frame = self.cap.read()
            if not ret:
                break

            if self.is_camera or self.fps <= 0:
                timestamp = time.monotonic()
            else:
                timestamp = frame_count / self.fps

            # OpenCV reads BGR
            yield cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), timestamp
            frame_count += 1

        logger.info("Read %d frames from %s", frame_count, self.source)

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def __enter__(self) -> "FrameSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.release()

