"""
Single worker thread that serializes all frame processing
"""
import logging
import queue
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()


class DetectionLane:
    """
    Run ``handler(frame, timestamp)`` on one background thread.

    The lane holds at most one pending frame. A frame submitted while another
    is still waiting replaces it, so the worker always picks up the newest
    frame and latency stays bounded when detection is slower than the camera.
    """

    def __init__(self, handler: Callable[[Any, Optional[float]], Any], name: str = "detection-lane"):
        self.handler = handler
        self.name = name
        self.dropped = 0
        self.processed = 0

        self._pending = queue.Queue(maxsize=1)
        self._submit_lock = threading.Lock()
        self._stopping = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self._thread is not None:
            return
        with self._submit_lock:
            self._stopping = False
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0):
        """Finish the pending frame (if any) and join the worker"""
        if self._thread is None:
            return
        with self._submit_lock:
            self._stopping = True

        try:
            self._pending.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("%s did not drain within %ss, leaving the worker behind", self.name, timeout)
        else:
            self._thread.join(timeout)
        self._thread = None

    def submit(self, frame, timestamp: Optional[float] = None) -> bool:
        """
        Hand a frame to the lane

        Returns:
            False if an older waiting frame was replaced, or the lane is stopping
        """
        with self._submit_lock:
            if self._stopping:
                return False

            try:
                self._pending.get_nowait()
                replaced = True
            except queue.Empty:
                replaced = False

            if replaced:
                self.dropped += 1
            self._pending.put_nowait((frame, timestamp))
            return not replaced

    def _run(self):
        while True:
            item = self._pending.get()
            if item is _STOP:
                break

            frame, timestamp = item
            try:
                self.handler(frame, timestamp)
            except Exception:
                # Next frame gets a fresh attempt
                logger.exception("Frame handler failed on %s", self.name)
            else:
                self.processed += 1

    def __enter__(self) -> "DetectionLane":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
