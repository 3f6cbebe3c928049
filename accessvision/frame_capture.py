"""
Frame Capture Module

Camera access and still-frame snapshots for the narration pipeline.

Usage:
    from accessvision.frame_capture import CameraDevice, FrameSource

    camera = CameraDevice()
    stream = camera.start()          # raises DeviceUnavailableError
    jpeg = FrameSource().capture(stream)   # bytes or None
    camera.stop()
"""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from .config import config
from .exceptions import DeviceUnavailableError

logger = logging.getLogger(__name__)

CAMERA_UNAVAILABLE = "Camera permission denied or camera not found."

# Snapshots are downscaled to bound the upload size
FRAME_SCALE = 0.5
JPEG_QUALITY = 80


class CaptureStream:
    """A live video stream opened by CameraDevice."""

    def __init__(self, capture: "cv2.VideoCapture", source: Union[int, str]):
        self._capture = capture
        self.source = source
        self._released = False

    @property
    def active(self) -> bool:
        return not self._released and self._capture.isOpened()

    @property
    def resolution(self):
        return (
            int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def read(self) -> Optional[np.ndarray]:
        """Latest decoded frame, or None before the first frame arrives."""
        if not self.active:
            return None
        ok, frame = self._capture.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def release(self) -> None:
        if not self._released:
            self._capture.release()
            self._released = True


class CameraDevice:
    """Capture device provider backed by OpenCV VideoCapture."""

    def __init__(
        self,
        source: Union[int, str, None] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        if source is None:
            source = config.get("AV_CAMERA_DEVICE", "0")
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        self.source = source
        self.width = width or config.get_int("AV_CAMERA_WIDTH", 1280)
        self.height = height or config.get_int("AV_CAMERA_HEIGHT", 720)
        self._stream: Optional[CaptureStream] = None

    @property
    def stream(self) -> Optional[CaptureStream]:
        return self._stream

    def start(self) -> CaptureStream:
        """Open the camera.

        Raises:
            DeviceUnavailableError: permission denied or no such device
        """
        if self._stream is not None:
            if self._stream.active:
                return self._stream
            # Device went away on its own; free the stale handle first
            self._stream.release()
            self._stream = None

        try:
            capture = cv2.VideoCapture(self.source)
        except cv2.error as e:
            logger.warning(f"Camera {self.source!r} failed to open: {e}")
            raise DeviceUnavailableError(CAMERA_UNAVAILABLE) from e

        if not capture.isOpened():
            capture.release()
            logger.warning(f"Camera {self.source!r} is not available")
            raise DeviceUnavailableError(CAMERA_UNAVAILABLE)

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        # Keep only the newest frame buffered
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._stream = CaptureStream(capture, self.source)
        logger.info(f"Camera {self.source!r} opened at {self._stream.resolution}")
        return self._stream

    def stop(self) -> None:
        """Release the hardware handle."""
        if self._stream is not None:
            self._stream.release()
            logger.info(f"Camera {self.source!r} released")
        self._stream = None


class FrameSource:
    """Turns the current stream state into a compressed still image."""

    def __init__(self, scale: float = FRAME_SCALE, quality: int = JPEG_QUALITY):
        self.scale = scale
        self.quality = quality

    def capture(self, stream: Optional[CaptureStream]) -> Optional[bytes]:
        """Snapshot of ``stream`` as JPEG bytes, or None if no frame is ready."""
        if stream is None or not stream.active:
            return None
        try:
            frame = stream.read()
            if frame is None:
                logger.debug("No frame decoded yet")
                return None
            return self.encode(frame)
        except cv2.error as e:
            logger.debug(f"Frame capture failed: {e}")
            return None

    def encode(self, image: np.ndarray) -> Optional[bytes]:
        """Downscale and JPEG-encode a decoded BGR image."""
        height, width = image.shape[:2]
        size = (max(1, int(width * self.scale)), max(1, int(height * self.scale)))
        small = cv2.resize(image, size, interpolation=cv2.INTER_AREA)
        ok, jpeg = cv2.imencode(".jpg", small, [cv2.IMWRITE_JPEG_QUALITY, self.quality])
        if not ok:
            return None
        return jpeg.tobytes()

    def load(self, path: Union[str, Path]) -> Optional[bytes]:
        """Read an image file and encode it like a live snapshot."""
        image = cv2.imread(str(path))
        if image is None:
            return None
        return self.encode(image)
