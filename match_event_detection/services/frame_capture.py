"""Screen region capture built on mss."""

import threading
from typing import List, Tuple

import cv2
import mss
import mss.exception
import numpy as np

from ..exceptions import (
    CaptureError, CapturePermissionError, MonitorNotFoundError, RegionOutOfBoundsError
)
from ..models.detection import CaptureRegion
from ..logging_config import get_logger
from .error_handler import global_error_handler
from .interfaces import FrameSourceInterface

logger = get_logger("frame_capture")

# ScreenShotError messages that mean the OS refused access rather than a bad request
PERMISSION_MARKERS = (
    "permission",
    "not authorized",
    "access denied",
    "cgwindowlistcreateimage",
    "unable to open display"
)


def validate_region(region: CaptureRegion, monitor_size: Tuple[int, int]) -> None:
    """Raise RegionOutOfBoundsError unless ``region`` fits the monitor."""
    width, height = monitor_size
    if not region.fits_within(width, height):
        raise RegionOutOfBoundsError(region, monitor_size)


def _translate_error(error: Exception) -> CaptureError:
    message = str(error)
    if isinstance(error, PermissionError) or any(
            marker in message.lower() for marker in PERMISSION_MARKERS):
        return CapturePermissionError(f"Screen capture not permitted: {message}")
    return CaptureError(f"Screen capture failed: {message}")


class ScreenFrameSource(FrameSourceInterface):
    """Grabs screen regions as RGBA arrays.

    Monitor indices are zero based and refer to physical monitors, so index
    0 is mss's ``monitors[1]``. Region coordinates are relative to the
    monitor's top-left corner.
    """

    def __init__(self):
        self._thread_local = threading.local()
        self._instances: List = []
        self._lock = threading.Lock()
        global_error_handler.register_component("frame_capture")

    @property
    def sct(self):
        """Thread-local mss instance."""
        if not hasattr(self._thread_local, "sct"):
            try:
                instance = mss.mss()
            except mss.exception.ScreenShotError as e:
                raise _translate_error(e) from e
            self._thread_local.sct = instance
            with self._lock:
                self._instances.append(instance)
        return self._thread_local.sct

    def monitor_count(self) -> int:
        return len(self.sct.monitors) - 1

    def _monitor(self, monitor_index: int) -> dict:
        count = self.monitor_count()
        if not 0 <= monitor_index < count:
            raise MonitorNotFoundError(monitor_index, count)
        return self.sct.monitors[monitor_index + 1]

    def monitor_size(self, monitor_index: int = 0) -> Tuple[int, int]:
        monitor = self._monitor(monitor_index)
        return monitor["width"], monitor["height"]

    def capture(self, region: CaptureRegion, monitor_index: int = 0) -> np.ndarray:
        monitor = self._monitor(monitor_index)
        validate_region(region, (monitor["width"], monitor["height"]))

        area = {
            "left": monitor["left"] + region.x,
            "top": monitor["top"] + region.y,
            "width": region.width,
            "height": region.height
        }
        try:
            shot = self.sct.grab(area)
        except (mss.exception.ScreenShotError, OSError) as e:
            raise _translate_error(e) from e

        rgba = cv2.cvtColor(np.asarray(shot), cv2.COLOR_BGRA2RGBA)
        rgba.setflags(write=False)
        return rgba

    def close(self) -> None:
        with self._lock:
            instances, self._instances = self._instances, []
        for instance in instances:
            instance.close()
        self._thread_local = threading.local()
        logger.debug(f"Closed {len(instances)} capture instance(s)")
