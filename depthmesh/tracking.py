"""
Head Tracking
Simulated head/face tracking for the perspective viewer.

A HeadTrackingSession owns one worker thread that samples a head position
source at a fixed interval and publishes into a LatestPositionChannel.
Readers always get the newest position; older ones are dropped if the
reader falls behind.
"""
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

MAX_ROTATION = math.radians(30)
REFERENCE_FACE_SIZE = 0.3


@dataclass(frozen=True)
class HeadPosition:
    x: float
    y: float
    z: float = 0.0
    confidence: float = 0.0
    sequence: int = 0


def simulate_head_position(t: float) -> HeadPosition:
    """Slow sinusoidal drift around the screen centre, in 0..1 screen units."""
    x = math.sin(t * 0.5) * 0.3
    y = math.cos(t * 0.7) * 0.2
    return HeadPosition(x=0.5 + x * 0.5, y=0.5 + y * 0.5, z=0.0, confidence=0.9)


class LatestPositionChannel:
    """Single-slot channel. publish() overwrites, get() waits for something newer."""

    def __init__(self):
        self._cond = threading.Condition()
        self._latest: Optional[HeadPosition] = None
        self._sequence = 0
        self._last_read = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, position: HeadPosition) -> Optional[HeadPosition]:
        """Store `position` as the newest value. Ignored once the channel is closed."""
        with self._cond:
            if self._closed:
                return None
            self._sequence += 1
            self._latest = replace(position, sequence=self._sequence)
            self._cond.notify_all()
            return self._latest

    def latest(self) -> Optional[HeadPosition]:
        """Newest position without waiting (may be one already read)."""
        with self._cond:
            return self._latest

    def get(self, timeout: Optional[float] = None) -> Optional[HeadPosition]:
        """
        Block until a position newer than the last one returned is available.
        Returns None on timeout or once the channel is closed and drained.
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._sequence > self._last_read or self._closed, timeout=timeout
            )
            if not ready or self._sequence <= self._last_read:
                return None
            self._last_read = self._sequence
            return self._latest

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self):
        while True:
            position = self.get()
            if position is None:
                return
            yield position


class TrackingHandle:
    """Returned by HeadTrackingSession.start(). Stopping the handle ends tracking."""

    def __init__(self, session: "HeadTrackingSession", channel: LatestPositionChannel):
        self._session = session
        self.channel = channel

    @property
    def active(self) -> bool:
        return self._session.active_handle is self

    def get(self, timeout: Optional[float] = None) -> Optional[HeadPosition]:
        return self.channel.get(timeout)

    def stop(self) -> None:
        self._session.stop(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


class HeadTrackingSession:
    """
    Caller-owned tracking session.

    Args:
        interval: Seconds between samples (~30 FPS by default)
        clock: Time source passed to `source`
        source: Maps a clock reading to a HeadPosition (or None when no face is seen)
    """

    def __init__(self, interval: float = 1 / 30,
                 clock: Callable[[], float] = time.monotonic,
                 source: Callable[[float], Optional[HeadPosition]] = simulate_head_position):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.clock = clock
        self.source = source
        self._lock = threading.Lock()
        self._handle: Optional[TrackingHandle] = None
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def active_handle(self) -> Optional[TrackingHandle]:
        return self._handle

    @property
    def is_tracking(self) -> bool:
        return self._handle is not None

    def start(self) -> TrackingHandle:
        with self._lock:
            if self._handle is not None:
                logger.info("Head tracking already active")
                return self._handle

            logger.info("Starting head tracking")
            channel = LatestPositionChannel()
            stop_event = threading.Event()
            handle = TrackingHandle(self, channel)
            thread = threading.Thread(
                target=self._run, args=(channel, stop_event), name="head-tracking", daemon=True
            )
            self._handle, self._stop_event, self._thread = handle, stop_event, thread
            thread.start()
            return handle

    def stop(self, handle: Optional[TrackingHandle] = None) -> None:
        """Stop tracking. A stale handle from an earlier start() is ignored."""
        with self._lock:
            if self._handle is None or (handle is not None and handle is not self._handle):
                return
            logger.info("Stopping head tracking")
            current, stop_event, thread = self._handle, self._stop_event, self._thread
            self._handle = self._stop_event = self._thread = None

        stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        current.channel.close()

    def _run(self, channel: LatestPositionChannel, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                try:
                    position = self.source(self.clock())
                except Exception:
                    logger.exception("Head position source failed, stopping tracking")
                    break
                if position is not None:
                    channel.publish(position)
                stop_event.wait(self.interval)
        finally:
            channel.close()
            # Release the session if it still points at this run, so start() works again
            with self._lock:
                if self._thread is threading.current_thread():
                    self._handle = self._stop_event = self._thread = None


class PositionSmoother:
    """
    Moving-average jitter filter.
    Maps 0..1 screen positions to -1..1 viewer offsets scaled by sensitivity.
    """

    def __init__(self, window: int = 5, sensitivity: float = 1.0):
        if window <= 0:
            raise ValueError("window must be positive")
        self.window = window
        self.sensitivity = sensitivity
        self._history = {axis: deque(maxlen=window) for axis in "xyz"}

    def _average(self, axis: str, value: float) -> float:
        history = self._history[axis]
        history.append(value)
        return sum(history) / len(history)

    def update(self, position: HeadPosition) -> HeadPosition:
        x = self._average("x", position.x)
        y = self._average("y", position.y)
        z = self._average("z", position.z or 0.0)

        return HeadPosition(
            x=_clamp((x - 0.5) * 2 * self.sensitivity, -1.0, 1.0),
            y=_clamp((y - 0.5) * 2 * self.sensitivity, -1.0, 1.0),
            z=z,
            confidence=position.confidence,
            sequence=position.sequence,
        )

    def reset(self) -> None:
        for history in self._history.values():
            history.clear()


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def detect_face(image_ref) -> dict:
    """Simulated face detection: one face with fixed landmarks, in 0..1 image units."""
    logger.debug(f"Detecting face in {image_ref}")
    return {
        "faces": [
            {
                "bounding_box": {"left": 0.3, "top": 0.2, "width": 0.4, "height": 0.5},
                "landmarks": {
                    "left_eye": {"x": 0.35, "y": 0.35},
                    "right_eye": {"x": 0.65, "y": 0.35},
                    "nose": {"x": 0.5, "y": 0.5},
                    "mouth": {"x": 0.5, "y": 0.65},
                },
                "confidence": 0.95,
            }
        ]
    }


def normalize_z_from_face_size(face_size: float) -> float:
    """Inverse-proportional distance estimate, clamped to [0.5, 2.0]."""
    if face_size <= 0:
        return 2.0
    z = REFERENCE_FACE_SIZE / face_size
    return _clamp(z, 0.5, 2.0)


def extract_head_position(face_data) -> Optional[HeadPosition]:
    """Head position of the first detected face, or None if there is none."""
    if not face_data or not face_data.get("faces"):
        return None

    face = face_data["faces"][0]
    box = face["bounding_box"]
    marks = face["landmarks"]

    center_x = box["left"] + box["width"] / 2
    center_y = box["top"] + box["height"] / 2
    face_size = math.hypot(marks["right_eye"]["x"] - marks["left_eye"]["x"],
                           marks["mouth"]["y"] - marks["nose"]["y"])

    return HeadPosition(
        x=center_x,
        y=center_y,
        z=normalize_z_from_face_size(face_size),
        confidence=face["confidence"],
    )


def calibrate(points: Sequence[HeadPosition]) -> dict:
    """Offsets that move the average of `points` to the screen centre."""
    if not points:
        raise ValueError("Calibration needs at least one point")
    avg_x = sum(p.x for p in points) / len(points)
    avg_y = sum(p.y for p in points) / len(points)
    calibration = {
        "offset_x": 0.5 - avg_x,
        "offset_y": 0.5 - avg_y,
        "scale_x": 1.0,
        "scale_y": 1.0,
        "z_scale": 1.0,
    }
    logger.info(f"Head tracking calibrated: {calibration}")
    return calibration


def perspective_rotation(position: HeadPosition, sensitivity: float = 1.0) -> dict:
    """Pitch/yaw/roll in radians for a head offset in -1..1 units."""
    return {
        "pitch": position.y * MAX_ROTATION * sensitivity,
        "yaw": -position.x * MAX_ROTATION * sensitivity,
        "roll": position.x * position.y * MAX_ROTATION * 0.3 * sensitivity,
    }


def field_of_view(distance: float, base_fov: float = 75.0) -> float:
    # closer = wider
    distance_factor = 1 / (distance or 1)
    return _clamp(base_fov * (0.8 + 0.4 * distance_factor), 30.0, 120.0)
