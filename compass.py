"""Compass heading normalization, throttling and calibration."""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional

from angles import circular_distance, normalize_degrees, signed_difference
from errors import OrientationPermissionDeniedError, UnsupportedOrientationSensorError

LOGGER = logging.getLogger(__name__)

MIN_INTERVAL_FLOOR_MS = 5.0
DEFAULT_INTERVAL_MS = 20.0


class HeadingConvention(enum.Enum):
    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"
    # Platform compass readings that are already clockwise from north.
    DEVICE_COMPASS = "device_compass"


class SensorState(enum.Enum):
    AWAITING_SAMPLES = "awaiting_samples"
    ACTIVE = "active"
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class HeadingSample:
    raw_degrees: float
    convention: HeadingConvention
    timestamp_ms: float
    accuracy: Optional[float] = None


@dataclass(frozen=True)
class NormalizedHeading:
    degrees: float
    timestamp_ms: float
    accuracy: Optional[float]
    calibrated: bool


def to_clockwise(raw_degrees: float, convention: HeadingConvention) -> float:
    """Convert a reading to clockwise degrees from north in [0, 360)."""
    if convention is HeadingConvention.COUNTERCLOCKWISE:
        return normalize_degrees(360.0 - raw_degrees)
    return normalize_degrees(raw_degrees)


def is_aligned_with_qibla(heading: float, qibla_bearing: float, tolerance: float) -> bool:
    return circular_distance(heading, qibla_bearing) <= tolerance


class HeadingTracker:
    """Turns a raw orientation stream into calibrated clockwise headings.

    One tracker serves one orientation session. Samples closer together than
    ``min_interval_ms`` are coalesced: the newest is held back and released by
    :meth:`flush` once the interval has elapsed. ``smoothing`` is the weight kept from the
    previous heading (0 disables smoothing).
    """

    def __init__(self, min_interval_ms: float = DEFAULT_INTERVAL_MS, smoothing: float = 0.0) -> None:
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        self.min_interval_ms = max(MIN_INTERVAL_FLOOR_MS, float(min_interval_ms))
        self.smoothing = smoothing
        self._state = SensorState.AWAITING_SAMPLES
        self._offset = 0.0
        self._calibrated = False
        self._last_emit_ms: Optional[float] = None
        self._pending: Optional[HeadingSample] = None
        self._raw_heading: Optional[float] = None
        self._heading: Optional[NormalizedHeading] = None

    @property
    def state(self) -> SensorState:
        return self._state

    @property
    def heading(self) -> Optional[NormalizedHeading]:
        if self._state in (SensorState.UNSUPPORTED, SensorState.PERMISSION_DENIED):
            return None
        return self._heading

    @property
    def raw_heading(self) -> Optional[float]:
        """Last smoothed clockwise heading before the calibration offset."""
        return self._raw_heading

    @property
    def calibration_offset(self) -> float:
        return self._offset

    def ingest(self, sample: HeadingSample) -> Optional[NormalizedHeading]:
        if self._state in (SensorState.UNSUPPORTED, SensorState.PERMISSION_DENIED):
            LOGGER.debug("Ignoring heading sample while sensor is %s", self._state.value)
            return None
        if not math.isfinite(sample.raw_degrees):
            LOGGER.debug("Discarding non-finite heading sample %r", sample)
            return None
        if self._last_emit_ms is not None and sample.timestamp_ms - self._last_emit_ms < self.min_interval_ms:
            self._pending = sample
            return None
        return self._emit(sample, sample.timestamp_ms)

    def flush(self, now_ms: float) -> Optional[NormalizedHeading]:
        """Release the coalesced sample if the throttle interval has passed."""
        if self._pending is None or self._state in (SensorState.UNSUPPORTED, SensorState.PERMISSION_DENIED):
            return None
        if self._last_emit_ms is not None and now_ms - self._last_emit_ms < self.min_interval_ms:
            return None
        sample, self._pending = self._pending, None
        return self._emit(sample, now_ms)

    def set_calibration_offset(self, offset: float) -> None:
        LOGGER.debug("Calibration offset set to %.2f", offset)
        self._offset = float(offset)
        self._calibrated = True

    def clear_calibration(self) -> None:
        self._offset = 0.0
        self._calibrated = False

    def calibrate(self, current_estimate: float, known_target_bearing: float) -> float:
        """Derive and install the offset that maps *current_estimate* onto the known bearing.

        *current_estimate* is the uncalibrated heading reported while the device points at
        the reference whose true bearing is *known_target_bearing*.
        """
        offset = signed_difference(known_target_bearing, current_estimate)
        self.set_calibration_offset(offset)
        LOGGER.info(
            "Compass calibrated: estimate=%.2f reference=%.2f offset=%.2f",
            current_estimate,
            known_target_bearing,
            offset,
        )
        return offset

    def is_aligned(self, qibla_bearing: float, tolerance: float) -> Optional[bool]:
        heading = self.heading
        if heading is None:
            return None
        return is_aligned_with_qibla(heading.degrees, qibla_bearing, tolerance)

    def mark_unsupported(self) -> None:
        LOGGER.warning("Orientation sensor unsupported on this platform")
        self._degrade(SensorState.UNSUPPORTED)

    def mark_permission_denied(self) -> None:
        LOGGER.warning("Orientation sensor permission denied")
        self._degrade(SensorState.PERMISSION_DENIED)

    def ensure_available(self) -> None:
        """Raise if the tracker cannot produce headings at all."""
        if self._state is SensorState.UNSUPPORTED:
            raise UnsupportedOrientationSensorError("No orientation sensor available")
        if self._state is SensorState.PERMISSION_DENIED:
            raise OrientationPermissionDeniedError("Access to the orientation sensor was denied")

    def _degrade(self, state: SensorState) -> None:
        self._state = state
        self._pending = None
        self._heading = None
        self._raw_heading = None

    def _emit(self, sample: HeadingSample, emitted_at_ms: float) -> NormalizedHeading:
        clockwise = to_clockwise(sample.raw_degrees, sample.convention)
        if self._raw_heading is None or not self.smoothing:
            smoothed = clockwise
        else:
            step = (1.0 - self.smoothing) * signed_difference(clockwise, self._raw_heading)
            smoothed = normalize_degrees(self._raw_heading + step)
        self._raw_heading = smoothed
        self._last_emit_ms = emitted_at_ms
        self._pending = None
        self._state = SensorState.ACTIVE
        self._heading = NormalizedHeading(
            degrees=normalize_degrees(smoothed + self._offset),
            timestamp_ms=sample.timestamp_ms,
            accuracy=sample.accuracy,
            calibrated=self._calibrated,
        )
        return self._heading
