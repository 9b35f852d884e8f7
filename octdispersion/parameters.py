"""Parameters of the dispersion estimation and their settings-map form."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Mapping

KEY_SOURCE = "image_source"
KEY_FRAME = "frame_number"
KEY_BUFFER_SOURCE = "buffer_source"
KEY_ROI = "roi"
KEY_FRAME_NR = "frame_nr"
KEY_BUFFER_NR = "buffer_nr"
KEY_NUMBER_OF_CENTER_ASCANS = "number_of_center_ascans"
KEY_USE_LINEAR_ASCANS = "use_linear_ascans"
KEY_NUMBER_OF_ASCAN_SAMPLES_TO_IGNORE = "number_of_ascan_samples_to_ignore"
KEY_AUTO_CALC_D1 = "auto_calculate_d1"
KEY_SHARPNESS_METRIC = "sharpness_metric"
KEY_METRIC_THRESHOLD = "metric_threshold"
KEY_D2_START = "d2_start"
KEY_D2_END = "d2_end"
KEY_D3_START = "d3_start"
KEY_D3_END = "d3_end"
KEY_NUMBER_OF_DISPERSION_SAMPLES = "number_of_dispersion_samples"
KEY_WINDOW_STATE = "dispersion_estimator_window_state"
KEY_GUI_TOGGLE = "gui_visible"

_FALSE_STRINGS = {"", "0", "false", "no", "off"}


class BufferSource(IntEnum):
    """Which data stream frames are taken from."""

    RAW = 0
    PROCESSED = 1


class SharpnessMetric(IntEnum):
    """A-scan sharpness metrics available for the estimation."""

    SUM_ABOVE_THRESHOLD = 0
    SAMPLES_ABOVE_THRESHOLD = 1
    PEAK_VALUE = 2
    MEAN_SOBEL = 3


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(float(value.strip()))
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, str):
        return float(value.strip())
    return float(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("latin-1")
    return bytes(value)


@dataclass
class DispersionEstimatorParameters:
    """All user-adjustable settings of the dispersion estimator."""

    buffer_source: BufferSource = BufferSource.RAW
    roi: tuple[int, int, int, int] = (0, 0, 0, 0)
    frame_nr: int = 0
    buffer_nr: int = -1
    number_of_center_ascans: int = 20
    use_linear_ascans: bool = True
    number_of_ascan_samples_to_ignore: int = 30
    auto_calc_d1: bool = False
    sharpness_metric: SharpnessMetric = SharpnessMetric.PEAK_VALUE
    metric_threshold: float = 0.7
    d2_start: float = -50.0
    d2_end: float = 50.0
    d3_start: float = -50.0
    d3_end: float = 50.0
    number_of_dispersion_samples: int = 100
    window_state: bytes = field(default=b"")
    gui_visible: bool = True

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "DispersionEstimatorParameters":
        """Build parameters from a stored settings map, using defaults for missing keys.

        Raises ValueError for values that cannot be converted, including an
        unknown sharpness metric.
        """
        defaults = cls()

        def get(key: str, default: Any, convert) -> Any:
            if key not in settings or settings[key] is None:
                return default
            try:
                return convert(settings[key])
            except (TypeError, ValueError) as exc:
                raise ValueError(f"invalid value for {key!r}: {settings[key]!r}") from exc

        metric_value = get(KEY_SHARPNESS_METRIC, int(defaults.sharpness_metric), _to_int)
        try:
            metric = SharpnessMetric(metric_value)
        except ValueError as exc:
            raise ValueError(f"unknown sharpness metric: {metric_value!r}") from exc

        return cls(
            buffer_nr=get(KEY_BUFFER_NR, defaults.buffer_nr, _to_int),
            frame_nr=get(KEY_FRAME_NR, defaults.frame_nr, _to_int),
            number_of_center_ascans=get(
                KEY_NUMBER_OF_CENTER_ASCANS, defaults.number_of_center_ascans, _to_int
            ),
            use_linear_ascans=get(KEY_USE_LINEAR_ASCANS, defaults.use_linear_ascans, _to_bool),
            number_of_ascan_samples_to_ignore=get(
                KEY_NUMBER_OF_ASCAN_SAMPLES_TO_IGNORE,
                defaults.number_of_ascan_samples_to_ignore,
                _to_int,
            ),
            auto_calc_d1=get(KEY_AUTO_CALC_D1, defaults.auto_calc_d1, _to_bool),
            sharpness_metric=metric,
            metric_threshold=get(KEY_METRIC_THRESHOLD, defaults.metric_threshold, _to_float),
            d2_start=get(KEY_D2_START, defaults.d2_start, _to_float),
            d2_end=get(KEY_D2_END, defaults.d2_end, _to_float),
            d3_start=get(KEY_D3_START, defaults.d3_start, _to_float),
            d3_end=get(KEY_D3_END, defaults.d3_end, _to_float),
            number_of_dispersion_samples=get(
                KEY_NUMBER_OF_DISPERSION_SAMPLES,
                defaults.number_of_dispersion_samples,
                _to_int,
            ),
            window_state=get(KEY_WINDOW_STATE, b"", _to_bytes),
            gui_visible=get(KEY_GUI_TOGGLE, defaults.gui_visible, _to_bool),
        )

    def to_settings(self) -> dict[str, Any]:
        """Return the settings map that stores these parameters."""
        return {
            KEY_BUFFER_NR: self.buffer_nr,
            KEY_FRAME_NR: self.frame_nr,
            KEY_NUMBER_OF_CENTER_ASCANS: self.number_of_center_ascans,
            KEY_USE_LINEAR_ASCANS: self.use_linear_ascans,
            KEY_NUMBER_OF_ASCAN_SAMPLES_TO_IGNORE: self.number_of_ascan_samples_to_ignore,
            KEY_AUTO_CALC_D1: self.auto_calc_d1,
            KEY_SHARPNESS_METRIC: int(self.sharpness_metric),
            KEY_METRIC_THRESHOLD: self.metric_threshold,
            KEY_D2_START: self.d2_start,
            KEY_D2_END: self.d2_end,
            KEY_D3_START: self.d3_start,
            KEY_D3_END: self.d3_end,
            KEY_NUMBER_OF_DISPERSION_SAMPLES: self.number_of_dispersion_samples,
            KEY_WINDOW_STATE: self.window_state,
            KEY_GUI_TOGGLE: self.gui_visible,
        }