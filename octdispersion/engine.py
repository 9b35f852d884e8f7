"""Sweep of dispersion coefficients that maximises A-scan sharpness."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable

import numpy as np

from .controller import (
    ProcessingError,
    ProcessorController,
    default_resampling_path,
    default_settings_path,
)
from .metrics import AscanMetricCalculator
from .parameters import DispersionEstimatorParameters

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
MetricCallback = Callable[[float, float], None]


@dataclass
class EstimationResult:
    """Outcome of one estimation run."""

    best_d2: float = 0.0
    best_d3: float = 0.0
    best_metric_d2: float = 0.0
    best_metric_d3: float = 0.0
    d1: float | None = None
    d2_metrics: list[tuple[float, float]] = field(default_factory=list)
    d3_metrics: list[tuple[float, float]] = field(default_factory=list)
    ascan_without_dispersion: np.ndarray = field(
        default_factory=lambda: np.zeros(0, dtype=np.float32)
    )
    ascan_with_best_dispersion: np.ndarray = field(
        default_factory=lambda: np.zeros(0, dtype=np.float32)
    )


class DispersionEstimationEngine:
    """Finds the d2 and d3 coefficients that give the sharpest A-scans."""

    def __init__(
        self,
        settings_path: str | Path | None = None,
        resampling_path: str | Path | None = None,
        on_status: StatusCallback | None = None,
        on_metric_d2: MetricCallback | None = None,
        on_metric_d3: MetricCallback | None = None,
    ) -> None:
        self.settings_path = Path(settings_path) if settings_path else default_settings_path()
        self.resampling_path = (
            Path(resampling_path) if resampling_path else default_resampling_path()
        )
        self.on_status = on_status
        self.on_metric_d2 = on_metric_d2
        self.on_metric_d3 = on_metric_d3
        self.params = DispersionEstimatorParameters()
        self.controller = ProcessorController()
        self.calculator = AscanMetricCalculator()

    def set_params(self, params: DispersionEstimatorParameters) -> None:
        """Replace the estimation parameters."""
        self.params = replace(params)

    def _status(self, message: str) -> None:
        if self.on_status is not None:
            self.on_status(message)

    def start_dispersion_estimation(
        self,
        frame_buffer,
        bit_depth: int,
        samples_per_line: int,
        lines_per_frame: int,
    ) -> EstimationResult:
        """Run the d2 sweep, then the d3 sweep, on the centre A-scans of a frame."""
        self._status("Estimation process started...")
        params = self.params
        controller = self.controller
        settings = controller.settings

        logger.debug("Loading processing settings...")
        controller.load_settings_from_file(self.settings_path)
        settings.processing_options.log_scale = not params.use_linear_ascans
        if settings.processing_options.use_custom_resampling_curve:
            controller.load_custom_resampling_curve_from_file(self.resampling_path)

        center_ascans = min(max(params.number_of_center_ascans, 0), lines_per_frame)
        settings.samples_per_spectrum = samples_per_line
        settings.spectra_per_frame = center_ascans
        settings.bit_depth = bit_depth

        offset_ascans = (lines_per_frame - center_ascans) // 2 if center_ascans < lines_per_frame else 0
        bytes_per_sample = math.ceil(bit_depth / 8)
        line_size_bytes = samples_per_line * bytes_per_sample
        offset_bytes = offset_ascans * line_size_bytes
        partial_bytes = center_ascans * line_size_bytes
        raw_data = bytes(frame_buffer)[offset_bytes : offset_bytes + partial_bytes]

        result = EstimationResult()
        count = params.number_of_dispersion_samples
        step_d2 = abs(params.d2_end - params.d2_start) / count if count > 0 else 0.0
        step_d3 = abs(params.d3_end - params.d3_start) / count if count > 0 else 0.0

        controller.set_dispersion_coefficients(params.d2_start, params.d3_start)
        self.calculator.set_parameters(params)

        d2 = params.d2_start
        for _ in range(count):
            metric = self._metric_for(raw_data, d2, 0.0)
            if metric is None:
                continue
            if result.best_metric_d2 < metric:
                result.best_metric_d2 = metric
                result.best_d2 = d2
            result.d2_metrics.append((d2, metric))
            if self.on_metric_d2 is not None:
                self.on_metric_d2(d2, metric)
            d2 += step_d2

        d3 = params.d3_start
        for _ in range(count):
            metric = self._metric_for(raw_data, result.best_d2, d3)
            if metric is None:
                continue
            if result.best_metric_d3 < metric:
                result.best_metric_d3 = metric
                result.best_d3 = d3
            result.d3_metrics.append((d3, metric))
            if self.on_metric_d3 is not None:
                self.on_metric_d3(d3, metric)
            d3 += step_d3

        result.ascan_without_dispersion = self._process_first_line_only(raw_data, 0.0, 0.0)
        result.ascan_with_best_dispersion = self._process_first_line_only(
            raw_data, result.best_d2, result.best_d3
        )

        if params.auto_calc_d1:
            result.d1 = -(result.best_d2 + result.best_d3)

        self._status("Ready for next operation.")
        return result

    def _metric_for(self, raw_data: bytes, d2: float, d3: float) -> float | None:
        self.controller.set_dispersion_coefficients(d2, d3)
        logger.debug("Processing OCT data...")
        self._status("Processing OCT data...")
        try:
            output = self.controller.process_data(raw_data)
        except ProcessingError:
            logger.debug("Processing failed!")
            self._status("Processing failed")
            return None
        samples_per_line = self.controller.settings.samples_per_spectrum // 2
        return self.calculator.calculate_metric(output, samples_per_line)

    def _process_first_line_only(self, raw_data: bytes, d2: float, d3: float) -> np.ndarray:
        controller = self.controller
        settings = controller.settings
        controller.set_dispersion_coefficients(d2, d3)
        original_spectra = settings.spectra_per_frame
        original_frames = settings.frames_per_volume
        settings.spectra_per_frame = 1
        settings.frames_per_volume = 1

        bytes_per_sample = math.ceil(settings.bit_depth / 8)
        line_size_bytes = settings.samples_per_spectrum * bytes_per_sample
        center_ascans = min(max(self.params.number_of_center_ascans, 0), original_spectra)
        offset_ascans = (original_spectra - center_ascans) // 2 if center_ascans < original_spectra else 0
        offset_bytes = offset_ascans * line_size_bytes
        line = raw_data[offset_bytes : offset_bytes + line_size_bytes]

        logger.debug("Processing first center A-scan...")
        try:
            output = controller.process_data(line)
        except ProcessingError:
            logger.debug("Processing failed!")
            self._status("Processing results failed!")
            return np.zeros(0, dtype=np.float32)
        finally:
            settings.spectra_per_frame = original_spectra
            settings.frames_per_volume = original_frames
        return output