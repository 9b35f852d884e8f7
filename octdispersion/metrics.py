"""Sharpness metrics computed over processed A-scans."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

import numpy as np

from .parameters import DispersionEstimatorParameters, SharpnessMetric


class AscanMetricCalculator:
    """Sums a per-line sharpness metric over a block of processed A-scans."""

    def __init__(self, params: DispersionEstimatorParameters | None = None) -> None:
        if params is None:
            params = DispersionEstimatorParameters(
                sharpness_metric=SharpnessMetric.SUM_ABOVE_THRESHOLD
            )
        self.params = replace(params)

    def set_parameters(self, params: DispersionEstimatorParameters) -> None:
        """Replace the parameters used for subsequent calculations."""
        self.params = replace(params)

    def calculate_metric(self, output_data: Sequence[float], samples_per_line: int) -> float:
        """Return the metric summed over all complete lines of ``output_data``."""
        data = np.asarray(output_data, dtype=np.float32).ravel()
        if samples_per_line <= 0 or data.size == 0:
            return 0.0

        total_lines = data.size // samples_per_line
        if total_lines == 0:
            return 0.0

        ignore = min(max(self.params.number_of_ascan_samples_to_ignore, 0), samples_per_line)
        if samples_per_line - ignore <= 0:
            return 0.0

        lines = data[: total_lines * samples_per_line].reshape(total_lines, samples_per_line)
        lines = lines[:, ignore:]

        per_line = self._line_metrics(lines)
        return float(per_line.sum(dtype=np.float32))

    def _line_metrics(self, lines: np.ndarray) -> np.ndarray:
        metric = self.params.sharpness_metric
        threshold = np.float32(self.params.metric_threshold)
        zeros = np.zeros(lines.shape[0], dtype=np.float32)

        if metric == SharpnessMetric.SUM_ABOVE_THRESHOLD:
            return np.where(lines > threshold, lines, np.float32(0)).sum(axis=1, dtype=np.float32)
        if metric == SharpnessMetric.SAMPLES_ABOVE_THRESHOLD:
            return (lines > threshold).sum(axis=1).astype(np.float32)
        if metric == SharpnessMetric.PEAK_VALUE:
            return np.maximum(lines.max(axis=1), np.float32(0))
        if metric == SharpnessMetric.MEAN_SOBEL:
            if lines.shape[1] < 3:
                return zeros
            gradient = np.abs((lines[:, 2:] - lines[:, :-2]) * np.float32(0.5))
            return gradient.mean(axis=1, dtype=np.float32)
        return zeros