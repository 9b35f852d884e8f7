"""Spectral-domain OCT processing: raw spectra to A-scans."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Sequence

import numpy as np

_LEADING_NUMBER = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


@dataclass
class ProcessingOptions:
    """Switches for the individual processing steps."""

    remove_dc: bool = True
    resample: bool = True
    use_custom_resampling_curve: bool = False
    compensate_dispersion: bool = True
    apply_window: bool = True
    compute_ifft: bool = True
    log_scale: bool = True


def _parse_leading_float(text: str) -> float:
    match = _LEADING_NUMBER.match(text)
    if match is None:
        raise ValueError(f"Error parsing sample value: {text}")
    return float(match.group(1))


class Processor:
    """Turns raw spectra into A-scans, one frame of spectra at a time."""

    def __init__(
        self,
        samples_per_spectrum: int,
        window_size: int = 0,
        kernel_radius: int = 8,
        rolling_average_window_size: int = 10,
    ) -> None:
        if samples_per_spectrum < 2:
            raise ValueError("samples_per_spectrum must be at least 2")
        if rolling_average_window_size < 0:
            raise ValueError("rolling_average_window_size must not be negative")
        self.samples_per_spectrum = int(samples_per_spectrum)
        self.window_size = window_size
        self.kernel_radius = kernel_radius
        self.rolling_average_window_size = int(rolling_average_window_size)

        self.options = ProcessingOptions()
        self._window = self._generate_window()

        self._dispersion_coefficients: list[float] | None = None
        self._phase: np.ndarray | None = None
        self.dispersion_factor = 1.0
        self.dispersion_direction = 1

        self._resampling_coefficients: list[float] | None = None
        self._coefficient_curve: np.ndarray | None = None
        self._custom_curve: np.ndarray | None = None
        self._resample_positions: np.ndarray | None = None
        self._resampling_changed = True

        self.log_scale_coeff = 1.0
        self.log_scale_min = 0.0
        self.log_scale_max = 0.0
        self.log_scale_addend = 0.0
        self.auto_compute_log_scale_min_max = True

    # configuration -----------------------------------------------------

    def set_processing_options(self, options: ProcessingOptions) -> None:
        """Replace the processing options."""
        if self.options.use_custom_resampling_curve != options.use_custom_resampling_curve:
            self._resampling_changed = True
        self.options = replace(options)

    def set_dispersion_coefficients(
        self,
        phase_coefficients: Sequence[float],
        factor: float = 1.0,
        direction: int = 1,
    ) -> None:
        """Set the four polynomial coefficients of the dispersive phase."""
        coefficients = [float(c) for c in phase_coefficients]
        if len(coefficients) < 4:
            raise ValueError("four dispersion coefficients are required")
        self._dispersion_coefficients = coefficients
        self.dispersion_factor = float(factor)
        self.dispersion_direction = int(direction)
        self._phase = self._compute_dispersive_phase()

    def set_resampling_coefficients(self, coefficients: Sequence[float]) -> None:
        """Set the four polynomial coefficients of the resampling curve."""
        values = [float(c) for c in coefficients]
        if len(values) < 4:
            raise ValueError("four resampling coefficients are required")
        self._resampling_coefficients = values
        self._coefficient_curve = self._generate_coefficient_curve()
        self._resampling_changed = True

    def set_custom_resampling_curve(self, file_path: str | Path) -> None:
        """Load a resampling curve from a ``sample;value`` CSV file with a header line.

        An empty path is ignored, and so is a curve whose length does not
        match the spectrum length.
        """
        path = str(file_path)
        if not path:
            return
        try:
            with open(path, encoding="utf-8", newline="") as handle:
                text = handle.read()
        except OSError as exc:
            raise OSError("Unable to open custom resampling curve file.") from exc

        values = []
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        for line in lines[1:]:
            if ";" not in line:
                continue
            _, value = line.split(";", 1)
            if not value:
                continue
            values.append(_parse_leading_float(value))

        if len(values) != self.samples_per_spectrum:
            return
        self._custom_curve = np.asarray(values, dtype=np.float64)
        self._resampling_changed = True

    def set_log_scale_parameters(
        self,
        coeff: float = 1.0,
        min_val: float = 0.0,
        max_val: float = 0.0,
        addend: float = 0.0,
        auto_compute_min_max: bool = True,
    ) -> None:
        """Set the scaling applied after the logarithm."""
        self.log_scale_coeff = float(coeff)
        self.log_scale_min = float(min_val)
        self.log_scale_max = float(max_val)
        self.log_scale_addend = float(addend)
        self.auto_compute_log_scale_min_max = bool(auto_compute_min_max)

    # processing --------------------------------------------------------

    def process_raw_data(
        self,
        input_data,
        total_samples: int,
        input_bit_depth: int,
        spectra_per_frame: int,
    ) -> np.ndarray:
        """Process raw samples into A-scans.

        Returns an array of shape (frames, spectra_per_frame,
        samples_per_spectrum // 2); incomplete trailing frames are dropped.
        """
        if spectra_per_frame <= 0:
            raise ValueError("spectra_per_frame must be positive")
        n = self.samples_per_spectrum
        samples = self._convert_input(input_data, total_samples, input_bit_depth)
        num_frames = total_samples // (n * spectra_per_frame)
        half = n // 2
        if num_frames == 0:
            return np.zeros((0, spectra_per_frame, half), dtype=np.float32)

        rows = num_frames * spectra_per_frame
        spectra = samples[: rows * n].reshape(rows, n).astype(np.complex128)

        if self.options.remove_dc:
            spectra = self._rolling_average_dc_removal(spectra)
        if self.options.resample:
            if self._resample_positions is None or self._resampling_changed:
                self._resample_positions = self._generate_resample_curve()
                self._resampling_changed = False
            spectra = self._klinearize_cubic(spectra, self._resample_positions)
        if self.options.compensate_dispersion:
            spectra = self._compensate_dispersion(spectra)
        if self.options.apply_window:
            spectra = spectra * self._window[: spectra.shape[1]]
        if self.options.compute_ifft:
            spectra = np.fft.ifft(spectra, n=n, axis=1)
        if self.options.log_scale:
            processed = self._log_scale(spectra)
        else:
            processed = np.abs(spectra)

        truncated = processed[:, : processed.shape[1] // 2]
        return truncated.reshape(num_frames, spectra_per_frame, -1).astype(np.float32)

    # internals ---------------------------------------------------------

    def _generate_window(self) -> np.ndarray:
        n = self.samples_per_spectrum
        factor = 2.0 * math.pi / (n - 1)
        return 0.5 * (1.0 - np.cos(factor * np.arange(n)))

    def _compute_dispersive_phase(self) -> np.ndarray:
        if self._dispersion_coefficients is None:
            raise ValueError("dispersion coefficients have not been set")
        n = self.samples_per_spectrum
        c = self._dispersion_coefficients
        denom = float(n - 1)
        c0, c1, c2, c3 = c[0], c[1] / denom, c[2] / denom**2, c[3] / denom**3
        i = np.arange(n, dtype=np.float64)
        phase = c0 + i * (c1 + i * (c2 + i * c3))
        return np.cos(phase) + 1j * np.sin(phase) * self.dispersion_direction

    def _generate_coefficient_curve(self) -> np.ndarray:
        n = self.samples_per_spectrum
        c = self._resampling_coefficients
        denom = float(n - 1)
        c0, c1, c2, c3 = c[0], c[1] / denom, c[2] / denom**2, c[3] / denom**3
        x = np.arange(n, dtype=np.float64)
        values = c0 + x * (c1 + x * (c2 + x * c3))
        upper = float(n - 3) if n >= 3 else math.inf
        return np.where(values < 0.0, 0.0, np.where(upper < values, upper, values))

    def _generate_resample_curve(self) -> np.ndarray:
        if self.options.use_custom_resampling_curve and self._custom_curve is not None:
            return self._custom_curve.copy()
        if self._coefficient_curve is not None:
            return self._coefficient_curve.copy()
        return np.zeros(self.samples_per_spectrum, dtype=np.float64)

    def _convert_input(self, input_data, total_samples: int, bit_depth: int) -> np.ndarray:
        if bit_depth <= 8:
            dtype = np.dtype(np.uint8)
        elif bit_depth <= 16:
            dtype = np.dtype("<u2")
        else:
            dtype = np.dtype("<u4")
        try:
            raw = np.frombuffer(input_data, dtype=dtype, count=total_samples)
        except ValueError as exc:
            raise ValueError("input data holds fewer samples than requested") from exc
        return raw.astype(np.float64)

    def _rolling_average_dc_removal(self, spectra: np.ndarray) -> np.ndarray:
        count = spectra.shape[1]
        w = self.rolling_average_window_size
        cumulative = np.zeros((spectra.shape[0], count + 1), dtype=np.float64)
        np.cumsum(spectra.real, axis=1, out=cumulative[:, 1:])
        i = np.arange(count)
        if w >= 1:
            start = np.where(i >= w - 1, i - (w - 1), 0)
        else:
            start = np.zeros(count, dtype=np.int64)
        end = np.minimum(i + w, count - 1)
        sums = cumulative[:, end + 1] - cumulative[:, start]
        averages = sums / (end - start + 1)
        return spectra - averages

    def _klinearize_cubic(self, spectra: np.ndarray, curve: np.ndarray) -> np.ndarray:
        last = spectra.shape[1] - 1
        n1 = np.trunc(curve).astype(np.int64)
        n0 = np.minimum(np.abs(n1 - 1), last)
        n2 = np.minimum(n1 + 1, last)
        n3 = np.minimum(n1 + 2, last)
        n1 = np.minimum(n1, last)
        real = spectra.real
        y0, y1, y2, y3 = real[:, n0], real[:, n1], real[:, n2], real[:, n3]
        pos = curve - n1
        a = -y0 + 3.0 * (y1 - y2) + y3
        b = 2.0 * y0 - 5.0 * y1 + 4.0 * y2 - y3
        c = -y0 + y2
        values = 0.5 * pos * (a * pos * pos + b * pos + c) + y1
        return values.astype(np.complex128)

    def _compensate_dispersion(self, spectra: np.ndarray) -> np.ndarray:
        if self._phase is None or self._phase.size != spectra.shape[1]:
            self._phase = self._compute_dispersive_phase()
        return spectra.real * self._phase

    def _log_scale(self, spectra: np.ndarray) -> np.ndarray:
        size = spectra.shape[1]
        magnitude_squared = spectra.real**2 + spectra.imag**2
        with np.errstate(divide="ignore", invalid="ignore"):
            values = 10.0 * np.log10(magnitude_squared / size)
            if self.auto_compute_log_scale_min_max:
                low = values.min(axis=1, keepdims=True)
                high = values.max(axis=1, keepdims=True)
            else:
                low = self.log_scale_min
                high = self.log_scale_max
            normalized = (values - low) / (high - low)
        return self.log_scale_coeff * (normalized + self.log_scale_addend)