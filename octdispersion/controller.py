"""Processing settings, their INI file form and a one-call processing front end."""

from __future__ import annotations

import configparser
import copy
import logging
import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

import numpy as np

from .processor import ProcessingOptions, Processor

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.ini"
RESAMPLING_FILE_NAME = "resampling.csv"

_SYSTEM_GROUP = "Virtual OCT System"
_PROCESSING_GROUP = "processing"
_FALSE_STRINGS = {"", "0", "false"}


class ProcessingError(RuntimeError):
    """Raised when raw data cannot be turned into A-scans."""


def _config_dir() -> Path:
    if sys.platform.startswith("win"):
        base = os.environ.get("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Preferences"
    base = os.environ.get("XDG_CONFIG_HOME")
    return Path(base) if base else Path.home() / ".config"


def default_settings_path() -> Path:
    """Return the path of the acquisition program's settings file."""
    return _config_dir() / SETTINGS_FILE_NAME


def default_resampling_path() -> Path:
    """Return the path of the custom resampling curve file."""
    return _config_dir() / RESAMPLING_FILE_NAME


def _f32(value: float) -> float:
    return float(np.float32(value))


@dataclass
class ProcessingSettings:
    """Data dimensions and processing configuration."""

    bit_depth: int = 12
    samples_per_spectrum: int = 1024
    spectra_per_frame: int = 512
    frames_per_volume: int = 1
    rolling_average_window_size: int = 64
    processing_options: ProcessingOptions = field(default_factory=ProcessingOptions)
    dispersion_coefficients: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    resampling_coefficients: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    file_path_custom_resampling_curve: str = ""
    log_scale_coeff: float = 1.0
    log_scale_min: float = 0.0
    log_scale_max: float = 100.0
    log_scale_addend: float = 0.0
    auto_compute_log_scale_min_max: bool = False


def _unquote_value(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return value


def _read_ini(path: Path) -> dict[str, dict[str, str]]:
    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        delimiters=("=",),
        comment_prefixes=(";", "#"),
    )
    parser.optionxform = str
    text = path.read_text(encoding="utf-8", errors="replace")
    parser.read_string("[General]\n" + text)
    groups: dict[str, dict[str, str]] = {}
    for section in parser.sections():
        entries = groups.setdefault(unquote(section), {})
        for key, value in parser.items(section):
            entries[unquote(key)] = _unquote_value(value)
    return groups


class _Group:
    """Typed access to one INI group with Qt-like conversions."""

    def __init__(self, values: dict[str, str]) -> None:
        self._values = values

    def text(self, key: str, default: str) -> str:
        return self._values.get(key, default)

    def integer(self, key: str, default: int) -> int:
        if key not in self._values:
            return default
        try:
            return int(float(self._values[key]))
        except ValueError:
            return 0

    def unsigned(self, key: str, default: int) -> int:
        return max(self.integer(key, default), 0)

    def number(self, key: str, default: float) -> float:
        if key not in self._values:
            return default
        try:
            return float(self._values[key])
        except ValueError:
            return 0.0

    def flag(self, key: str, default: bool) -> bool:
        if key not in self._values:
            return default
        return self._values[key].strip().lower() not in _FALSE_STRINGS


class ProcessorController:
    """Holds processing settings and processes raw frames with them."""

    def __init__(self, settings: ProcessingSettings | None = None) -> None:
        self.settings = copy.deepcopy(settings) if settings is not None else ProcessingSettings()

    def set_processing_settings(self, settings: ProcessingSettings) -> None:
        """Replace all processing settings."""
        self.settings = copy.deepcopy(settings)

    def set_dispersion_coefficients(self, d2: float, d3: float) -> None:
        """Set the second and third order dispersion coefficients."""
        coefficients = list(self.settings.dispersion_coefficients)
        coefficients.extend([0.0] * (4 - len(coefficients)))
        coefficients[2] = _f32(d2)
        coefficients[3] = _f32(d3)
        self.settings.dispersion_coefficients = coefficients

    def load_settings_from_file(self, file_path: str | Path) -> bool:
        """Load settings from an INI file; return False if the file does not exist."""
        path = Path(file_path)
        if not path.is_file():
            logger.debug("Settings file does not exist: %s", path)
            return False

        groups = _read_ini(path)
        system = _Group(groups.get(_SYSTEM_GROUP, {}))
        processing = _Group(groups.get(_PROCESSING_GROUP, {}))
        s = self.settings
        options = s.processing_options

        s.bit_depth = system.integer("bit_depth", 12)
        s.samples_per_spectrum = system.unsigned("width", 1024)
        s.spectra_per_frame = system.unsigned("height", 512)
        s.frames_per_volume = system.unsigned("buffers_per_volume", 1)

        s.rolling_average_window_size = processing.unsigned("background_removal_window_size", 64)
        options.remove_dc = processing.flag("background_removal", False)
        options.resample = processing.flag("resampling", False)
        options.use_custom_resampling_curve = processing.flag("custom_resampling", False)
        s.file_path_custom_resampling_curve = processing.text("custom_resampling_filepath", "")

        s.resampling_coefficients = [
            _f32(processing.number(f"resampling_c{i}", 0.0)) for i in range(4)
        ]

        options.compensate_dispersion = processing.flag("dispersion_compensation", False)
        s.dispersion_coefficients = [
            _f32(processing.number(f"dispersion_compensation_d{i}", 0.0)) for i in range(4)
        ]

        options.apply_window = processing.flag("windowing", True)

        options.log_scale = processing.flag("log", True)
        s.log_scale_min = _f32(processing.number("min", 0.0))
        s.log_scale_max = _f32(processing.number("max", 100.0))
        s.log_scale_coeff = _f32(processing.number("coeff", 1.0))
        s.log_scale_addend = _f32(processing.number("addend", 0.0))
        s.auto_compute_log_scale_min_max = False

        logger.debug("Settings loaded from: %s", path)
        return True

    def load_custom_resampling_curve_from_file(self, file_path: str | Path) -> None:
        """Use the curve in ``file_path`` as the custom resampling curve."""
        self.settings.file_path_custom_resampling_curve = str(file_path)

    def process_data(self, raw_data) -> np.ndarray:
        """Process the raw bytes and return the A-scans of the first frame, concatenated.

        Raises ProcessingError if no complete frame can be processed.
        """
        s = self.settings
        bytes_per_sample = math.ceil(s.bit_depth / 8)
        if bytes_per_sample <= 0:
            raise ProcessingError(f"invalid bit depth: {s.bit_depth}")
        data = bytes(raw_data)
        total_samples = len(data) // bytes_per_sample

        try:
            # The second positional argument is the window size, not the
            # rolling average window; the rolling average keeps its default.
            processor = Processor(s.samples_per_spectrum, s.rolling_average_window_size)
            processor.set_processing_options(s.processing_options)
            processor.set_dispersion_coefficients(s.dispersion_coefficients)
            processor.set_resampling_coefficients(s.resampling_coefficients)
            processor.set_custom_resampling_curve(s.file_path_custom_resampling_curve)
            processor.set_log_scale_parameters(
                s.log_scale_coeff,
                s.log_scale_min,
                s.log_scale_max,
                s.log_scale_addend,
                s.auto_compute_log_scale_min_max,
            )
            processed = processor.process_raw_data(
                data, total_samples, s.bit_depth, s.spectra_per_frame
            )
        except (ValueError, OSError) as exc:
            raise ProcessingError(str(exc)) from exc

        if processed.shape[0] == 0 or processed.shape[1] == 0:
            raise ProcessingError("raw data holds no complete frame")
        return processed[0].reshape(-1).astype(np.float32)