"""Extension front end: grabs single frames and hands them to the estimation engine."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Callable, Mapping

from .engine import DispersionEstimationEngine, EstimationResult
from .parameters import DispersionEstimatorParameters

NUMBER_OF_BUFFERS = 2

FrameCallback = Callable[[bytes, int, int, int], None]


class DispersionEstimator:
    """Copies one requested frame of raw data and runs the dispersion estimation on it."""

    name = "Dispersion Estimator"
    tool_tip = "Estimates values for numerical dispersion compensation"

    def __init__(
        self,
        engine: DispersionEstimationEngine | None = None,
        on_frame: FrameCallback | None = None,
    ) -> None:
        if engine is None:
            engine = DispersionEstimationEngine(on_status=self._set_status)
        self.engine = engine
        self.on_frame = on_frame
        self.parameters = DispersionEstimatorParameters()
        self.settings_map: dict[str, Any] = {}
        self.status = ""
        self.frame_nr = 0
        self.buffer_nr = -1
        self.active = False
        self.is_calculating = False
        self.single_fetch = False
        self.raw_grabbing_allowed = True
        self.frame_buffers: list[bytearray | None] = [None] * NUMBER_OF_BUFFERS
        self.copy_buffer_id = -1
        self.bytes_per_frame = 0
        self.frames_per_buffer: int | None = None
        self.buffers_per_volume: int | None = None
        self.max_frame_nr: int | None = None
        self.max_buffer_nr: int | None = None
        self.last_result: EstimationResult | None = None

    def _set_status(self, status: str) -> None:
        self.status = status

    def activate_extension(self) -> None:
        """Start accepting data."""
        self.active = True

    def deactivate_extension(self) -> None:
        """Stop accepting data."""
        self.active = False

    def settings_loaded(self, settings: Mapping[str, Any]) -> None:
        """Apply a stored settings map."""
        params = DispersionEstimatorParameters.from_settings(settings)
        self.parameters = params
        self.frame_nr = params.frame_nr
        self.buffer_nr = params.buffer_nr
        self.engine.set_params(params)

    def store_parameters(self) -> dict[str, Any]:
        """Update and return the settings map holding the current parameters."""
        self.settings_map.update(self.parameters.to_settings())
        return dict(self.settings_map)

    def set_frame_nr(self, frame_nr: int) -> None:
        """Select which frame of a buffer is grabbed."""
        self.frame_nr = int(frame_nr)
        self.parameters = replace(self.parameters, frame_nr=self.frame_nr)
        self.engine.set_params(self.parameters)

    def set_buffer_nr(self, buffer_nr: int) -> None:
        """Select which buffer is grabbed; -1 accepts any buffer."""
        self.buffer_nr = int(buffer_nr)
        self.parameters = replace(self.parameters, buffer_nr=self.buffer_nr)
        self.engine.set_params(self.parameters)

    def request_single_fetch(self) -> None:
        """Grab the next matching frame."""
        self.single_fetch = True
        self._set_status("Waiting for data...")

    def raw_data_received(
        self,
        buffer,
        bit_depth: int,
        samples_per_line: int,
        lines_per_frame: int,
        frames_per_buffer: int,
        buffers_per_volume: int,
        current_buffer_nr: int,
    ) -> EstimationResult | None:
        """Take a raw buffer; if a fetch is pending and it matches, estimate on one frame.

        Returns the estimation result, or None when the buffer was not used.
        Raises ValueError for invalid data dimensions.
        """
        if not self.active:
            return None
        if self.is_calculating or not self.single_fetch or not self.raw_grabbing_allowed:
            return None

        if self.buffer_nr > buffers_per_volume - 1:
            self.buffer_nr = buffers_per_volume - 1
        if not (self.buffer_nr == -1 or self.buffer_nr == current_buffer_nr):
            return None

        self.is_calculating = True
        try:
            bytes_per_sample = math.ceil(bit_depth / 8)
            bytes_per_frame = samples_per_line * lines_per_frame * bytes_per_sample

            if self.frames_per_buffer != frames_per_buffer:
                self.max_frame_nr = frames_per_buffer - 1
                self.frames_per_buffer = frames_per_buffer
            if self.buffers_per_volume != buffers_per_volume:
                self.max_buffer_nr = buffers_per_volume - 1
                self.buffers_per_volume = buffers_per_volume

            if self.frame_buffers[0] is None or self.bytes_per_frame != bytes_per_frame:
                if 0 in (bit_depth, samples_per_line, lines_per_frame, frames_per_buffer):
                    raise ValueError(f"{self.name}:  Invalid data dimensions!")
                self.frame_buffers = [bytearray(bytes_per_frame) for _ in range(NUMBER_OF_BUFFERS)]
                self.bytes_per_frame = bytes_per_frame

            self.copy_buffer_id = (self.copy_buffer_id + 1) % NUMBER_OF_BUFFERS
            if self.frame_nr > frames_per_buffer - 1:
                self.frame_nr = frames_per_buffer - 1
            data = memoryview(buffer).cast("B")
            start = bytes_per_frame * self.frame_nr
            if start + bytes_per_frame > len(data):
                raise ValueError("buffer is smaller than the selected frame")
            target = self.frame_buffers[self.copy_buffer_id]
            target[:] = data[start : start + bytes_per_frame]
            frame = bytes(target)

            if self.on_frame is not None:
                self.on_frame(frame, bit_depth, samples_per_line, lines_per_frame)
            result = self.engine.start_dispersion_estimation(
                frame, bit_depth, samples_per_line, lines_per_frame
            )
            self.last_result = result
            self.single_fetch = False
            return result
        finally:
            self.is_calculating = False

    def receive_command(self, command: str, params: Mapping[str, Any] | None = None) -> None:
        """Handle a command sent by the host application."""
        if command == "startSingleFetch":
            self.request_single_fetch()