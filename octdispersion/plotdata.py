"""Data behind the two-curve metric and A-scan plots."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

DEFAULT_MAX_DATA_POINTS = 10000
CSV_HEADER = "Dispersion Parameter;D2 Metric;D3 Metric"


def _format_number(value: float) -> str:
    return f"{value:.6g}"


class LinePlotData:
    """Two curves of (x, y) points, kept below a maximum length."""

    def __init__(self, max_data_points: int = DEFAULT_MAX_DATA_POINTS) -> None:
        if max_data_points <= 0:
            raise ValueError("max_data_points must be positive")
        self.max_data_points = int(max_data_points)
        self.first_x: list[float] = []
        self.first_y: list[float] = []
        self.second_x: list[float] = []
        self.second_y: list[float] = []
        self.data_point_counter = 0
        self.first_curve_name = "a"
        self.second_curve_name = "b"
        self.x_axis_label = "x"
        self.y_axis_label = "y"

    def update_first_curve(self, x: float, y: float) -> None:
        """Append a point to the first curve, dropping the oldest beyond the limit."""
        self._append(self.first_x, self.first_y, x, y)

    def update_second_curve(self, x: float, y: float) -> None:
        """Append a point to the second curve, dropping the oldest beyond the limit."""
        self._append(self.second_x, self.second_y, x, y)

    def set_first_curve(self, curve_data: Iterable[float]) -> None:
        """Replace the first curve; x values are the sample indices."""
        self.first_x, self.first_y = self._indexed(curve_data)

    def set_second_curve(self, curve_data: Iterable[float]) -> None:
        """Replace the second curve; x values are the sample indices."""
        self.second_x, self.second_y = self._indexed(curve_data)

    def clear(self) -> None:
        """Remove all points from both curves."""
        self.first_x.clear()
        self.first_y.clear()
        self.second_x.clear()
        self.second_y.clear()
        self.data_point_counter = 0

    def save_csv(self, file_name: str | Path) -> None:
        """Write both curves as semicolon-separated text; raises OSError on failure."""
        lines = [CSV_HEADER]
        count = max(len(self.first_x), len(self.second_x))
        for i in range(count):
            param = self.first_x[i] if i < len(self.first_x) else 0.0
            first = _format_number(self.first_y[i]) if i < len(self.first_y) else ""
            second = _format_number(self.second_y[i]) if i < len(self.second_y) else ""
            lines.append(f"{_format_number(param)};{first};{second}")
        with open(file_name, "w", encoding="utf-8", newline="") as handle:
            handle.write("\n".join(lines) + "\n")

    def _append(self, xs: list[float], ys: list[float], x: float, y: float) -> None:
        xs.append(float(x))
        ys.append(float(y))
        self.data_point_counter += 1
        if len(xs) > self.max_data_points:
            del xs[0]
            del ys[0]

    @staticmethod
    def _indexed(curve_data: Iterable[float]) -> tuple[list[float], list[float]]:
        ys = [float(v) for v in curve_data]
        xs = [float(i) for i in range(len(ys))]
        return xs, ys