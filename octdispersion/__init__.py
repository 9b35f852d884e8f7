"""Dispersion coefficient estimation for OCT A-scans: parameters, sharpness metrics, OCT processing, the d2/d3 sweep and plot data."""

__version__ = "0.1.0"

__all__ = ["__version__"]