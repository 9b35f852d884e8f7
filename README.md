# octdispersion

Estimate the second- and third-order dispersion coefficients (`d2`, `d3`)
used for numerical dispersion compensation of spectral-domain OCT data.

The estimator takes one raw frame and cuts out its center A-scans. It
processes them with a range of trial `d2` values (with `d3` at zero) and
keeps the value that gives the highest A-scan sharpness metric. It then
sweeps `d3` with that best `d2`. If asked to, it also derives
`d1 = -(d2 + d3)`.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `octdispersion.parameters`: `DispersionEstimatorParameters`, a dataclass
  that holds every setting of the estimation: sweep ranges, number of sweep
  samples, number of center A-scans, samples to ignore, metric and threshold,
  and so on. Two enums go with it, `SharpnessMetric` and `BufferSource`.
  `from_settings` builds the parameters from a plain mapping and uses the
  defaults for missing keys. It raises `ValueError` for values it cannot
  convert and for an unknown metric. `to_settings` returns that mapping.
- `octdispersion.metrics`: `AscanMetricCalculator.calculate_metric` splits
  processed data into lines of `samples_per_line` and skips the first
  `number_of_ascan_samples_to_ignore` samples of each line. It then sums one
  of these per-line metrics over all complete lines: sum above threshold,
  samples above threshold, peak value or mean Sobel gradient.
- `octdispersion.processor`: `Processor` and `ProcessingOptions` make up the
  processing chain. The steps are rolling-average DC removal, cubic
  k-linearization (from polynomial coefficients, or from a custom
  `sample;value` CSV curve), dispersion compensation, Hann windowing, inverse
  FFT and either log scaling or magnitude. `process_raw_data` returns an array
  of shape `(frames, spectra_per_frame, samples_per_spectrum // 2)`.
- `octdispersion.controller`: `ProcessingSettings` holds the processing
  settings and `ProcessorController` works with them. `load_settings_from_file`
  reads the `[Virtual OCT System]` and `[processing]` groups of an INI file and
  returns `False` if the file does not exist. `process_data` runs the processor
  on raw bytes and returns the A-scans of the first frame as one flat
  `float32` array. It raises `ProcessingError` when no complete frame can be
  processed. `default_settings_path()` and `default_resampling_path()` return
  `settings.ini` and `resampling.csv` in the user's configuration directory.
- `octdispersion.engine`: `DispersionEstimationEngine.start_dispersion_estimation`
  runs both sweeps and returns an `EstimationResult`. The result holds the
  best coefficients, their metric values, every `(coefficient, metric)` pair
  of both sweeps, the optional `d1`, and one center A-scan processed once
  without and once with the best dispersion compensation. Optional callbacks
  report status messages and each metric value as it is computed.
- `octdispersion.plotdata`: `LinePlotData` holds two curves of points and
  drops the oldest point once a curve exceeds `max_data_points`. `save_csv`
  writes them as semicolon-separated text with the header
  `Dispersion Parameter;D2 Metric;D3 Metric`.
- `octdispersion.estimator`: `DispersionEstimator` receives raw buffers. It
  must be activated and have a single fetch pending (`request_single_fetch()`
  or the `"startSingleFetch"` command). When the selected buffer number
  matches (`-1` accepts any), it copies the selected frame and runs the
  engine on it. `raw_data_received` returns the `EstimationResult`, or `None`
  when it does not use the buffer. It raises `ValueError` for invalid data
  dimensions.

## Example

```python
from octdispersion.engine import DispersionEstimationEngine
from octdispersion.parameters import DispersionEstimatorParameters

params = DispersionEstimatorParameters.from_settings({"d2_start": -20.0, "d2_end": 20.0})

engine = DispersionEstimationEngine(on_status=print)
engine.set_params(params)
result = engine.start_dispersion_estimation(frame_bytes, 12, 1024, 512)
print(result.best_d2, result.best_d3, result.d1)
```

`frame_bytes` is one raw frame. It holds 8-bit samples up to a bit depth of 8,
little-endian 16-bit samples up to 16, and 32-bit samples above that.

Processing settings are read from `default_settings_path()`. If that file
does not exist, the defaults of `ProcessingSettings` are used. To use a
different file, pass `settings_path` (and optionally `resampling_path`) to
the engine.

## What this package does not do

There is no graphical window, no drawing of plots and no command-line program.
`LinePlotData` only stores the curve data and writes it to CSV. The package
does not acquire data either: raw buffers have to be handed to
`DispersionEstimator.raw_data_received` or to the engine by the calling code.
The estimation runs synchronously in the calling thread.