import numpy as np
import pytest

from octdispersion.engine import DispersionEstimationEngine
from octdispersion.parameters import DispersionEstimatorParameters, SharpnessMetric

SAMPLES = 256
LINES = 4
TONE_BIN = 40
DISPERSION = 20.0

INI_TEXT = """[processing]
background_removal=false
resampling=false
dispersion_compensation=true
windowing=true
log=false
"""


def _frame():
    k = np.arange(SAMPLES)
    psi = DISPERSION * (k / (SAMPLES - 1)) ** 2
    line = 2048 + 1000 * np.cos(2 * np.pi * TONE_BIN * k / SAMPLES + psi)
    return np.tile(np.round(line).astype("<u2"), LINES).tobytes()


def _params(**changes):
    base = dict(
        number_of_center_ascans=2,
        number_of_ascan_samples_to_ignore=30,
        sharpness_metric=SharpnessMetric.PEAK_VALUE,
        d2_start=-50.0,
        d2_end=50.0,
        d3_start=-50.0,
        d3_end=50.0,
        number_of_dispersion_samples=20,
        use_linear_ascans=True,
    )
    base.update(changes)
    return DispersionEstimatorParameters(**base)


@pytest.fixture
def engine_parts(tmp_path):
    settings = tmp_path / "settings.ini"
    settings.write_text(INI_TEXT)
    statuses, d2_points, d3_points = [], [], []
    engine = DispersionEstimationEngine(
        settings_path=settings,
        resampling_path=tmp_path / "resampling.csv",
        on_status=statuses.append,
        on_metric_d2=lambda d, m: d2_points.append((d, m)),
        on_metric_d3=lambda d, m: d3_points.append((d, m)),
    )
    return engine, statuses, d2_points, d3_points


def test_recovers_dispersion(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params())
    result = engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert result.best_d2 == pytest.approx(DISPERSION)
    assert result.best_d3 == pytest.approx(0.0)


def test_compensated_ascan_is_sharper(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params())
    result = engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert result.ascan_without_dispersion.shape == (SAMPLES // 2,)
    assert result.ascan_with_best_dispersion.shape == (SAMPLES // 2,)
    assert result.ascan_with_best_dispersion[30:].max() > result.ascan_without_dispersion[30:].max()


def test_sweep_points_and_callbacks(engine_parts):
    engine, _, d2_points, d3_points = engine_parts
    engine.set_params(_params())
    result = engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert len(result.d2_metrics) == 20
    assert len(result.d3_metrics) == 20
    assert d2_points == result.d2_metrics
    assert d3_points == result.d3_metrics
    d2_values = [d for d, _ in result.d2_metrics]
    assert d2_values == pytest.approx([-50.0 + 5.0 * i for i in range(20)])
    assert result.best_metric_d2 == pytest.approx(max(m for _, m in result.d2_metrics))
    assert result.best_metric_d3 == pytest.approx(max(m for _, m in result.d3_metrics))


def test_d1_derived_when_enabled(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params(auto_calc_d1=True))
    result = engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert result.d1 == pytest.approx(-(result.best_d2 + result.best_d3))


def test_d1_absent_when_disabled(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params(auto_calc_d1=False, number_of_dispersion_samples=3))
    result = engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert result.d1 is None


def test_status_messages(engine_parts):
    engine, statuses, _, _ = engine_parts
    engine.set_params(_params(number_of_dispersion_samples=2))
    engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert statuses[0] == "Estimation process started..."
    assert statuses[-1] == "Ready for next operation."
    assert statuses.count("Processing OCT data...") == 4


def test_settings_follow_frame_and_are_restored(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params(number_of_center_ascans=10, number_of_dispersion_samples=2))
    engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    settings = engine.controller.settings
    assert settings.spectra_per_frame == LINES
    assert settings.samples_per_spectrum == SAMPLES
    assert settings.bit_depth == 16
    assert settings.processing_options.log_scale is False


def test_log_scale_follows_parameters(engine_parts):
    engine, _, _, _ = engine_parts
    engine.set_params(_params(use_linear_ascans=False, number_of_dispersion_samples=1))
    engine.start_dispersion_estimation(_frame(), 16, SAMPLES, LINES)
    assert engine.controller.settings.processing_options.log_scale is True


def test_failed_processing_reports_and_keeps_defaults(engine_parts):
    engine, statuses, d2_points, _ = engine_parts
    engine.set_params(_params(number_of_dispersion_samples=3))
    result = engine.start_dispersion_estimation(_frame(), 0, SAMPLES, LINES)
    assert d2_points == []
    assert result.best_d2 == 0.0
    assert result.best_d3 == 0.0
    assert result.ascan_without_dispersion.size == 0
    assert "Processing failed" in statuses
    assert "Processing results failed!" in statuses