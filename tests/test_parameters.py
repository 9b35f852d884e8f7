import pytest

from octdispersion.parameters import (
    KEY_BUFFER_NR,
    KEY_D2_START,
    KEY_GUI_TOGGLE,
    KEY_METRIC_THRESHOLD,
    KEY_NUMBER_OF_CENTER_ASCANS,
    KEY_SHARPNESS_METRIC,
    KEY_USE_LINEAR_ASCANS,
    KEY_WINDOW_STATE,
    BufferSource,
    DispersionEstimatorParameters,
    SharpnessMetric,
)


def test_enum_values_follow_declaration_order():
    assert [m.value for m in SharpnessMetric] == list(range(4))
    assert SharpnessMetric(2) is SharpnessMetric.PEAK_VALUE
    assert BufferSource(1) is BufferSource.PROCESSED


def test_from_empty_settings_uses_defaults():
    params = DispersionEstimatorParameters.from_settings({})
    assert params.buffer_nr == -1
    assert params.frame_nr == 0
    assert params.number_of_center_ascans == 20
    assert params.use_linear_ascans is True
    assert params.number_of_ascan_samples_to_ignore == 30
    assert params.auto_calc_d1 is False
    assert params.sharpness_metric is SharpnessMetric.PEAK_VALUE
    assert params.metric_threshold == pytest.approx(0.7)
    assert (params.d2_start, params.d2_end) == (-50.0, 50.0)
    assert (params.d3_start, params.d3_end) == (-50.0, 50.0)
    assert params.number_of_dispersion_samples == 100
    assert params.gui_visible is True


def test_round_trip_through_settings():
    params = DispersionEstimatorParameters(
        frame_nr=3,
        buffer_nr=1,
        number_of_center_ascans=7,
        use_linear_ascans=False,
        number_of_ascan_samples_to_ignore=4,
        auto_calc_d1=True,
        sharpness_metric=SharpnessMetric.MEAN_SOBEL,
        metric_threshold=0.25,
        d2_start=-10.0,
        d2_end=12.5,
        d3_start=-3.0,
        d3_end=3.0,
        number_of_dispersion_samples=42,
        window_state=b"\x01\x02",
        gui_visible=False,
    )
    restored = DispersionEstimatorParameters.from_settings(params.to_settings())
    assert restored == params


def test_to_settings_uses_source_keys():
    settings = DispersionEstimatorParameters(sharpness_metric=SharpnessMetric.MEAN_SOBEL).to_settings()
    assert settings[KEY_SHARPNESS_METRIC] == int(SharpnessMetric.MEAN_SOBEL)
    assert KEY_BUFFER_NR == "buffer_nr"
    assert KEY_WINDOW_STATE == "dispersion_estimator_window_state"
    assert set(settings) >= {KEY_BUFFER_NR, KEY_D2_START, KEY_GUI_TOGGLE, KEY_WINDOW_STATE}


def test_string_values_are_converted():
    params = DispersionEstimatorParameters.from_settings(
        {
            KEY_NUMBER_OF_CENTER_ASCANS: "15",
            KEY_USE_LINEAR_ASCANS: "false",
            KEY_METRIC_THRESHOLD: "1.5",
            KEY_GUI_TOGGLE: "true",
        }
    )
    assert params.number_of_center_ascans == 15
    assert params.use_linear_ascans is False
    assert params.metric_threshold == 1.5
    assert params.gui_visible is True


def test_unknown_metric_raises():
    with pytest.raises(ValueError):
        DispersionEstimatorParameters.from_settings({KEY_SHARPNESS_METRIC: 9})


def test_unconvertible_value_raises():
    with pytest.raises(ValueError):
        DispersionEstimatorParameters.from_settings({KEY_D2_START: "abc"})