import numpy as np
import pytest

from fx_forecaster.prediction.models import NormalizationParams
from fx_forecaster.prediction.preprocessing import (
    SeriesPreprocessor,
    create_windows,
    denormalize,
    normalize,
    require_trainable,
)
from fx_forecaster.utils.errors import (
    InsufficientDataError,
    NumericDegeneracyError,
    ValidationError,
)


def test_windows_from_four_points_width_two():
    dataset = create_windows([1.00, 1.01, 1.02, 1.03], window=2)

    assert len(dataset) == 2
    np.testing.assert_allclose(dataset.windows, [[1.00, 1.01], [1.01, 1.02]])
    np.testing.assert_allclose(dataset.targets, [1.02, 1.03])


@pytest.mark.parametrize("length,window", [(10, 1), (10, 3), (31, 30), (100, 30)])
def test_window_count_and_targets(length, window):
    values = np.arange(length, dtype=float)
    dataset = create_windows(values, window)

    assert len(dataset) == length - window
    assert dataset.windows.shape == (length - window, window)
    for i in range(len(dataset)):
        np.testing.assert_array_equal(dataset.windows[i], values[i:i + window])
        assert dataset.targets[i] == values[i + window]


@pytest.mark.parametrize("length", [0, 1, 5])
def test_series_not_longer_than_window_gives_no_pairs(length):
    dataset = create_windows(np.ones(length), window=5)
    assert dataset.is_empty
    assert dataset.windows.shape == (0, 5)


def test_windows_are_independent_copies():
    values = np.array([0.0, 0.1, 0.2, 0.3])
    dataset = create_windows(values, 2)
    dataset.windows[0, 0] = 99.0
    assert values[0] == 0.0


def test_invalid_window_rejected():
    with pytest.raises(ValidationError):
        create_windows([1.0, 2.0], window=0)


def test_normalize_maps_into_unit_interval():
    normalized, params = normalize([2.0, 4.0, 3.0, 6.0])

    assert params == NormalizationParams(min=2.0, max=6.0)
    np.testing.assert_allclose(normalized, [0.0, 0.5, 0.25, 1.0])


def test_denormalize_inverts_normalize(series):
    raw = np.array([p.rate for p in series])
    normalized, params = normalize(raw)

    np.testing.assert_allclose(denormalize(normalized, params), raw, rtol=0, atol=1e-12)


def test_denormalize_scalar_returns_float():
    params = NormalizationParams(min=1.0, max=3.0)
    assert denormalize(0.5, params) == pytest.approx(2.0)
    assert isinstance(denormalize(0.5, params), float)


def test_constant_series_is_degenerate():
    with pytest.raises(NumericDegeneracyError):
        normalize([1.1, 1.1, 1.1])


def test_single_value_is_degenerate():
    with pytest.raises(NumericDegeneracyError):
        normalize([0.9])


def test_empty_series_cannot_be_normalized():
    with pytest.raises(InsufficientDataError):
        normalize([])


def test_non_finite_values_rejected():
    with pytest.raises(ValidationError):
        normalize([1.0, float("nan"), 2.0])


def test_require_trainable_boundary():
    require_trainable(31, 30)
    with pytest.raises(InsufficientDataError) as exc_info:
        require_trainable(30, 30)
    assert exc_info.value.required == 31
    assert exc_info.value.available == 30


def test_preprocessor_prepares_windows_and_last_window(series):
    prepared = SeriesPreprocessor(window=10).prepare([p.rate for p in series])

    assert len(prepared.dataset) == len(series) - 10
    assert prepared.normalized.min() == pytest.approx(0.0)
    assert prepared.normalized.max() == pytest.approx(1.0)
    np.testing.assert_array_equal(prepared.last_window, prepared.normalized[-10:])


def test_preprocessor_reports_shortage_before_degeneracy():
    with pytest.raises(InsufficientDataError):
        SeriesPreprocessor(window=5).prepare([1.0] * 5)


def test_preprocessor_constant_series():
    with pytest.raises(NumericDegeneracyError):
        SeriesPreprocessor(window=2).prepare([1.0] * 6)
