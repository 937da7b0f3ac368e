import numpy as np
import pytest

torch = pytest.importorskip("torch")

from fx_forecaster.prediction.config import ForecastConfig
from fx_forecaster.prediction.lstm_model import LSTMForecaster, RateLSTM, split_validation
from fx_forecaster.prediction.preprocessing import SeriesPreprocessor, create_windows
from fx_forecaster.utils.errors import InsufficientDataError, TrainingError, ValidationError


def _config(**overrides):
    values = dict(window=5, hidden_units=8, dense_units=4, epochs=3, batch_size=8, device="cpu")
    values.update(overrides)
    return ForecastConfig(**values)


def _dataset(series, window=5):
    return SeriesPreprocessor(window).prepare([p.rate for p in series]).dataset


def test_rate_lstm_output_shape():
    model = RateLSTM(hidden_units=8, dense_units=4)
    out = model(torch.zeros(3, 5, 1))
    assert out.shape == (3,)


@pytest.mark.parametrize(
    "n,split,expected",
    [(100, 0.1, 90), (55, 0.1, 49), (10, 0.0, 10), (1, 0.1, 1), (5, 0.5, 2)],
)
def test_split_validation(n, split, expected):
    assert split_validation(n, split) == expected


@pytest.mark.asyncio
async def test_fit_reports_every_epoch(series):
    forecaster = LSTMForecaster(_config())
    seen = []

    history = await forecaster.fit(_dataset(series), on_epoch_end=seen.append)

    assert [m.epoch for m in seen] == [1, 2, 3]
    assert len(history) == 3
    assert all(np.isfinite(m.loss) for m in seen)
    assert all(m.val_loss is not None for m in seen)
    assert forecaster.is_trained


@pytest.mark.asyncio
async def test_async_epoch_callback_is_awaited(series):
    forecaster = LSTMForecaster(_config(epochs=2))
    seen = []

    async def on_epoch_end(metrics):
        seen.append(metrics.epoch)

    await forecaster.fit(_dataset(series), on_epoch_end=on_epoch_end)

    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_no_validation_loss_without_split(series):
    forecaster = LSTMForecaster(_config(validation_split=0.0, epochs=1))

    history = await forecaster.fit(_dataset(series))

    assert history.final_val_loss is None
    assert "val_loss" not in history.as_dict()


@pytest.mark.asyncio
async def test_same_seed_same_losses(series):
    first = await LSTMForecaster(_config(random_seed=3)).fit(_dataset(series))
    second = await LSTMForecaster(_config(random_seed=3)).fit(_dataset(series))

    assert first.as_dict()["loss"] == pytest.approx(second.as_dict()["loss"])


@pytest.mark.asyncio
async def test_predict_next_returns_float(series):
    forecaster = LSTMForecaster(_config(epochs=1))
    dataset = _dataset(series)
    await forecaster.fit(dataset)

    value = forecaster.predict_next(dataset.windows[-1])

    assert isinstance(value, float)
    assert np.isfinite(value)


def test_predict_before_fit_fails():
    forecaster = LSTMForecaster(_config())
    with pytest.raises(TrainingError):
        forecaster.predict_next(np.zeros(5))


@pytest.mark.asyncio
async def test_predict_rejects_wrong_window(series):
    forecaster = LSTMForecaster(_config(epochs=1))
    await forecaster.fit(_dataset(series))
    with pytest.raises(ValidationError):
        forecaster.predict_next(np.zeros(4))


@pytest.mark.asyncio
async def test_fit_rejects_empty_dataset():
    forecaster = LSTMForecaster(_config())
    with pytest.raises(InsufficientDataError):
        await forecaster.fit(create_windows([0.1, 0.2], window=5))


@pytest.mark.asyncio
async def test_fit_rejects_window_mismatch(series):
    forecaster = LSTMForecaster(_config(window=6))
    with pytest.raises(TrainingError):
        await forecaster.fit(_dataset(series, window=5))


@pytest.mark.asyncio
async def test_release_drops_model(series):
    forecaster = LSTMForecaster(_config(epochs=1))
    await forecaster.fit(_dataset(series))

    forecaster.release()

    assert forecaster.model is None
    with pytest.raises(TrainingError):
        forecaster.predict_next(np.zeros(5))


def test_building_a_seeded_forecaster_keeps_global_rng():
    before = torch.random.get_rng_state()

    LSTMForecaster(_config(random_seed=11))

    assert torch.equal(before, torch.random.get_rng_state())


def test_same_seed_same_initial_weights():
    first = LSTMForecaster(_config(random_seed=5)).model.state_dict()
    second = LSTMForecaster(_config(random_seed=5)).model.state_dict()

    assert all(torch.equal(first[k], second[k]) for k in first)


def test_model_build_failure_is_a_training_error(monkeypatch):
    def broken_to(self, *args, **kwargs):
        raise RuntimeError("CUDA out of memory")

    monkeypatch.setattr(RateLSTM, "to", broken_to)

    with pytest.raises(TrainingError, match="CUDA out of memory"):
        LSTMForecaster(_config())


class _DeviceMismatch(torch.nn.Module):
    def forward(self, x):
        raise RuntimeError("Expected all tensors to be on the same device")


@pytest.mark.asyncio
async def test_prediction_runtime_error_is_a_training_error(series):
    forecaster = LSTMForecaster(_config(epochs=1))
    await forecaster.fit(_dataset(series))
    forecaster.model = _DeviceMismatch()

    with pytest.raises(TrainingError, match="same device"):
        forecaster.predict_next(np.zeros(5))


@pytest.mark.asyncio
async def test_callback_errors_are_not_relabelled(series):
    forecaster = LSTMForecaster(_config(epochs=2))

    def on_epoch_end(metrics):
        raise RuntimeError("display went away")

    with pytest.raises(RuntimeError, match="display went away") as exc_info:
        await forecaster.fit(_dataset(series), on_epoch_end=on_epoch_end)

    assert not isinstance(exc_info.value, TrainingError)
    assert len(forecaster.history) == 1


def test_model_info():
    info = LSTMForecaster(_config()).get_model_info()

    assert info["model_type"] == "RateLSTM"
    assert info["architecture"]["hidden_units"] == 8
    assert info["training"]["loss"] == "mse"
    assert info["parameter_count"] > 0
    assert "LSTM" in info["summary"]
