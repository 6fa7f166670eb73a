import numpy as np
import pytest

from color_temperature import BRIGHTNESS_DIVISOR, ColorState
from gamma_pipeline import CrtcSelector, build_ramp, estimate_state, identity_ramp, resolve_selector


def test_resolve_selector_picks_one():
    assert resolve_selector(CrtcSelector(1), ["a", "b", "c"]) == ["b"]


@pytest.mark.parametrize("index", [None, -1, 3, 99])
def test_resolve_selector_falls_back_to_all(index):
    assert resolve_selector(CrtcSelector(index), ["a", "b", "c"]) == ["a", "b", "c"]


def test_resolve_selector_empty():
    assert resolve_selector(CrtcSelector(0), []) == []
    assert resolve_selector(CrtcSelector.all(), []) == []


def test_identity_ramp_shape():
    ramp = identity_ramp(256)
    assert ramp.shape == (3, 256)
    assert ramp.dtype == np.uint16
    assert ramp[:, 0].tolist() == [0, 0, 0]
    assert ramp[:, -1].tolist() == [65535, 65535, 65535]


def test_build_ramp_neutral_full_brightness():
    size = 256
    ramp = build_ramp(ColorState(6500, 1.0), size)
    assert ramp.shape == (3, size)
    assert ramp.dtype == np.uint16
    assert ramp[:, 0].tolist() == [0, 0, 0]
    # blue is fixed at 1.0 above the neutral point
    assert ramp[2, -1] == int(65535.0 * (size - 1) / size + 0.5)
    assert ramp[2, 128] == int(65535.0 * 128 / size + 0.5)


def test_build_ramp_applies_brightness_uniformly():
    full = build_ramp(ColorState(4000, 1.0), 512).astype(np.int64)
    half = build_ramp(ColorState(4000, 0.5), 512).astype(np.int64)
    assert np.all(np.abs(half * 2 - full) <= 2)


def test_build_ramp_clamps_brightness():
    assert np.array_equal(build_ramp(ColorState(5000, 3.0), 64), build_ramp(ColorState(5000, 1.0), 64))
    assert not build_ramp(ColorState(5000, -1.0), 64).any()


@pytest.mark.parametrize("temperature", [700, 1200, 3300, 6500, 9000, 20000])
@pytest.mark.parametrize("brightness", [0.0, 0.25, 1.0])
@pytest.mark.parametrize("size", [1, 256, 1024, 4096])
def test_build_ramp_is_monotonic(temperature, brightness, size):
    ramp = build_ramp(ColorState(temperature, brightness), size).astype(np.int64)
    assert np.all(np.diff(ramp, axis=1) >= 0)


def test_build_ramp_rejects_empty_size():
    with pytest.raises(ValueError):
        build_ramp(ColorState(6500, 1.0), 0)


def test_estimate_identity_ramps_is_neutral():
    state = estimate_state([identity_ramp(256), identity_ramp(1024)])
    assert abs(state.temperature - 6500) <= 1
    assert state.brightness == 1.0


def test_estimate_recovers_applied_state():
    ramps = [build_ramp(ColorState(4200, 0.6), 256), build_ramp(ColorState(4200, 0.6), 2048)]
    state = estimate_state(ramps)
    assert abs(state.temperature - 4200) <= 2
    assert state.brightness == pytest.approx(0.6, abs=0.01)


def test_estimate_averages_brightness_over_crtcs():
    dim = np.zeros((3, 4), dtype=np.uint16)
    dim[:, -1] = 20000
    bright = np.zeros((3, 4), dtype=np.uint16)
    bright[:, -1] = 40000
    state = estimate_state([dim, bright])
    assert state.brightness == pytest.approx(30000 / BRIGHTNESS_DIVISOR)


def test_estimate_no_crtcs_is_degenerate():
    assert estimate_state([]) == ColorState(0, 0.0)


def test_estimate_black_ramps_are_degenerate():
    black = np.zeros((3, 256), dtype=np.uint16)
    assert estimate_state([black, black]) == ColorState(0, 0.0)
