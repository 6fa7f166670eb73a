"""
gamma_pipeline.py

Builds per-CRTC gamma ramps from a ColorState and reduces ramps read back from
hardware to a single estimated ColorState.
This is the "math + LUT" layer only: no X11 calls.

A ramp is a uint16 array of shape (3, size): rows are red, green, blue.

Public API:
- CrtcSelector (frozen dataclass)
- resolve_selector(selector, available) -> list
- identity_ramp(size) -> np.ndarray[uint16] shape (3, size)
- build_ramp(state, size) -> np.ndarray[uint16] shape (3, size)
- estimate_state(ramps) -> ColorState
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, TypeVar

import numpy as np

from color_temperature import (
    BRIGHTNESS_DIVISOR,
    MAX_CHANNEL_VALUE,
    ColorState,
    GammaTriple,
    clamp,
    gamma_to_temperature,
    temperature_to_gamma,
)

T = TypeVar("T")


@dataclass(frozen=True)
class CrtcSelector:
    """Either every CRTC of a screen (index=None) or exactly one by index."""

    index: Optional[int] = None

    @classmethod
    def all(cls) -> "CrtcSelector":
        return cls(None)


def resolve_selector(selector: CrtcSelector, available: Sequence[T]) -> List[T]:
    """Out-of-range indices fall back to every CRTC."""
    idx = selector.index
    if idx is not None and 0 <= idx < len(available):
        return [available[idx]]
    return list(available)


@lru_cache(maxsize=8)
def _ramp_axis(size: int) -> np.ndarray:
    """i / size for i in [0, size). Cached per native ramp size."""
    axis = np.arange(size, dtype=np.float64) / float(size)
    axis.setflags(write=False)
    return axis


def identity_ramp(size: int = 256) -> np.ndarray:
    """Identity gamma ramp (3 x size uint16)."""
    return np.vstack([np.linspace(0, 65535, size, dtype=np.uint16)] * 3)


def build_ramp(state: ColorState, size: int) -> np.ndarray:
    """
    Ramp for one CRTC of `size` entries.

    Entry i of each channel is round(MAX_CHANNEL_VALUE * brightness * i / size * channel),
    so every row is non-decreasing.
    """
    if size <= 0:
        raise ValueError(f"ramp size must be positive, got {size}")

    gamma = temperature_to_gamma(state.temperature)
    brightness = clamp(state.brightness, 0.0, 1.0)
    logging.debug("Gamma: %f, %f, %f, brightness: %f", gamma.r, gamma.g, gamma.b, brightness)

    scale = _ramp_axis(size) * (MAX_CHANNEL_VALUE * brightness)
    channels = np.asarray(gamma, dtype=np.float64)[:, None]
    return np.floor(scale[None, :] * channels + 0.5).astype(np.uint16)


def estimate_state(ramps: Sequence[np.ndarray]) -> ColorState:
    """
    Estimate (temperature, brightness) from the ramps of the selected CRTCs.

    Only the last (brightest) sample of each channel is used. No CRTCs or an
    all-zero terminal sample yields ColorState(0, 0.0).
    """
    n = len(ramps)
    sums = np.zeros(3, dtype=np.float64)
    for ramp in ramps:
        sums += np.asarray(ramp, dtype=np.float64)[:, -1]

    raw_max = float(sums.max())
    if n == 0 or raw_max <= 0.0:
        return ColorState(0, clamp(0.0, 0.0, 1.0))

    gamma = GammaTriple(*(float(c) for c in sums / raw_max))
    brightness = clamp(raw_max / n / BRIGHTNESS_DIVISOR, 0.0, 1.0)
    logging.debug("Gamma: %f, %f, %f, brightness: %f", gamma.r, gamma.g, gamma.b, brightness)

    return ColorState(gamma_to_temperature(gamma), brightness)
