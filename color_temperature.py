"""
color_temperature.py

Empirical model between a (temperature, brightness) pair and the terminal
scale of each gamma channel. Pure math: no numpy, no X11, no I/O.

The curves approximate redshift's blackbody table with
    channel = K0 + K1 * ln(T - T0)
fitted separately below (red-dominant) and above (blue-dominant) TEMPERATURE_NORM.

Public API:
- ColorState (frozen dataclass)
- GammaTriple (NamedTuple)
- BoundsViolation (Enum)
- clamp(x, low, high) -> float
- temperature_to_gamma(temperature) -> GammaTriple
- gamma_to_temperature(gamma) -> int
- bound_state(state, reset_temperature) -> (ColorState, [BoundsViolation])
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, NamedTuple, Tuple


TEMPERATURE_NORM = 6500
TEMPERATURE_ZERO = 700
TEMPERATURE_NIGHT = 4500

MAX_CHANNEL_VALUE = 65535.0
BRIGHTNESS_DIVISOR = 65470.988

# Red range (T0 = TEMPERATURE_ZERO)
GAMMA_K0GR = -1.47751309139817
GAMMA_K1GR = 0.28590164772055
GAMMA_K0BR = -4.38321650114872
GAMMA_K1BR = 0.6212158769447

# Blue range (T0 = TEMPERATURE_NORM - TEMPERATURE_ZERO)
GAMMA_K0RB = 1.75390204039018
GAMMA_K1RB = -0.1150805671482
GAMMA_K0GB = 1.49221604915144
GAMMA_K1GB = -0.07513509588921


@dataclass(frozen=True)
class ColorState:
    temperature: int
    brightness: float


class GammaTriple(NamedTuple):
    r: float
    g: float
    b: float


class BoundsViolation(Enum):
    TEMPERATURE_RESET = "temperatures at or below 0 cannot be displayed"
    TEMPERATURE_BELOW_MINIMUM = f"temperatures below {TEMPERATURE_ZERO} cannot be displayed"
    BRIGHTNESS_UNDERFLOW = "brightness values below 0.0 cannot be displayed"
    BRIGHTNESS_OVERFLOW = "brightness values above 1.0 cannot be displayed"


def clamp(x: float, low: float, high: float) -> float:
    """Bound x to [low, high]; low wins when the interval is degenerate."""
    if x <= low:
        return low
    if x >= high:
        return high
    return x


def temperature_to_gamma(temperature: int) -> GammaTriple:
    """Channel scale factors in [0, 1] for a temperature. Brightness is not applied."""
    t = float(temperature)

    if temperature < TEMPERATURE_NORM:
        if temperature <= TEMPERATURE_ZERO:
            return GammaTriple(1.0, 0.0, 0.0)
        g = math.log(t - TEMPERATURE_ZERO)
        return GammaTriple(
            1.0,
            clamp(GAMMA_K0GR + GAMMA_K1GR * g, 0.0, 1.0),
            clamp(GAMMA_K0BR + GAMMA_K1BR * g, 0.0, 1.0),
        )

    g = math.log(t - (TEMPERATURE_NORM - TEMPERATURE_ZERO))
    return GammaTriple(
        clamp(GAMMA_K0RB + GAMMA_K1RB * g, 0.0, 1.0),
        clamp(GAMMA_K0GB + GAMMA_K1GB * g, 0.0, 1.0),
        1.0,
    )


def gamma_to_temperature(gamma: GammaTriple) -> int:
    """
    Inverse of temperature_to_gamma.

    `gamma` must already be normalized so that its largest channel is 1.
    """
    r, g, b = gamma
    d = b - r

    if d < 0.0:
        if b > 0.0:
            t = math.exp((g + 1.0 + d - (GAMMA_K0GR + GAMMA_K0BR)) / (GAMMA_K1GR + GAMMA_K1BR)) + TEMPERATURE_ZERO
        elif g > 0.0:
            t = math.exp((g - GAMMA_K0GR) / GAMMA_K1GR) + TEMPERATURE_ZERO
        else:
            t = float(TEMPERATURE_ZERO)
    else:
        t = math.exp((g + 1.0 - d - (GAMMA_K0GB + GAMMA_K0RB)) / (GAMMA_K1GB + GAMMA_K1RB)) + (
            TEMPERATURE_NORM - TEMPERATURE_ZERO
        )

    return int(t + 0.5)


def bound_state(
    state: ColorState, reset_temperature: int = TEMPERATURE_NORM
) -> Tuple[ColorState, List[BoundsViolation]]:
    """
    Clamp a target into the displayable range.

    Never fails: every correction is logged as a warning and returned so the
    caller can report it. A temperature at or below zero means "use default"
    and is replaced by `reset_temperature`, itself kept displayable.
    """
    if reset_temperature <= 0:
        reset_temperature = TEMPERATURE_NORM
    elif reset_temperature < TEMPERATURE_ZERO:
        reset_temperature = TEMPERATURE_ZERO

    violations: List[BoundsViolation] = []
    temperature = state.temperature
    brightness = state.brightness

    if temperature <= 0:
        violations.append(BoundsViolation.TEMPERATURE_RESET)
        temperature = reset_temperature
    elif temperature < TEMPERATURE_ZERO:
        violations.append(BoundsViolation.TEMPERATURE_BELOW_MINIMUM)
        temperature = TEMPERATURE_ZERO

    if brightness < 0.0:
        violations.append(BoundsViolation.BRIGHTNESS_UNDERFLOW)
        brightness = 0.0
    elif brightness > 1.0:
        violations.append(BoundsViolation.BRIGHTNESS_OVERFLOW)
        brightness = 1.0

    for v in violations:
        logging.warning("%s (requested %d K, %.3f)", v.value.capitalize(), state.temperature, state.brightness)

    return replace(state, temperature=temperature, brightness=brightness), violations
