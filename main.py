"""
Entry point.

Usage: gammatemp [options] [temperature] [brightness]

- No numbers: print the estimated temperature and brightness of each screen.
- A lone 0 resets to the default preset temperature.
- -d/--delta: numbers are signed shifts of the current estimate.
- -t/--toggle: switch between the day and night presets.
- -B/--default, -D/--day, -N/--night: store the numbers into that preset.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from color_temperature import ColorState, bound_state
from gamma_controller import GammaController
from gamma_pipeline import CrtcSelector
from presets import PresetStore, default_presets_path
from xrandr_display import DeviceError, DisplayError, XRandRDisplay

TOGGLE_THRESHOLD = 100


@dataclass(frozen=True)
class Options:
    temperature: Optional[int] = None
    brightness: Optional[float] = None
    screen: Optional[int] = None
    crtc: Optional[int] = None
    delta: bool = False
    toggle: bool = False
    preset: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_args(cls, ns: argparse.Namespace) -> "Options":
        return cls(
            temperature=ns.temperature,
            brightness=ns.brightness,
            screen=ns.screen,
            crtc=ns.crtc,
            delta=ns.delta,
            toggle=ns.toggle,
            preset=ns.preset,
            verbose=ns.verbose,
        )

    @property
    def selector(self) -> CrtcSelector:
        return CrtcSelector(self.crtc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gammatemp",
        description="Estimate or set the X11 display color temperature and brightness.",
        epilog="If the temperature is 0 the display is reset to the default preset (6500K). "
        "Without numbers the current temperature and brightness are estimated.",
    )
    parser.add_argument("temperature", nargs="?", type=int, help="temperature in Kelvin (or shift with --delta)")
    parser.add_argument("brightness", nargs="?", type=float, help="brightness 0.0-1.0 (or shift with --delta)")
    parser.add_argument("-v", "--verbose", action="store_true", help="display debugging information")
    parser.add_argument("-s", "--screen", type=int, metavar="N", help="only select the screen with this zero-based index")
    parser.add_argument("-c", "--crtc", type=int, metavar="N", help="only select the CRTC with this zero-based index")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-d", "--delta", action="store_true", help="treat the numbers as relative shifts")
    mode.add_argument("-t", "--toggle", action="store_true", help="toggle between day and night mode")
    mode.add_argument("-B", "--default", dest="preset", action="store_const", const="default",
                      help="store the numbers as the default preset")
    mode.add_argument("-D", "--day", dest="preset", action="store_const", const="day",
                      help="store the numbers as the day preset")
    mode.add_argument("-N", "--night", dest="preset", action="store_const", const="night",
                      help="store the numbers as the night preset")
    return parser


def parse_options(argv: Optional[Sequence[str]] = None) -> Options:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if ns.temperature is None and (ns.delta or ns.preset):
        parser.error("a temperature is required with --delta, --default, --day and --night")
    if ns.toggle and ns.temperature is not None:
        parser.error("--toggle takes no temperature or brightness")
    return Options.from_args(ns)


# ───────────────────────── Targets ─────────────────────────

def absolute_target(options: Options, presets: PresetStore) -> ColorState:
    brightness = 1.0 if options.brightness is None else options.brightness
    if options.temperature == 0:
        default = presets.get("default")
        if options.brightness is None and default.brightness is not None:
            brightness = default.brightness
        return ColorState(default.temperature, brightness)
    return ColorState(options.temperature, brightness)


def delta_target(current: ColorState, options: Options) -> ColorState:
    return ColorState(
        current.temperature + options.temperature,
        current.brightness + (options.brightness or 0.0),
    )


def toggle_target(current: ColorState, presets: PresetStore) -> ColorState:
    day = presets.get("day")
    preset = presets.get("night") if abs(current.temperature - day.temperature) < TOGGLE_THRESHOLD else day
    brightness = current.brightness if preset.brightness is None else preset.brightness
    return ColorState(preset.temperature, brightness)


# ───────────────────────── Dispatch ─────────────────────────

def select_screens(screen: Optional[int], count: int) -> List[int]:
    if screen is None:
        return list(range(count))
    if not 0 <= screen < count:
        raise DeviceError(f"Invalid screen index: {screen}!")
    return [screen]


def run(options: Options, controller: GammaController, presets: PresetStore) -> int:
    screens = select_screens(options.screen, controller.display.screen_count())
    selector = options.selector
    reset_temperature = presets.get("default").temperature

    if options.temperature is None and not options.toggle:
        for scr in screens:
            state = controller.estimate(scr, selector)
            print(f"Screen {scr}: temperature ~ {state.temperature} {state.brightness:f}")
        return 0

    for scr in screens:
        if options.toggle:
            target = toggle_target(controller.estimate(scr, selector), presets)
        elif options.delta:
            target = delta_target(controller.estimate(scr, selector), options)
        else:
            target = absolute_target(options, presets)

        target, _ = bound_state(target, reset_temperature)
        controller.apply(scr, selector, target)
        logging.info("Screen %d: temperature %d, brightness %.3f", scr, target.temperature, target.brightness)

    return 0


def store_preset(options: Options, presets: PresetStore) -> int:
    state, _ = bound_state(ColorState(options.temperature, 1.0 if options.brightness is None else options.brightness))
    presets.set(options.preset, state.temperature, None if options.brightness is None else state.brightness)
    presets.save()
    logging.info("Stored %s preset: %d K in %s", options.preset, state.temperature, presets.path)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    options = parse_options(argv)
    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    presets = PresetStore(default_presets_path())
    if options.preset:
        return store_preset(options, presets)

    try:
        with XRandRDisplay() as display:
            return run(options, GammaController(display), presets)
    except DisplayError as e:
        logging.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
