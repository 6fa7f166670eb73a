"""
Owns reading and writing CRTC gamma ramps for one display connection.
No argument parsing. Calls into gamma_pipeline to build and reduce ramps.

The display collaborator must provide:
    list_crtcs(screen) -> sequence of crtc ids
    native_ramp_size(crtc) -> int
    read_crtc_ramp(crtc) -> np.ndarray[uint16] shape (3, size)
    write_crtc_ramp(crtc, ramp)

Public API:
- GammaController(display)
    - crtcs(screen, selector) -> list
    - estimate(screen, selector) -> ColorState
    - apply(screen, selector, state, force=False) -> int   # CRTCs written
"""

from __future__ import annotations

import logging
import zlib

import numpy as np

from color_temperature import ColorState
from gamma_pipeline import CrtcSelector, build_ramp, estimate_state, resolve_selector


class GammaController:
    def __init__(self, display):
        self.display = display

    # ───────────────────────── Internal helpers ─────────────────────────

    @staticmethod
    def _signature(arr: np.ndarray) -> int:
        """
        Fast content signature to avoid redundant XRRSetCrtcGamma calls.
        """
        arr = np.ascontiguousarray(arr, dtype=np.uint16)
        return zlib.crc32(arr.tobytes()) ^ arr.shape[-1]

    def _write(self, crtc, ramp: np.ndarray, *, force: bool) -> bool:
        if not force:
            current = self.display.read_crtc_ramp(crtc)
            if current.shape == ramp.shape and self._signature(current) == self._signature(ramp):
                logging.debug("CRTC %s already holds the requested ramp", crtc)
                return False

        self.display.write_crtc_ramp(crtc, ramp)
        return True

    # ───────────────────────── Public API ─────────────────────────

    def crtcs(self, screen: int, selector: CrtcSelector = CrtcSelector()) -> list:
        return resolve_selector(selector, self.display.list_crtcs(screen))

    def estimate(self, screen: int, selector: CrtcSelector = CrtcSelector()) -> ColorState:
        ramps = [self.display.read_crtc_ramp(crtc) for crtc in self.crtcs(screen, selector)]
        return estimate_state(ramps)

    def apply(
        self,
        screen: int,
        selector: CrtcSelector,
        state: ColorState,
        *,
        force: bool = False,
    ) -> int:
        """
        Write `state` to every selected CRTC of `screen` at its native ramp size.
        `state` is expected to be bounds-checked already.
        """
        written = 0
        ramps = {}
        for crtc in self.crtcs(screen, selector):
            size = self.display.native_ramp_size(crtc)
            if size not in ramps:
                ramps[size] = build_ramp(state, size)
            if self._write(crtc, ramps[size], force=force):
                written += 1

        logging.debug(
            "Screen %d: %d K, brightness %.3f written to %d CRTC(s)",
            screen, state.temperature, state.brightness, written,
        )
        return written
