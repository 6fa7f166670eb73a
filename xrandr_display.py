"""
xrandr_display.py

Owns the X11 connection and the XRandR CRTC gamma calls via ctypes.
No ramp math. Ramps cross this boundary as uint16 arrays of shape (3, size).

Public API:
- DisplayError, DisplayConnectionError, DeviceError
- XRandRDisplay(name=None)   # context manager, opened once per run
    - screen_count() -> int
    - list_crtcs(screen) -> list[int]
    - native_ramp_size(crtc) -> int
    - read_crtc_ramp(crtc) -> np.ndarray[uint16] shape (3, size)
    - write_crtc_ramp(crtc, ramp)
    - close()
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
from typing import List, Optional

import numpy as np


class DisplayError(Exception):
    """Fatal problem talking to the display server."""


class DisplayConnectionError(DisplayError):
    pass


class DeviceError(DisplayError):
    pass


# ───────────────────────── Xlib / XRandR structures ─────────────────────────

class XErrorEvent(ctypes.Structure):
    _fields_ = [
        ("type", ctypes.c_int),
        ("display", ctypes.c_void_p),
        ("resourceid", ctypes.c_ulong),
        ("serial", ctypes.c_ulong),
        ("error_code", ctypes.c_ubyte),
        ("request_code", ctypes.c_ubyte),
        ("minor_code", ctypes.c_ubyte),
    ]


class XRRScreenResources(ctypes.Structure):
    _fields_ = [
        ("timestamp", ctypes.c_ulong),
        ("configTimestamp", ctypes.c_ulong),
        ("ncrtc", ctypes.c_int),
        ("crtcs", ctypes.POINTER(ctypes.c_ulong)),
        ("noutput", ctypes.c_int),
        ("outputs", ctypes.POINTER(ctypes.c_ulong)),
        ("nmode", ctypes.c_int),
        ("modes", ctypes.c_void_p),
    ]


class XRRCrtcGamma(ctypes.Structure):
    _fields_ = [
        ("size", ctypes.c_int),
        ("red", ctypes.POINTER(ctypes.c_ushort)),
        ("green", ctypes.POINTER(ctypes.c_ushort)),
        ("blue", ctypes.POINTER(ctypes.c_ushort)),
    ]


XErrorHandler = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p, ctypes.POINTER(XErrorEvent))


def _load_library(name: str, soname: str) -> ctypes.CDLL:
    path = ctypes.util.find_library(name) or soname
    try:
        return ctypes.CDLL(path)
    except OSError as e:
        raise DisplayConnectionError(f"Cannot load {soname}: {e}") from e


def _bind(xlib: ctypes.CDLL, xrandr: ctypes.CDLL) -> None:
    xlib.XOpenDisplay.argtypes = [ctypes.c_char_p]
    xlib.XOpenDisplay.restype = ctypes.c_void_p
    xlib.XCloseDisplay.argtypes = [ctypes.c_void_p]
    xlib.XScreenCount.argtypes = [ctypes.c_void_p]
    xlib.XScreenCount.restype = ctypes.c_int
    xlib.XRootWindow.argtypes = [ctypes.c_void_p, ctypes.c_int]
    xlib.XRootWindow.restype = ctypes.c_ulong
    xlib.XSync.argtypes = [ctypes.c_void_p, ctypes.c_int]
    xlib.XSetErrorHandler.argtypes = [ctypes.c_void_p]
    xlib.XSetErrorHandler.restype = ctypes.c_void_p

    xrandr.XRRGetScreenResourcesCurrent.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
    xrandr.XRRGetScreenResourcesCurrent.restype = ctypes.POINTER(XRRScreenResources)
    xrandr.XRRFreeScreenResources.argtypes = [ctypes.POINTER(XRRScreenResources)]
    xrandr.XRRGetCrtcGammaSize.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
    xrandr.XRRGetCrtcGammaSize.restype = ctypes.c_int
    xrandr.XRRGetCrtcGamma.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
    xrandr.XRRGetCrtcGamma.restype = ctypes.POINTER(XRRCrtcGamma)
    xrandr.XRRAllocGamma.argtypes = [ctypes.c_int]
    xrandr.XRRAllocGamma.restype = ctypes.POINTER(XRRCrtcGamma)
    xrandr.XRRSetCrtcGamma.argtypes = [ctypes.c_void_p, ctypes.c_ulong, ctypes.POINTER(XRRCrtcGamma)]
    xrandr.XRRFreeGamma.argtypes = [ctypes.POINTER(XRRCrtcGamma)]


class XRandRDisplay:
    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._dpy: Optional[int] = None
        self._xlib: Optional[ctypes.CDLL] = None
        self._xrandr: Optional[ctypes.CDLL] = None
        self._last_error: Optional[int] = None
        self._previous_handler: Optional[int] = None
        # keep a reference so the callback is not garbage collected
        self._handler = XErrorHandler(self._on_error)

    # ───────────────────────── Lifecycle ─────────────────────────

    def open(self) -> "XRandRDisplay":
        xlib = _load_library("X11", "libX11.so.6")
        xrandr = _load_library("Xrandr", "libXrandr.so.2")
        _bind(xlib, xrandr)

        name = self.name.encode() if self.name else None
        dpy = xlib.XOpenDisplay(name)
        if not dpy:
            raise DisplayConnectionError(
                f"XOpenDisplay({self.name or 'NULL'}) failed. Ensure DISPLAY is set correctly!"
            )

        self._previous_handler = xlib.XSetErrorHandler(ctypes.cast(self._handler, ctypes.c_void_p))
        self._xlib, self._xrandr, self._dpy = xlib, xrandr, dpy
        logging.debug("Opened display %s", self.name or "(default)")
        return self

    def close(self) -> None:
        if self._dpy is not None:
            self._xlib.XCloseDisplay(self._dpy)
            self._xlib.XSetErrorHandler(self._previous_handler)
            self._dpy = None
            self._previous_handler = None

    def __enter__(self) -> "XRandRDisplay":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # ───────────────────────── Internal helpers ─────────────────────────

    def _on_error(self, _dpy, event) -> int:
        self._last_error = event.contents.error_code
        return 0

    def _connection(self) -> int:
        if self._dpy is None:
            raise DisplayConnectionError("Display is not open")
        return self._dpy

    def _check(self, what: str) -> None:
        """Flush pending requests and turn an asynchronous X error into DeviceError."""
        self._xlib.XSync(self._connection(), 0)
        code, self._last_error = self._last_error, None
        if code is not None:
            raise DeviceError(f"{what} failed (X error {code})")

    # ───────────────────────── Topology ─────────────────────────

    def screen_count(self) -> int:
        dpy = self._connection()
        return int(self._xlib.XScreenCount(dpy))

    def list_crtcs(self, screen: int) -> List[int]:
        dpy = self._connection()
        if not 0 <= screen < self.screen_count():
            raise DeviceError(f"Invalid screen index: {screen}")

        root = self._xlib.XRootWindow(dpy, screen)
        res = self._xrandr.XRRGetScreenResourcesCurrent(dpy, root)
        try:
            self._check(f"Reading resources of screen {screen}")
            if not res:
                raise DeviceError(f"No XRandR resources for screen {screen}")
            return [int(res.contents.crtcs[i]) for i in range(res.contents.ncrtc)]
        finally:
            if res:
                self._xrandr.XRRFreeScreenResources(res)

    def native_ramp_size(self, crtc: int) -> int:
        dpy = self._connection()
        size = self._xrandr.XRRGetCrtcGammaSize(dpy, crtc)
        self._check(f"Querying gamma size of CRTC {crtc:#x}")
        if size <= 0:
            raise DeviceError(f"CRTC {crtc:#x} reports no gamma ramp")
        return int(size)

    # ───────────────────────── Ramps ─────────────────────────

    def read_crtc_ramp(self, crtc: int) -> np.ndarray:
        dpy = self._connection()
        gamma = self._xrandr.XRRGetCrtcGamma(dpy, crtc)
        try:
            self._check(f"Reading gamma of CRTC {crtc:#x}")
            if not gamma:
                raise DeviceError(f"Cannot read gamma of CRTC {crtc:#x}")
            g = gamma.contents
            if g.size <= 0:
                raise DeviceError(f"CRTC {crtc:#x} reports no gamma ramp")
            return np.vstack([
                np.ctypeslib.as_array(ch, shape=(g.size,)).copy()
                for ch in (g.red, g.green, g.blue)
            ]).astype(np.uint16, copy=False)
        finally:
            if gamma:
                self._xrandr.XRRFreeGamma(gamma)

    def write_crtc_ramp(self, crtc: int, ramp: np.ndarray) -> None:
        ramp = np.ascontiguousarray(ramp, dtype=np.uint16)
        if ramp.ndim != 2 or ramp.shape[0] != 3:
            raise ValueError(f"ramp must have shape (3, size), got {ramp.shape}")

        dpy = self._connection()
        size = ramp.shape[1]
        gamma = self._xrandr.XRRAllocGamma(size)
        if not gamma:
            raise DeviceError(f"Cannot allocate a {size}-entry gamma ramp")
        try:
            g = gamma.contents
            for ch, row in zip((g.red, g.green, g.blue), ramp):
                np.ctypeslib.as_array(ch, shape=(size,))[:] = row
            self._xrandr.XRRSetCrtcGamma(dpy, crtc, gamma)
            self._check(f"Writing gamma of CRTC {crtc:#x}")
        finally:
            self._xrandr.XRRFreeGamma(gamma)
