import numpy as np
import pytest

from gamma_pipeline import identity_ramp
from presets import PresetStore
from xrandr_display import DeviceError


class FakeDisplay:
    """In-memory stand-in for XRandRDisplay."""

    def __init__(self, screens, sizes=None):
        self.screens = [list(crtcs) for crtcs in screens]
        self.sizes = dict(sizes or {})
        self.ramps = {}
        for crtcs in self.screens:
            for crtc in crtcs:
                self.ramps[crtc] = identity_ramp(self.sizes.setdefault(crtc, 256))
        self.writes = []

    def screen_count(self):
        return len(self.screens)

    def list_crtcs(self, screen):
        if not 0 <= screen < len(self.screens):
            raise DeviceError(f"Invalid screen index: {screen}")
        return list(self.screens[screen])

    def native_ramp_size(self, crtc):
        if crtc not in self.sizes:
            raise DeviceError(f"Unknown CRTC {crtc}")
        return self.sizes[crtc]

    def read_crtc_ramp(self, crtc):
        if crtc not in self.ramps:
            raise DeviceError(f"Unknown CRTC {crtc}")
        return self.ramps[crtc].copy()

    def write_crtc_ramp(self, crtc, ramp):
        if crtc not in self.ramps:
            raise DeviceError(f"Unknown CRTC {crtc}")
        self.ramps[crtc] = np.array(ramp, dtype=np.uint16)
        self.writes.append(crtc)


@pytest.fixture()
def fake_display():
    # screen 0: two CRTCs with different ramp sizes, screen 1: one CRTC
    return FakeDisplay([[0x41, 0x42], [0x51]], sizes={0x41: 256, 0x42: 1024, 0x51: 256})


@pytest.fixture()
def preset_store(tmp_path):
    return PresetStore(str(tmp_path / "presets.json"))
