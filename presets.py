"""
presets.py

JSON-backed storage of the "default", "day" and "night" presets.

A preset is {"temperature": int, "brightness": float | null}; a null
brightness means "keep the current brightness".

Public API:
- DEFAULT_PRESETS (dict)
- default_presets_path() -> str
- PresetStore(path, defaults=DEFAULT_PRESETS)
    - get(name) -> Preset
    - set(name, temperature, brightness)
    - save()
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

import orjson

from color_temperature import TEMPERATURE_NIGHT, TEMPERATURE_NORM


DEFAULT_PRESETS: Dict[str, Dict[str, object]] = {
    "default": {"temperature": TEMPERATURE_NORM, "brightness": None},
    "day": {"temperature": TEMPERATURE_NORM, "brightness": None},
    "night": {"temperature": TEMPERATURE_NIGHT, "brightness": None},
}


@dataclass(frozen=True)
class Preset:
    temperature: int
    brightness: Optional[float] = None


def default_presets_path() -> str:
    override = os.environ.get("GAMMATEMP_CONFIG")
    if override:
        return override
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, "gammatemp", "presets.json")


def _valid_entry(entry) -> bool:
    if not isinstance(entry, dict):
        return False
    temperature = entry.get("temperature")
    brightness = entry.get("brightness")
    # bool is an int subclass
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        return False
    if not 0 < temperature < float("inf"):
        return False
    if brightness is not None and (isinstance(brightness, bool) or not isinstance(brightness, (int, float))):
        return False
    return True


class PresetStore:
    def __init__(self, path: str, defaults: Dict[str, Dict[str, object]] = DEFAULT_PRESETS):
        self.path = path
        self.defaults = defaults
        self.data = self._load()

    def _load(self) -> Dict[str, Dict[str, object]]:
        try:
            with open(self.path, "rb") as f:
                data = orjson.loads(f.read())
        except FileNotFoundError:
            data = {}
        except (OSError, orjson.JSONDecodeError) as e:
            logging.warning("Ignoring unreadable preset file %s: %s", self.path, e)
            data = {}

        if not isinstance(data, dict):
            logging.warning("Ignoring malformed preset file %s", self.path)
            data = {}

        for key, value in self.defaults.items():
            entry = data.get(key)
            if entry is None:
                data[key] = copy.deepcopy(value)
                continue
            if isinstance(entry, dict):
                entry = {**value, **entry}
            if not _valid_entry(entry):
                logging.warning("Ignoring malformed %s preset in %s: %r", key, self.path, data[key])
                entry = copy.deepcopy(value)
            data[key] = entry

        return data

    def get(self, name: str) -> Preset:
        if name not in self.data:
            raise KeyError(f"Unknown preset: {name}")
        entry = self.data[name]
        brightness = entry.get("brightness")
        return Preset(
            temperature=int(entry["temperature"]),
            brightness=None if brightness is None else float(brightness),
        )

    def set(self, name: str, temperature: int, brightness: Optional[float] = None) -> None:
        if name not in self.defaults:
            raise KeyError(f"Unknown preset: {name}")
        self.data[name] = {"temperature": int(temperature), "brightness": brightness}

    def save(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        payload = orjson.dumps(self.data, option=orjson.OPT_INDENT_2)
        with open(self.path, "wb") as f:
            f.write(payload)
