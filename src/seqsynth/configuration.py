from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any

from seqsynth.errors import ConfigError, WriteError

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "render": {
        "sample_rate": 44100,
        "channels": 2,
        "sample_width": 16,
        "falloff_samples": 100,
        "max_workers": None,
    },
    "instruments": {
        "waveform": "square",
        "loopable": True,
        "overrides": {},
    },
    "tuning": {
        "a4_hz": 440.0,
    },
    "play": {
        "no_playback": False,
    },
}

# Free-form maps whose keys are not known in advance.
_OPEN_KEYS = {("instruments", "overrides")}


def get_default_config() -> dict[str, dict[str, Any]]:
    return deepcopy(DEFAULT_CONFIG)


def merge_config(
    base: dict[str, dict[str, Any]],
    overlay: dict[str, Any],
    source: str = "<config>",
) -> dict[str, dict[str, Any]]:
    """Overlay ``overlay`` on ``base`` one section at a time.

    Only sections and keys present in ``DEFAULT_CONFIG`` are accepted, so a
    typo like ``"sampel_rate"`` fails loudly instead of being ignored. The
    per-instrument ``overrides`` map replaces the base one per instrument ID.
    """
    out = deepcopy(base)
    for section, values in overlay.items():
        if section not in DEFAULT_CONFIG:
            raise ConfigError(source, f"unknown section {section!r}")
        if not isinstance(values, dict):
            raise ConfigError(source, f"section {section!r} must be a JSON object")
        for key, value in values.items():
            if key not in DEFAULT_CONFIG[section]:
                raise ConfigError(source, f"unknown key {section}.{key}")
            if (section, key) in _OPEN_KEYS:
                if not isinstance(value, dict):
                    raise ConfigError(source, f"{section}.{key} must be a JSON object")
                out[section][key] = {**out[section][key], **deepcopy(value)}
            else:
                out[section][key] = value
    return out


def load_config_file(path: str | Path) -> dict[str, dict[str, Any]]:
    source = str(path)
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(source, f"invalid JSON ({exc})") from exc
    if not isinstance(payload, dict):
        raise ConfigError(source, "config root must be a JSON object")
    return merge_config(get_default_config(), payload, source=source)


def save_config_file(path: str | Path, config: dict[str, Any]) -> Path:
    output = Path(path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(config, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write config to {output}: {exc}") from exc
    return output


def instrument_settings(config: dict[str, Any], instrument_id: int) -> tuple[str, bool]:
    """Waveform name and loopable flag for one instrument ID.

    ``instruments.overrides`` is keyed by the instrument ID as a string, since
    JSON object keys are strings.
    """
    section = config.get("instruments", {})
    override = section.get("overrides", {}).get(str(instrument_id), {})
    waveform = str(override.get("waveform", section.get("waveform", "square")))
    loopable = bool(override.get("loopable", section.get("loopable", True)))
    return waveform, loopable
