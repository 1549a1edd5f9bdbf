from __future__ import annotations

import logging
from typing import Any

import numpy as np

from seqsynth.pcm import PCM

logger = logging.getLogger(__name__)


def _get_sd() -> Any:
    import sounddevice as sd

    return sd


def play_pcm(pcm: PCM, sd: Any | None = None) -> None:
    """Play a rendered stream on the default output device and wait for it to end."""
    if sd is None:
        sd = _get_sd()
    peak = pcm.peak()
    frames = pcm.frames().astype(np.float32)
    if peak > 0:
        frames = frames / np.float32(peak)
    logger.info("Playing %.2fs of audio at %d Hz", pcm.duration_s, pcm.parameters.sample_rate)
    sd.play(frames, samplerate=pcm.parameters.sample_rate)
    sd.wait()
