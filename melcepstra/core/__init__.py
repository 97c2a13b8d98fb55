# melcepstra/core/__init__.py

"""
Core Processing Package for melcepstra.

Contains modules for:
- Sample sources (raw PCM decoding, audio files)
- Framing
- Per-frame DSP (pre-emphasis, windowing, magnitude spectrum)
- Cepstral feature extraction
- Pipeline composition (silence trimming, time-series assembly)
- Time-series persistence
"""

from . import errors
from . import audio
from . import framing
from . import dsp
from . import features
from . import pipeline
from . import data_handler

__all__ = [
    "errors",
    "audio",
    "framing",
    "dsp",
    "features",
    "pipeline",
    "data_handler",
]
