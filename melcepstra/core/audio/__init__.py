# melcepstra/core/audio/__init__.py

"""
Core Audio Input Package.

Turns raw PCM byte streams and audio files into sequences of integer samples.
"""

from . import io

__all__ = [
    "io",
]
