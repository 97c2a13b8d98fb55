# melcepstra/core/features/__init__.py

"""
Feature Extraction Package.

- cepstral: mel filter bank, DCT and the per-frame MFCC extractor.
- series: the immutable TimeSeries produced by a pipeline run.
"""

from . import cepstral
from . import series

__all__ = [
    "cepstral",
    "series",
]
