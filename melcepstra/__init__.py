# melcepstra/__init__.py

"""
melcepstra: Mel-Frequency Cepstral Coefficient time series for audio matching.

The public entry points live in `melcepstra.core.pipeline`; they are re-exported
here for convenience.
"""

from .version import __version__
from .core.errors import DecodeError, FeatureExtractionError, TransformInputError, UpstreamIOError
from .core.features.series import TimeSeries
from .core.pipeline import (
    extract_time_series,
    stream_cepstra,
    time_series_from_file,
    time_series_from_stream,
)

__all__ = [
    "__version__",
    "TimeSeries",
    "extract_time_series",
    "stream_cepstra",
    "time_series_from_file",
    "time_series_from_stream",
    "FeatureExtractionError",
    "DecodeError",
    "TransformInputError",
    "UpstreamIOError",
]
