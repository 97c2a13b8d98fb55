# melcepstra/core/errors.py

"""
Exception types raised by the feature extraction pipeline.

Every error is terminal for the run in flight: the pipeline never returns a
partial time series and never retries.
"""


class FeatureExtractionError(Exception):
    """Base class for errors raised while turning samples into MFCCs."""
    pass


class DecodeError(FeatureExtractionError):
    """Raw audio could not be decoded into 16-bit samples (malformed or unsupported framing)."""
    pass


class TransformInputError(FeatureExtractionError):
    """A frame is not acceptable input for the spectral transform (e.g. length not a power of two)."""
    pass


# Failures of the raw sample source itself are propagated unchanged, never wrapped.
UpstreamIOError = OSError
