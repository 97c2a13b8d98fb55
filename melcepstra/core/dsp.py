# melcepstra/core/dsp.py

"""
Per-frame Digital Signal Processing (DSP) stages.

Includes pre-emphasis, Hamming windowing and the magnitude spectrum.
Uses scipy.signal for window generation and scipy.fft for the FFT.
Every function is a pure map from one frame to a new array; no state is
carried from one frame to the next.
"""

import logging
from functools import lru_cache

import numpy as np
from numpy.typing import NDArray
from scipy.fft import rfft
from scipy.signal import get_window

from .errors import TransformInputError

logger = logging.getLogger(__name__)

DEFAULT_PRE_EMPHASIS_ALPHA = 0.95


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    return n > 0 and (n & (n - 1)) == 0


# --- Pre-emphasis ---

def pre_emphasis(
    frame: NDArray[np.float64],
    alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA
) -> NDArray[np.float64]:
    """
    First-order high-pass emphasis: y[0] = x[0], y[n] = x[n] - alpha * x[n-1].

    Boosts high frequencies to compensate for the spectral tilt of voiced
    audio. The first output sample is the first input sample unchanged; the
    previous frame is never consulted.

    Args:
        frame: 1D frame of samples.
        alpha: Emphasis coefficient in [0, 1). 0 disables emphasis.

    Returns:
        New float64 array of the same length.
    """
    if not 0.0 <= alpha < 1.0:
        raise ValueError(f"Pre-emphasis alpha must be in [0, 1), got {alpha}.")
    x = np.asarray(frame, dtype=np.float64)
    emphasized = np.empty_like(x)
    if x.size == 0:
        return emphasized
    emphasized[0] = x[0]
    emphasized[1:] = x[1:] - alpha * x[:-1]
    return emphasized


# --- Windowing ---

@lru_cache(maxsize=16)
def hamming_window(length: int) -> NDArray[np.float64]:
    """
    Symmetric Hamming window 0.54 - 0.46 cos(2 pi n / (N - 1)).

    Cached per length; the returned array is read-only.
    """
    if length <= 0:
        raise ValueError(f"Window length must be positive, got {length}.")
    # fftbins=False gives the symmetric window (edges are both 0.08)
    win = get_window("hamming", length, fftbins=False).astype(np.float64)
    win.setflags(write=False)
    return win


def apply_hamming(frame: NDArray[np.float64]) -> NDArray[np.float64]:
    """Multiplies a frame by a Hamming window of the same length."""
    x = np.asarray(frame, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"Frame must be a 1D array, got shape {x.shape}.")
    return x * hamming_window(x.shape[0])


# --- Spectrum ---

def fft_magnitude(frame: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Magnitude spectrum of a real frame, from 0 Hz up to and including Nyquist.

    Args:
        frame: 1D windowed frame whose length is a power of two (>= 2).

    Returns:
        float64 array of `len(frame) // 2 + 1` magnitudes. The mirrored
        negative-frequency half is discarded.

    Raises:
        TransformInputError: If the frame is not 1D or its length is not a
                             power of two >= 2.
    """
    x = np.asarray(frame, dtype=np.float64)
    if x.ndim != 1:
        raise TransformInputError(f"Spectral transform expects a 1D frame, got shape {x.shape}.")
    n = x.shape[0]
    if n < 2 or not is_power_of_two(n):
        raise TransformInputError(f"Frame length {n} is not a power of two >= 2.")
    return np.abs(rfft(x)).astype(np.float64, copy=False)
