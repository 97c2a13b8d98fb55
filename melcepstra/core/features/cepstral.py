# melcepstra/core/features/cepstral.py

"""
Functions and tables for extracting Mel-Frequency Cepstral Coefficients (MFCCs).

Cepstral analysis is often used in speech and audio processing as the cepstrum can
help separate the source (e.g., vocal cords) from the filter (e.g., vocal tract),
making features like MFCCs effective for distance-based matching of sounds.

Per frame the chain is: pre-emphasis -> Hamming window -> magnitude spectrum ->
triangular mel filter bank (log energies) -> DCT-II. The filter-bank weights and
the DCT basis depend only on the configuration, so they are built once and
reused for every frame.
"""

import logging
from typing import Optional

import librosa
import numpy as np
from numpy.typing import NDArray
from scipy.fft import dct

from ..dsp import DEFAULT_PRE_EMPHASIS_ALPHA, apply_hamming, fft_magnitude, is_power_of_two, pre_emphasis
from ..errors import TransformInputError

logger = logging.getLogger(__name__)

# Floor applied to filter-bank energies before the logarithm
ENERGY_FLOOR = np.finfo(np.float64).eps

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_FMIN = 80.0


def _round_half_up(values: NDArray[np.float64]) -> NDArray[np.int64]:
    return np.floor(values + 0.5).astype(np.int64)


class MelFilterBank:
    """
    Bank of overlapping triangular band-pass filters on the mel scale.

    Filter edges are `n_filters + 2` points equally spaced in HTK mels between
    `fmin` and `fmax`, snapped to the nearest FFT bin. Filter m rises linearly
    from 0 at edge m to 1 at edge m + 1 and falls back to 0 at edge m + 2, so
    each filter's edges sit on its neighbours' centres.

    Attributes:
        weights: Read-only array of shape (n_filters, frame_size // 2 + 1).
        bin_edges: FFT bin index of every edge (length n_filters + 2).
    """

    def __init__(
        self,
        n_filters: int,
        frame_size: int,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        fmin: float = DEFAULT_FMIN,
        fmax: Optional[float] = None
    ):
        if n_filters <= 0:
            raise ValueError(f"n_filters must be positive, got {n_filters}.")
        if frame_size < 2:
            raise ValueError(f"frame_size must be at least 2, got {frame_size}.")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}.")
        nyquist = sample_rate / 2.0
        fmax = nyquist if fmax is None else float(fmax)
        if not 0.0 <= fmin < fmax <= nyquist:
            raise ValueError(f"Filter band must satisfy 0 <= fmin < fmax <= {nyquist} Hz, "
                             f"got fmin={fmin}, fmax={fmax}.")

        self.n_filters = n_filters
        self.frame_size = frame_size
        self.sample_rate = sample_rate
        self.fmin = float(fmin)
        self.fmax = fmax
        self.n_bins = frame_size // 2 + 1

        mel_edges = np.linspace(
            librosa.hz_to_mel(self.fmin, htk=True),
            librosa.hz_to_mel(self.fmax, htk=True),
            n_filters + 2
        )
        hz_edges = librosa.mel_to_hz(mel_edges, htk=True)
        bin_edges = _round_half_up(np.asarray(hz_edges) * frame_size / sample_rate)
        self.bin_edges = np.clip(bin_edges, 0, self.n_bins - 1)
        self.bin_edges.setflags(write=False)

        self.weights = self._build_weights()
        self.weights.setflags(write=False)
        logger.debug(f"Built mel filter bank: n_filters={n_filters}, n_bins={self.n_bins}, "
                     f"band={self.fmin}-{self.fmax} Hz, edges={self.bin_edges.tolist()}")

    def _build_weights(self) -> NDArray[np.float64]:
        weights = np.zeros((self.n_filters, self.n_bins), dtype=np.float64)
        for m in range(self.n_filters):
            left, center, right = (int(b) for b in self.bin_edges[m:m + 3])
            if center > left:
                k = np.arange(left, center + 1)
                weights[m, left:center + 1] = (k - left) / (center - left)
            else:
                # Degenerate rising edge: the filter collapses onto its centre bin
                weights[m, center] = 1.0
            if right > center:
                k = np.arange(center + 1, right + 1)
                weights[m, center + 1:right + 1] = (right - k) / (right - center)
        return weights

    def __call__(self, magnitudes: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Log filter-bank energies of one magnitude spectrum.

        Energies are floored at ENERGY_FLOOR before the logarithm, so silent
        input yields large negative values rather than -inf.

        Raises:
            TransformInputError: If the spectrum length differs from n_bins.
        """
        spectrum = np.asarray(magnitudes, dtype=np.float64)
        if spectrum.ndim != 1 or spectrum.shape[0] != self.n_bins:
            raise TransformInputError(f"Expected a magnitude spectrum of {self.n_bins} bins, "
                                      f"got shape {spectrum.shape}.")
        energies = self.weights @ spectrum
        return np.log(np.maximum(energies, ENERGY_FLOOR))


class CepstralTransform:
    """
    Unnormalised DCT-II from filter-bank log energies to cepstral coefficients.

    c[i] = sum_j e[j] * cos(pi * i * (j + 0.5) / n_filters), i = 0..n_coefficients.
    Coefficient 0 is the summed log energy of the frame. This is half of
    `scipy.fft.dct(e, type=2)` (no orthonormal scaling), truncated to the
    first n_coefficients + 1 terms.
    """

    def __init__(self, n_coefficients: int, n_filters: int):
        if n_filters <= 0:
            raise ValueError(f"n_filters must be positive, got {n_filters}.")
        if n_coefficients <= 0:
            raise ValueError(f"n_coefficients must be positive, got {n_coefficients}.")
        if n_coefficients > n_filters:
            raise ValueError(f"n_coefficients ({n_coefficients}) must not exceed "
                             f"n_filters ({n_filters}).")
        self.n_coefficients = n_coefficients
        self.n_filters = n_filters

        # Row i is the (halved) scipy DCT-II of the unit impulses; a row past
        # n_filters - 1 only occurs for i == n_filters, where cos(pi (j + 0.5)) == 0
        rows = min(n_coefficients + 1, n_filters)
        basis = np.zeros((n_coefficients + 1, n_filters), dtype=np.float64)
        basis[:rows] = dct(np.eye(n_filters), type=2, axis=0)[:rows] / 2.0
        self.basis = basis
        self.basis.setflags(write=False)

    def __call__(self, log_energies: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Returns n_coefficients + 1 cepstral coefficients.

        Raises:
            TransformInputError: If the input does not have n_filters values.
        """
        e = np.asarray(log_energies, dtype=np.float64)
        if e.ndim != 1 or e.shape[0] != self.n_filters:
            raise TransformInputError(f"Expected {self.n_filters} filter-bank energies, got shape {e.shape}.")
        return self.basis @ e


def log_mel_energies(
    magnitudes: NDArray[np.float64],
    n_filters: int,
    frame_size: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    fmin: float = DEFAULT_FMIN,
    fmax: Optional[float] = None
) -> NDArray[np.float64]:
    """One-shot form of `MelFilterBank`; builds the bank on every call."""
    return MelFilterBank(n_filters, frame_size, sample_rate, fmin, fmax)(magnitudes)


def dct_cepstrum(
    log_energies: NDArray[np.float64],
    n_coefficients: int
) -> NDArray[np.float64]:
    """One-shot form of `CepstralTransform` (n_filters taken from the input length)."""
    e = np.asarray(log_energies, dtype=np.float64)
    return CepstralTransform(n_coefficients, e.shape[-1])(e)


class MfccExtractor:
    """
    Computes the cepstral vector (length cepstral_coefficient_count + 1) of one frame.

    Holds the precomputed mel filter bank and DCT basis for a fixed
    configuration; calling it on a frame is a pure function.

    Example:
        >>> extractor = MfccExtractor(frame_size=256, filter_bank_size=26,
        ...                           cepstral_coefficient_count=13)
        >>> extractor(np.zeros(256)).shape
        (14,)
    """

    def __init__(
        self,
        frame_size: int,
        filter_bank_size: int,
        cepstral_coefficient_count: int,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        pre_emphasis_alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA,
        fmin: float = DEFAULT_FMIN,
        fmax: Optional[float] = None
    ):
        if not is_power_of_two(frame_size) or frame_size < 2:
            raise TransformInputError(f"frame_size {frame_size} is not a power of two >= 2.")
        if not 0.0 <= pre_emphasis_alpha < 1.0:
            raise ValueError(f"Pre-emphasis alpha must be in [0, 1), got {pre_emphasis_alpha}.")
        self.frame_size = frame_size
        self.pre_emphasis_alpha = pre_emphasis_alpha
        self.filter_bank = MelFilterBank(filter_bank_size, frame_size, sample_rate, fmin, fmax)
        self.transform = CepstralTransform(cepstral_coefficient_count, filter_bank_size)

    def __call__(self, frame: NDArray[np.float64]) -> NDArray[np.float64]:
        x = np.asarray(frame, dtype=np.float64)
        if x.shape != (self.frame_size,):
            raise TransformInputError(f"Expected a frame of {self.frame_size} samples, got shape {x.shape}.")
        emphasized = pre_emphasis(x, self.pre_emphasis_alpha)
        windowed = apply_hamming(emphasized)
        spectrum = fft_magnitude(windowed)
        return self.transform(self.filter_bank(spectrum))
