# melcepstra/core/pipeline.py

"""
End-to-end MFCC time-series extraction.

Samples flow lazily through framing and the per-frame cepstral chain
(`stream_cepstra`); the cepstral vectors are then buffered, trimmed of leading
and trailing silence, and assembled into an immutable `TimeSeries`.

Trimming needs to know where the signal ends, so memory is O(number of frames)
for the back half of a run; everything before it holds one frame at a time.
Any exception ends the run and no partial series is returned.
"""

import logging
from itertools import islice
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .audio.io import audio_info, decode_samples, read_audio_samples
from .dsp import DEFAULT_PRE_EMPHASIS_ALPHA, is_power_of_two
from .errors import TransformInputError
from .features.cepstral import DEFAULT_FMIN, DEFAULT_SAMPLE_RATE, MfccExtractor
from .features.series import TimeSeries
from .framing import frame_signal

logger = logging.getLogger(__name__)

# Convenience defaults for the file/stream wrappers
DEFAULT_FRAME_SIZE = 256
DEFAULT_HOP_SIZE = 100
DEFAULT_FILTER_BANK_SIZE = 26
DEFAULT_CEPSTRAL_COEFFICIENT_COUNT = 13
# Coefficient 0 (log energy) below this marks a frame as silent. Kept explicit
# because log energy can legitimately be 0 for quiet but present audio.
DEFAULT_POWER_THRESHOLD = 0.0


def validate_parameters(
    frame_size: int,
    hop_size: int,
    filter_bank_size: int,
    cepstral_coefficient_count: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    fmin: float = DEFAULT_FMIN,
    fmax: Optional[float] = None
) -> None:
    """
    Checks a pipeline configuration before any sample is consumed.

    Raises:
        ValueError: Non-positive sizes, hop_size > frame_size,
                    cepstral_coefficient_count > filter_bank_size, or a filter
                    band outside [0, sample_rate / 2].
        TransformInputError: frame_size is not a power of two.
    """
    for name, value in (("frame_size", frame_size), ("hop_size", hop_size),
                        ("filter_bank_size", filter_bank_size),
                        ("cepstral_coefficient_count", cepstral_coefficient_count),
                        ("sample_rate", sample_rate)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
            raise ValueError(f"{name} must be a positive integer, got {value!r}.")
    if hop_size > frame_size:
        raise ValueError(f"hop_size ({hop_size}) must not exceed frame_size ({frame_size}).")
    if cepstral_coefficient_count > filter_bank_size:
        raise ValueError(f"cepstral_coefficient_count ({cepstral_coefficient_count}) must not exceed "
                         f"filter_bank_size ({filter_bank_size}).")
    nyquist = sample_rate / 2.0
    upper = nyquist if fmax is None else fmax
    if not 0.0 <= fmin < upper <= nyquist:
        raise ValueError(f"Filter band must satisfy 0 <= fmin < fmax <= {nyquist} Hz, got fmin={fmin}, fmax={fmax}.")
    if frame_size < 2 or not is_power_of_two(frame_size):
        raise TransformInputError(f"frame_size {frame_size} is not a power of two >= 2.")


def stream_cepstra(
    samples: Iterable[float],
    *,
    frame_size: int,
    hop_size: int,
    filter_bank_size: int,
    cepstral_coefficient_count: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    pre_emphasis_alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA,
    fmin: float = DEFAULT_FMIN,
    fmax: Optional[float] = None
) -> Iterator[NDArray[np.float64]]:
    """
    Lazily maps samples to per-frame cepstral vectors.

    The configuration is validated eagerly; frames are only pulled from
    `samples` as the caller iterates. Each vector has
    `cepstral_coefficient_count + 1` entries, entry 0 being the frame's log
    energy.
    """
    validate_parameters(frame_size, hop_size, filter_bank_size, cepstral_coefficient_count,
                        sample_rate, fmin, fmax)
    extractor = MfccExtractor(
        frame_size=frame_size,
        filter_bank_size=filter_bank_size,
        cepstral_coefficient_count=cepstral_coefficient_count,
        sample_rate=sample_rate,
        pre_emphasis_alpha=pre_emphasis_alpha,
        fmin=fmin,
        fmax=fmax,
    )
    return _map_frames(frame_signal(samples, frame_size, hop_size), extractor)


def _map_frames(frames: Iterator[NDArray[np.float64]], extractor: MfccExtractor) -> Iterator[NDArray[np.float64]]:
    try:
        for frame in frames:
            yield extractor(frame)
    finally:
        frames.close()


def trim_silence(
    vectors: Sequence[NDArray[np.float64]],
    power_threshold: float = DEFAULT_POWER_THRESHOLD
) -> List[NDArray[np.float64]]:
    """
    Removes leading and trailing vectors whose coefficient 0 is below the threshold.

    The start cursor scans forward over every vector; the end cursor scans
    backward but never tests index 0. Only coefficient 0 is consulted. Returns
    the contiguous remainder in original order, possibly empty.

    Coefficient 0 sums the log filter-bank energies of raw int16-scale
    samples, so at the default threshold of 0.0 only digital silence (all
    zeros, floored to log(eps) per filter) is trimmed. A one-LSB dither or
    hiss floor already has positive log energy; raise `power_threshold`
    above that floor's coefficient 0 to drop it.

    Args:
        vectors: Complete, ordered list of cepstral vectors.
        power_threshold: Log-energy threshold (strictly-below counts as silence).

    Returns:
        New list of the surviving vectors.
    """
    start = 0
    while start < len(vectors) and vectors[start][0] < power_threshold:
        start += 1

    end = len(vectors) - 1
    while end > 0 and vectors[end][0] < power_threshold:
        end -= 1

    if start > end:
        return []
    return list(vectors[start:end + 1])


def assemble_time_series(
    vectors: Sequence[NDArray[np.float64]],
    n_coefficients: int = 0
) -> TimeSeries:
    """
    Drops coefficient 0 from every vector and indexes them 0, 1, 2, ...

    Args:
        vectors: Trimmed cepstral vectors, all of the same length.
        n_coefficients: Width of an empty result (ignored when vectors exist).

    Raises:
        ValueError: If the vectors differ in length or have no coefficients past 0.
    """
    lengths = {len(v) for v in vectors}
    if len(lengths) > 1:
        raise ValueError(f"Cepstral vectors must share one length, got lengths {sorted(lengths)}.")
    if lengths and lengths.pop() < 2:
        raise ValueError("Cepstral vectors need at least one coefficient after the energy term.")
    features = [np.asarray(v, dtype=np.float64)[1:] for v in vectors]
    return TimeSeries.from_vectors(features, n_coefficients)


def extract_time_series(
    samples: Iterable[float],
    *,
    frame_size: int,
    hop_size: int,
    filter_bank_size: int,
    cepstral_coefficient_count: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    power_threshold: float = DEFAULT_POWER_THRESHOLD,
    pre_emphasis_alpha: float = DEFAULT_PRE_EMPHASIS_ALPHA,
    fmin: float = DEFAULT_FMIN,
    fmax: Optional[float] = None
) -> TimeSeries:
    """
    Runs the full pipeline over a sample sequence.

    All sizes are keyword-only so frame/hop/filter/coefficient counts cannot
    be transposed by position.

    Args:
        samples: Signed integer (or float) samples, any iterable.
        frame_size: Samples per frame; must be a power of two.
        hop_size: Samples between frame starts (<= frame_size).
        filter_bank_size: Number of triangular mel filters.
        cepstral_coefficient_count: Coefficients per output vector (<= filter_bank_size).
        sample_rate: Sampling rate of `samples` in Hz; sets the filter frequencies.
        power_threshold: Silence threshold on the log-energy term.
        pre_emphasis_alpha: Pre-emphasis coefficient in [0, 1).
        fmin: Lower edge of the filter bank in Hz.
        fmax: Upper edge of the filter bank in Hz (default: Nyquist).

    Returns:
        TimeSeries of `cepstral_coefficient_count`-long feature vectors.

    Raises:
        ValueError: Invalid configuration.
        TransformInputError: frame_size unusable by the spectral transform.
        DecodeError, OSError: Propagated from the sample source.
    """
    cepstra = stream_cepstra(
        samples,
        frame_size=frame_size,
        hop_size=hop_size,
        filter_bank_size=filter_bank_size,
        cepstral_coefficient_count=cepstral_coefficient_count,
        sample_rate=sample_rate,
        pre_emphasis_alpha=pre_emphasis_alpha,
        fmin=fmin,
        fmax=fmax,
    )
    logger.debug(f"Extracting MFCC series: frame={frame_size}, hop={hop_size}, filters={filter_bank_size}, "
                 f"coefficients={cepstral_coefficient_count}, sr={sample_rate}, threshold={power_threshold}")
    try:
        vectors = list(cepstra)
    finally:
        cepstra.close()

    trimmed = trim_silence(vectors, power_threshold)
    logger.debug(f"Trimmed {len(vectors) - len(trimmed)} of {len(vectors)} frames as silence.")
    series = assemble_time_series(trimmed, cepstral_coefficient_count)
    logger.info(f"Extracted MFCC time series with {len(series)} frames.")
    return series


def time_series_from_stream(
    stream: BinaryIO,
    big_endian: bool = False,
    *,
    max_samples: Optional[int] = None,
    frame_size: int = DEFAULT_FRAME_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    filter_bank_size: int = DEFAULT_FILTER_BANK_SIZE,
    cepstral_coefficient_count: int = DEFAULT_CEPSTRAL_COEFFICIENT_COUNT,
    **params
) -> TimeSeries:
    """
    Decodes a raw 16-bit PCM byte stream and extracts its MFCC time series.

    Args:
        stream: Binary stream of interleaved 16-bit samples (pipe, socket, file).
        big_endian: Byte order of the samples.
        max_samples: Stop reading after this many samples (for endless sources).
        **params: Further keyword arguments of `extract_time_series`.
    """
    samples = decode_samples(stream, big_endian)
    try:
        limited = samples if max_samples is None else islice(samples, max_samples)
        return extract_time_series(
            limited,
            frame_size=frame_size,
            hop_size=hop_size,
            filter_bank_size=filter_bank_size,
            cepstral_coefficient_count=cepstral_coefficient_count,
            **params,
        )
    finally:
        samples.close()


def time_series_from_file(
    file_path: Union[str, Path],
    *,
    max_samples: Optional[int] = None,
    frame_size: int = DEFAULT_FRAME_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    filter_bank_size: int = DEFAULT_FILTER_BANK_SIZE,
    cepstral_coefficient_count: int = DEFAULT_CEPSTRAL_COEFFICIENT_COUNT,
    sample_rate: Optional[int] = None,
    **params
) -> TimeSeries:
    """
    Extracts the MFCC time series of an audio file.

    Args:
        file_path: Any file soundfile can read.
        max_samples: Stop reading after this many (downmixed) samples.
        sample_rate: Override for the filter-bank frequencies; defaults to the
                     file's own sampling rate.
        **params: Further keyword arguments of `extract_time_series`.
    """
    if sample_rate is None:
        info = audio_info(file_path)
        sample_rate = info["sample_rate"]
        logger.debug(f"Audio file info: {info}")

    samples = read_audio_samples(file_path)
    try:
        limited = samples if max_samples is None else islice(samples, max_samples)
        return extract_time_series(
            limited,
            frame_size=frame_size,
            hop_size=hop_size,
            filter_bank_size=filter_bank_size,
            cepstral_coefficient_count=cepstral_coefficient_count,
            sample_rate=sample_rate,
            **params,
        )
    finally:
        samples.close()
