# melcepstra/core/framing.py

"""
Slices a sample sequence into fixed-length, fixed-hop analysis frames.
"""

import logging
from collections import deque
from typing import Iterable, Iterator

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


def expected_frame_count(n_samples: int, frame_size: int, hop_size: int) -> int:
    """Number of full frames `frame_signal` emits for `n_samples` input samples."""
    if n_samples < frame_size:
        return 0
    return (n_samples - frame_size) // hop_size + 1


def frame_signal(
    samples: Iterable[float],
    frame_size: int,
    hop_size: int
) -> Iterator[NDArray[np.float64]]:
    """
    Lazily frames a sample sequence.

    Frames start at offsets 0, hop_size, 2 * hop_size, ... and contain exactly
    `frame_size` consecutive samples. A trailing partial frame is dropped, never
    padded. Only the most recent `frame_size` samples are held in memory.

    Args:
        samples: Any iterable of numeric samples (generator, list, NumPy array).
        frame_size: Number of samples per frame (positive).
        hop_size: Offset in samples between consecutive frame starts (positive).

    Yields:
        New float64 arrays of length `frame_size`.

    Raises:
        ValueError: If frame_size or hop_size is not positive.
    """
    if frame_size <= 0:
        raise ValueError(f"frame_size must be positive, got {frame_size}.")
    if hop_size <= 0:
        raise ValueError(f"hop_size must be positive, got {hop_size}.")

    window: deque = deque(maxlen=frame_size)
    consumed = 0
    emitted = 0
    for sample in samples:
        window.append(sample)
        consumed += 1
        start = consumed - frame_size
        if start >= 0 and start % hop_size == 0:
            emitted += 1
            yield np.fromiter(window, dtype=np.float64, count=frame_size)

    logger.debug(f"Framed {consumed} samples into {emitted} frames (frame_size={frame_size}, hop={hop_size}).")
