# tests/test_framing.py

"""
Tests for melcepstra.core.framing.
"""

from itertools import count, islice

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from melcepstra.core.framing import expected_frame_count, frame_signal

# --- Test Cases ---

@pytest.mark.parametrize("n_samples, frame_size, hop_size", [
    (1000, 256, 100),
    (256, 256, 100),
    (255, 256, 100),
    (0, 256, 100),
    (356, 256, 100),
    (355, 256, 100),
    (1024, 64, 64),
    (1000, 8, 1),
    (20, 4, 3),
])
def test_frame_count(n_samples, frame_size, hop_size):
    """floor((N - frame) / hop) + 1 frames for N >= frame, else none."""
    frames = list(frame_signal(range(n_samples), frame_size, hop_size))
    if n_samples >= frame_size:
        expected = (n_samples - frame_size) // hop_size + 1
    else:
        expected = 0
    assert len(frames) == expected
    assert expected_frame_count(n_samples, frame_size, hop_size) == expected

def test_frame_contents_overlap():
    """Frames start every hop samples and hold consecutive samples."""
    frames = list(frame_signal(range(10), frame_size=4, hop_size=2))
    assert len(frames) == 4
    assert_array_equal(frames[0], [0, 1, 2, 3])
    assert_array_equal(frames[1], [2, 3, 4, 5])
    assert_array_equal(frames[3], [6, 7, 8, 9])
    assert all(f.dtype == np.float64 for f in frames)

def test_trailing_partial_frame_dropped():
    """Samples that cannot fill a frame are discarded, not padded."""
    frames = list(frame_signal(range(11), frame_size=4, hop_size=3))
    assert [f.tolist() for f in frames] == [[0, 1, 2, 3], [3, 4, 5, 6], [6, 7, 8, 9]]

def test_frames_are_independent_arrays():
    """Mutating an emitted frame does not affect later frames."""
    frames = frame_signal(range(8), frame_size=4, hop_size=1)
    first = next(frames)
    first[:] = -1
    assert_array_equal(next(frames), [1, 2, 3, 4])

def test_framing_is_lazy():
    """Only the samples needed for the requested frames are pulled."""
    pulled = []

    def source():
        for i in count():
            pulled.append(i)
            yield i

    frames = frame_signal(source(), frame_size=4, hop_size=2)
    head = list(islice(frames, 2))
    assert [f.tolist() for f in head] == [[0, 1, 2, 3], [2, 3, 4, 5]]
    assert len(pulled) == 6

def test_accepts_numpy_input():
    signal = np.arange(12, dtype=np.int16)
    frames = list(frame_signal(signal, frame_size=6, hop_size=6))
    assert len(frames) == 2
    assert_array_equal(frames[1], np.arange(6, 12))

@pytest.mark.parametrize("frame_size, hop_size", [(0, 1), (-4, 2), (4, 0), (4, -1)])
def test_invalid_sizes(frame_size, hop_size):
    with pytest.raises(ValueError):
        list(frame_signal(range(10), frame_size, hop_size))
