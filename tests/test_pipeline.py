# tests/test_pipeline.py

"""
Tests for melcepstra.core.pipeline: silence trimming, time-series assembly and
end-to-end extraction from samples, PCM streams and audio files.
"""

import io
from itertools import count, islice
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
from numpy.testing import assert_allclose, assert_array_equal

from melcepstra.core.errors import DecodeError, TransformInputError, UpstreamIOError
from melcepstra.core.features.series import TimeSeries
from melcepstra.core.framing import expected_frame_count
from melcepstra.core.pipeline import (
    assemble_time_series,
    extract_time_series,
    stream_cepstra,
    time_series_from_file,
    time_series_from_stream,
    trim_silence,
    validate_parameters,
)

PARAMS = dict(frame_size=256, hop_size=100, filter_bank_size=26, cepstral_coefficient_count=13)

# --- Helpers ---

def _vectors(energies, width=14):
    """Cepstral vectors whose coefficient 0 is the given energy."""
    out = []
    for i, e in enumerate(energies):
        v = np.full(width, float(i))
        v[0] = e
        out.append(v)
    return out

# --- Test Fixtures ---

@pytest.fixture
def steady_tone():
    """800 Hz at 16 kHz: one period is 20 samples, so a hop of 100 sees identical frames."""
    period = np.rint(10000 * np.sin(2 * np.pi * np.arange(20) / 20)).astype(np.int16)
    return np.tile(period, 200)  # 4000 samples

@pytest.fixture
def padded_tone(steady_tone):
    """1000 samples of silence, the tone, then 1000 samples of silence."""
    silence = np.zeros(1000, dtype=np.int16)
    return np.concatenate([silence, steady_tone, silence])

# --- Test Cases: trim_silence ---

def test_trim_silence_both_ends():
    """Negative energy at i < 2 and i > 7 leaves exactly elements 2..7."""
    energies = [-1.0, -2.0, 0.0, 5.0, 3.0, 1.0, 2.0, 4.0, -3.0, -0.5]
    vectors = _vectors(energies)
    trimmed = trim_silence(vectors)
    assert len(trimmed) == 6
    for offset, v in enumerate(trimmed):
        assert v is vectors[offset + 2]

def test_trim_silence_all_silent():
    assert trim_silence(_vectors([-1.0] * 5)) == []

def test_trim_silence_single_silent_vector():
    assert trim_silence(_vectors([-1.0])) == []

def test_trim_silence_single_loud_vector():
    vectors = _vectors([2.0])
    assert trim_silence(vectors) == vectors

def test_trim_silence_empty():
    assert trim_silence([]) == []

def test_trim_silence_keeps_interior_silence():
    vectors = _vectors([1.0, -5.0, -5.0, 1.0])
    assert len(trim_silence(vectors)) == 4

def test_trim_silence_zero_energy_is_not_silence():
    """Only strictly-below-threshold energies are trimmed."""
    vectors = _vectors([0.0, 0.0])
    assert len(trim_silence(vectors)) == 2

def test_trim_silence_end_cursor_stops_at_first_element():
    """The backward scan never tests index 0."""
    vectors = _vectors([1.0, -1.0, -1.0])
    trimmed = trim_silence(vectors)
    assert len(trimmed) == 1
    assert trimmed[0] is vectors[0]

def test_trim_silence_only_reads_energy_term():
    vectors = [np.array([1.0] + [-100.0] * 13), np.array([-1.0] + [100.0] * 13)]
    trimmed = trim_silence(vectors)
    assert len(trimmed) == 1
    assert trimmed[0] is vectors[0]

def test_trim_silence_custom_threshold():
    vectors = _vectors([1.0, 5.0, 6.0, 2.0])
    assert [v[0] for v in trim_silence(vectors, power_threshold=3.0)] == [5.0, 6.0]

# --- Test Cases: assemble_time_series ---

def test_assemble_time_series():
    """Four 14-long vectors become times 0..3 with 13-long features."""
    vectors = _vectors([1.0, 2.0, 3.0, 4.0], width=14)
    series = assemble_time_series(vectors)
    assert isinstance(series, TimeSeries)
    assert list(series) == [0, 1, 2, 3]
    for t in series:
        assert series[t].shape == (13,)
        assert_array_equal(series[t], vectors[t][1:])

def test_assemble_time_series_empty():
    series = assemble_time_series([], n_coefficients=13)
    assert len(series) == 0
    assert series.n_coefficients == 13

def test_assemble_time_series_mismatched_lengths():
    with pytest.raises(ValueError):
        assemble_time_series([np.ones(14), np.ones(10)])

def test_assemble_time_series_energy_only():
    with pytest.raises(ValueError):
        assemble_time_series([np.ones(1)])

# --- Test Cases: validate_parameters ---

@pytest.mark.parametrize("overrides", [
    dict(frame_size=0),
    dict(hop_size=0),
    dict(hop_size=300),
    dict(filter_bank_size=0),
    dict(cepstral_coefficient_count=0),
    dict(cepstral_coefficient_count=27),
    dict(frame_size=256.0),
    dict(sample_rate=0),
    dict(fmin=9000.0),
    dict(fmax=8001.0),
])
def test_validate_parameters_rejects(overrides):
    params = dict(PARAMS, sample_rate=16000, fmin=80.0, fmax=None)
    params.update(overrides)
    with pytest.raises(ValueError):
        validate_parameters(**params)

def test_validate_parameters_non_power_of_two():
    with pytest.raises(TransformInputError):
        validate_parameters(frame_size=200, hop_size=100, filter_bank_size=26, cepstral_coefficient_count=13)

def test_validate_parameters_accepts_defaults():
    validate_parameters(**PARAMS)

# --- Test Cases: stream_cepstra ---

def test_stream_cepstra_lengths(steady_tone):
    vectors = list(stream_cepstra(steady_tone, **PARAMS))
    assert len(vectors) == expected_frame_count(len(steady_tone), 256, 100)
    assert all(v.shape == (14,) for v in vectors)

def test_stream_cepstra_validates_eagerly():
    """Bad configuration fails before any sample is pulled."""
    with pytest.raises(TransformInputError):
        stream_cepstra(iter(()), frame_size=100, hop_size=50, filter_bank_size=26, cepstral_coefficient_count=13)

def test_stream_cepstra_is_lazy_on_endless_input():
    """An endless source can be consumed a few frames at a time."""
    pulled = []

    def endless():
        for i in count():
            pulled.append(i)
            yield 1000 * ((i % 20) < 10)

    cepstra = stream_cepstra(endless(), **PARAMS)
    head = list(islice(cepstra, 3))
    cepstra.close()
    assert len(head) == 3
    assert len(pulled) == 256 + 2 * 100

# --- Test Cases: extract_time_series ---

def test_silence_yields_empty_series():
    """Pure silence is trimmed away completely."""
    series = extract_time_series(np.zeros(16000, dtype=np.int16), **PARAMS)
    assert len(series) == 0
    assert series.n_coefficients == 13

def test_one_lsb_dither_needs_raised_threshold():
    """
    Near-zero integer noise (0, +-1) has positive log energy on the int16 scale:
    the default threshold keeps every frame, a threshold above its energy drops all.
    """
    dither = np.random.default_rng(0).integers(-1, 2, 16000).astype(np.int16)
    energies = [v[0] for v in stream_cepstra(dither, **PARAMS)]
    assert len(energies) == expected_frame_count(16000, 256, 100)
    assert min(energies) > 0.0

    assert len(extract_time_series(dither, **PARAMS)) == len(energies)
    raised = extract_time_series(dither, power_threshold=max(energies) + 1.0, **PARAMS)
    assert len(raised) == 0

def test_steady_tone_yields_stable_features(steady_tone):
    """A steady-state signal gives the same cepstral shape at every time index."""
    series = extract_time_series(steady_tone, **PARAMS)
    assert len(series) == expected_frame_count(len(steady_tone), 256, 100)
    assert len(series) >= 3
    assert series.n_coefficients == 13
    assert_allclose(series.data, np.broadcast_to(series[0], series.data.shape), rtol=1e-9, atol=1e-9)

def test_leading_and_trailing_silence_trimmed(padded_tone):
    """Frames lying entirely in the silent margins are removed, indices stay dense."""
    series = extract_time_series(padded_tone, **PARAMS)
    total = expected_frame_count(len(padded_tone), 256, 100)
    assert total == 58
    assert len(series) == total - 16
    assert list(series) == list(range(len(series)))

def test_short_input_yields_empty_series():
    series = extract_time_series(np.ones(255, dtype=np.int16) * 1000, **PARAMS)
    assert len(series) == 0

def test_extract_requires_keyword_sizes(steady_tone):
    with pytest.raises(TypeError):
        extract_time_series(steady_tone, 256, 100, 26, 13)

def test_extract_accepts_python_ints(steady_tone):
    from_list = extract_time_series(steady_tone.tolist(), **PARAMS)
    from_array = extract_time_series(steady_tone, **PARAMS)
    assert from_list == from_array

def test_extract_power_threshold(padded_tone):
    """A threshold above every frame's energy empties the series."""
    series = extract_time_series(padded_tone, power_threshold=1e9, **PARAMS)
    assert len(series) == 0

# --- Test Cases: raw PCM streams ---

@pytest.mark.parametrize("big_endian, dtype", [(False, "<i2"), (True, ">i2")])
def test_time_series_from_stream(steady_tone, big_endian, dtype):
    stream = io.BytesIO(steady_tone.astype(dtype).tobytes())
    series = time_series_from_stream(stream, big_endian, **PARAMS)
    assert series == extract_time_series(steady_tone, **PARAMS)

def test_time_series_from_stream_defaults(steady_tone):
    series = time_series_from_stream(io.BytesIO(steady_tone.astype("<i2").tobytes()))
    assert series.n_coefficients == 13

def test_time_series_from_stream_stops_endless_source():
    """max_samples ends the run on a source that never ends."""

    rng = np.random.default_rng(3)

    class Endless(io.RawIOBase):
        reads = 0

        def readable(self):
            return True

        def read(self, size=-1):
            Endless.reads += 1
            return rng.integers(-3000, 3000, size // 2).astype("<i2").tobytes()

    series = time_series_from_stream(Endless(), max_samples=2056, **PARAMS)
    assert len(series) == expected_frame_count(2056, 256, 100)
    assert Endless.reads == 1

def test_time_series_from_stream_propagates_io_error():
    class Broken(io.RawIOBase):
        def readable(self):
            return True

        def read(self, size=-1):
            raise ConnectionResetError("peer reset")

    with pytest.raises(UpstreamIOError, match="peer reset"):
        time_series_from_stream(Broken(), **PARAMS)

# --- Test Cases: audio files ---

def test_time_series_from_file(tmp_path: Path, padded_tone):
    path = tmp_path / "tone.wav"
    sf.write(str(path), padded_tone, 16000, subtype="PCM_16")
    series = time_series_from_file(path)
    assert series == extract_time_series(padded_tone, sample_rate=16000, **PARAMS)

def test_time_series_from_file_uses_file_sample_rate(tmp_path: Path, padded_tone):
    path = tmp_path / "tone_8k.wav"
    sf.write(str(path), padded_tone, 8000, subtype="PCM_16")
    series = time_series_from_file(path)
    assert series == extract_time_series(padded_tone, sample_rate=8000, **PARAMS)
    assert series != extract_time_series(padded_tone, sample_rate=16000, **PARAMS)

def test_time_series_from_file_max_samples(tmp_path: Path, steady_tone):
    path = tmp_path / "tone.wav"
    sf.write(str(path), steady_tone, 16000, subtype="PCM_16")
    series = time_series_from_file(path, max_samples=1000)
    assert len(series) == expected_frame_count(1000, 256, 100)

def test_time_series_from_file_malformed(tmp_path: Path):
    path = tmp_path / "broken.wav"
    path.write_bytes(b"RIFF....not really")
    with pytest.raises(DecodeError):
        time_series_from_file(path)

def test_time_series_from_file_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        time_series_from_file(tmp_path / "nope.wav")
