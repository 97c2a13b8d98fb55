# tests/test_data_handler.py

"""
Tests for saving and loading MFCC time series in melcepstra.core.data_handler.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from melcepstra.core.data_handler import load_time_series, save_time_series
from melcepstra.core.features.series import TimeSeries

# --- Test Fixtures ---

@pytest.fixture
def series():
    rng = np.random.default_rng(42)
    return TimeSeries(rng.normal(scale=20.0, size=(6, 13)))

@pytest.fixture
def empty_series():
    return TimeSeries.from_vectors([], n_coefficients=13)

# --- Test Cases ---

@pytest.mark.parametrize("suffix", [".csv", ".npz"])
def test_roundtrip(tmp_path: Path, series, suffix):
    path = save_time_series(series, tmp_path / f"features{suffix}")
    assert path.exists()
    loaded = load_time_series(path)
    assert list(loaded) == list(series)
    assert_allclose(loaded.data, series.data, rtol=1e-15)

def test_npz_roundtrip_is_exact(tmp_path: Path, series):
    loaded = load_time_series(save_time_series(series, tmp_path / "features.npz"))
    assert loaded == series

def test_json_roundtrip(tmp_path: Path, series):
    """JSON keeps 15 significant digits."""
    loaded = load_time_series(save_time_series(series, tmp_path / "features.json"))
    assert len(loaded) == len(series)
    assert_allclose(loaded.data, series.data, rtol=1e-12)

def test_csv_layout(tmp_path: Path, series):
    path = save_time_series(series, tmp_path / "features.csv")
    df = pd.read_csv(path)
    assert list(df.columns) == ["time"] + [f"mfcc_{i}" for i in range(1, 14)]
    assert_array_equal(df["time"], np.arange(6))

def test_npz_layout(tmp_path: Path, series):
    path = save_time_series(series, tmp_path / "features.npz")
    with np.load(path) as archive:
        assert_array_equal(archive["time"], np.arange(6))
        assert archive["mfcc"].shape == (6, 13)

def test_save_creates_parent_dirs(tmp_path: Path, series):
    path = save_time_series(series, tmp_path / "nested" / "dir" / "features.csv")
    assert path.is_file()

@pytest.mark.parametrize("suffix", [".csv", ".json", ".npz"])
def test_empty_series_roundtrip(tmp_path: Path, empty_series, suffix):
    loaded = load_time_series(save_time_series(empty_series, tmp_path / f"empty{suffix}"))
    assert len(loaded) == 0

def test_unsupported_format(tmp_path: Path, series):
    with pytest.raises(ValueError, match="Unsupported"):
        save_time_series(series, tmp_path / "features.xlsx")
    with pytest.raises(ValueError, match="Unsupported"):
        load_time_series(tmp_path / "features.txt")

def test_load_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_time_series(tmp_path / "missing.csv")

def test_load_npz_with_gaps(tmp_path: Path):
    path = tmp_path / "gappy.npz"
    np.savez(path, time=np.array([0, 2]), mfcc=np.ones((2, 13)))
    with pytest.raises(ValueError, match="dense"):
        load_time_series(path)

def test_load_npz_without_mfcc(tmp_path: Path):
    path = tmp_path / "other.npz"
    np.savez(path, something=np.ones(3))
    with pytest.raises(ValueError, match="mfcc"):
        load_time_series(path)
