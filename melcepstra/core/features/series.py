# melcepstra/core/features/series.py

"""
Immutable MFCC time series: dense integer time index -> feature vector.
"""

from collections.abc import Mapping
from typing import Iterator, List, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

TIME_COLUMN = "time"
COLUMN_PREFIX = "mfcc_"


class TimeSeries(Mapping):
    """
    Ordered mapping from time index (0, 1, 2, ...) to a feature vector.

    Backed by one read-only (n_frames, n_coefficients) float64 array. Keys are
    always dense and zero-based; an empty series is valid.
    """

    def __init__(self, values: NDArray[np.float64], n_coefficients: int = 0):
        array = np.array(values, dtype=np.float64, copy=True)
        if array.size == 0:
            array = array.reshape(0, max(n_coefficients, array.shape[-1] if array.ndim == 2 else 0))
        if array.ndim != 2:
            raise ValueError(f"TimeSeries values must be 2D (frames x coefficients), got shape {array.shape}.")
        array.setflags(write=False)
        self._values = array

    @classmethod
    def from_vectors(cls, vectors: Sequence[NDArray[np.float64]], n_coefficients: int = 0) -> "TimeSeries":
        """Builds a series from feature vectors already in time order."""
        if len(vectors) == 0:
            return cls(np.empty((0, n_coefficients)), n_coefficients)
        return cls(np.vstack([np.asarray(v, dtype=np.float64) for v in vectors]))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "TimeSeries":
        """
        Inverse of `to_dataframe`. Rows are ordered by the 'time' column if present.

        Raises:
            ValueError: If time indices are not 0..n-1 or no mfcc columns exist.
        """
        if TIME_COLUMN in df.columns:
            df = df.sort_values(TIME_COLUMN)
            times = df[TIME_COLUMN].to_numpy()
            if not np.array_equal(times, np.arange(len(df))):
                raise ValueError("Time index must be dense and zero-based (0, 1, 2, ...).")
        columns = [c for c in df.columns if str(c).startswith(COLUMN_PREFIX)]
        if not columns:
            raise ValueError(f"No '{COLUMN_PREFIX}*' columns found in DataFrame.")
        columns.sort(key=lambda c: int(str(c)[len(COLUMN_PREFIX):]))
        return cls(df[columns].to_numpy(dtype=np.float64), len(columns))

    # --- Mapping protocol ---

    def __getitem__(self, time: int) -> NDArray[np.float64]:
        if isinstance(time, (bool, np.bool_)) or not isinstance(time, (int, np.integer)):
            raise KeyError(time)
        if not 0 <= time < self._values.shape[0]:
            raise KeyError(time)
        return self._values[int(time)]

    def __iter__(self) -> Iterator[int]:
        return iter(range(self._values.shape[0]))

    def __len__(self) -> int:
        return self._values.shape[0]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TimeSeries):
            return np.array_equal(self._values, other._values)
        return super().__eq__(other)

    def __repr__(self) -> str:
        return f"TimeSeries(frames={len(self)}, n_coefficients={self.n_coefficients})"

    # --- Accessors ---

    @property
    def times(self) -> NDArray[np.int64]:
        return np.arange(self._values.shape[0], dtype=np.int64)

    @property
    def data(self) -> NDArray[np.float64]:
        """Read-only (n_frames, n_coefficients) array."""
        return self._values

    @property
    def n_coefficients(self) -> int:
        return int(self._values.shape[1])

    def column_names(self) -> List[str]:
        return [f"{COLUMN_PREFIX}{i}" for i in range(1, self.n_coefficients + 1)]

    def to_dataframe(self) -> pd.DataFrame:
        """DataFrame with a 'time' column followed by mfcc_1..mfcc_n."""
        df = pd.DataFrame(self._values, columns=self.column_names())
        df.insert(0, TIME_COLUMN, self.times)
        return df
