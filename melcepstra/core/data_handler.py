# melcepstra/core/data_handler.py

"""
Handles reading and writing MFCC time series from/to various file formats.

Supports tabular data (CSV, JSON) via Pandas and numerical data (NPZ) via NumPy.
The file extension selects the format.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from .features.series import TimeSeries

logger = logging.getLogger(__name__)

TABULAR_FORMATS = {".csv", ".json"}
ARRAY_FORMATS = {".npz"}
SUPPORTED_FORMATS = TABULAR_FORMATS | ARRAY_FORMATS

# Keys used inside NPZ archives
NPZ_TIME_KEY = "time"
NPZ_MFCC_KEY = "mfcc"


def _check_extension(fpath: Path) -> str:
    ext = fpath.suffix.lower()
    if ext not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported time series file format: '{ext}'. "
                         f"Supported formats: {sorted(SUPPORTED_FORMATS)}")
    return ext


def save_time_series(series: TimeSeries, output_path: Union[str, Path]) -> Path:
    """
    Saves a TimeSeries; the extension of `output_path` picks the format.

    - .csv: one row per frame, columns 'time', 'mfcc_1'..'mfcc_n'.
    - .json: the same table as a list of records.
    - .npz: arrays 'time' (n_frames,) and 'mfcc' (n_frames, n_coefficients).

    Returns:
        The resolved output path.

    Raises:
        ValueError: If the format is not supported.
        Exception: For underlying write errors from pandas or numpy.
    """
    fpath = Path(output_path).resolve()
    ext = _check_extension(fpath)
    logger.info(f"Saving time series ({len(series)} frames) to: {fpath}")

    fpath.parent.mkdir(parents=True, exist_ok=True)

    try:
        if ext == ".csv":
            series.to_dataframe().to_csv(fpath, index=False)
        elif ext == ".json":
            series.to_dataframe().to_json(fpath, orient="records", indent=2, double_precision=15)
        else:
            np.savez(fpath, **{NPZ_TIME_KEY: series.times, NPZ_MFCC_KEY: series.data})
    except Exception as e:
        logger.error(f"Error writing time series to {fpath}: {e}")
        raise
    logger.debug(f"Time series written to {fpath}")
    return fpath


def load_time_series(input_path: Union[str, Path]) -> TimeSeries:
    """
    Loads a TimeSeries written by `save_time_series`.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the format is not supported or the content is not a
                    dense MFCC time series.
    """
    fpath = Path(input_path).resolve()
    ext = _check_extension(fpath)
    if not fpath.is_file():
        raise FileNotFoundError(f"Time series file not found: {fpath}")
    logger.info(f"Reading time series from: {fpath}")

    if ext == ".csv":
        return TimeSeries.from_dataframe(pd.read_csv(fpath))
    if ext == ".json":
        df = pd.read_json(fpath, orient="records")
        if df.empty:
            return TimeSeries.from_vectors([])
        return TimeSeries.from_dataframe(df)

    with np.load(fpath) as archive:
        if NPZ_MFCC_KEY not in archive:
            raise ValueError(f"NPZ file {fpath} has no '{NPZ_MFCC_KEY}' array.")
        values = archive[NPZ_MFCC_KEY]
        if NPZ_TIME_KEY in archive and not np.array_equal(archive[NPZ_TIME_KEY], np.arange(len(values))):
            raise ValueError("Time index must be dense and zero-based (0, 1, 2, ...).")
        return TimeSeries(values, values.shape[1] if values.ndim == 2 else 0)
