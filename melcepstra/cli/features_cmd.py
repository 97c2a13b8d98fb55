# melcepstra/cli/features_cmd.py

"""
CLI commands for extracting and inspecting MFCC time series.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from tabulate import tabulate

from melcepstra.config.models import MelcepstraConfig, MFCCParams
from melcepstra.core.audio.io import audio_info
from melcepstra.core.data_handler import load_time_series, save_time_series
from melcepstra.core.errors import FeatureExtractionError
from melcepstra.core.features.series import TimeSeries
from melcepstra.core.pipeline import time_series_from_file, time_series_from_stream

logger = logging.getLogger(__name__)


def _resolve_params(config: MelcepstraConfig, overrides: Dict[str, Any]) -> MFCCParams:
    """Config values overridden by the CLI options that were actually given."""
    merged = config.parameters.mfcc.model_dump()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return MFCCParams(**merged)


def _default_output(config: MelcepstraConfig, input_file: str) -> Path:
    stem = "stdin" if input_file == "-" else Path(input_file).stem
    return config.paths.output_dir / f"{stem}.{config.defaults.output_format}"


# --- Main Features Command Group ---
@click.group("features")
@click.pass_context
def features_cmd(ctx):
    """Extract and inspect MFCC time series."""
    pass


# --- Extract Subcommand ---
@features_cmd.command("extract")
@click.argument("input_file", type=click.Path(dir_okay=False, allow_dash=True))
@click.option("-o", "--output", type=click.Path(dir_okay=False, resolve_path=True), default=None,
              help="Output file (.csv, .json or .npz). Defaults to <output_dir>/<input stem>.<default format>.")
@click.option("--frame-size", type=int, default=None, help="Samples per frame (power of two).")
@click.option("--hop-size", type=int, default=None, help="Samples between frame starts.")
@click.option("--filters", "filter_bank_size", type=int, default=None, help="Number of triangular mel filters.")
@click.option("--coefficients", "cepstral_coefficient_count", type=int, default=None,
              help="MFCCs per frame (excluding the energy term).")
@click.option("--power-threshold", type=float, default=None,
              help="Log-energy threshold below which leading/trailing frames are trimmed.")
@click.option("--raw", is_flag=True, default=False, help="Treat INPUT_FILE as headerless 16-bit PCM ('-' reads stdin).")
@click.option("--big-endian/--little-endian", default=None, help="Byte order of raw PCM input.")
@click.option("--sample-rate", type=int, default=None,
              help="Sample rate in Hz (raw input default comes from config; files use their own).")
@click.option("--max-seconds", type=float, default=None, help="Stop reading input after this many seconds.")
@click.pass_context
def features_extract(
    ctx,
    input_file: str,
    output: Optional[str],
    frame_size: Optional[int],
    hop_size: Optional[int],
    filter_bank_size: Optional[int],
    cepstral_coefficient_count: Optional[int],
    power_threshold: Optional[float],
    raw: bool,
    big_endian: Optional[bool],
    sample_rate: Optional[int],
    max_seconds: Optional[float]
):
    """Extract the silence-trimmed MFCC time series of an audio signal."""
    config: MelcepstraConfig = ctx.obj['config']
    output_path = Path(output) if output else _default_output(config, input_file)

    try:
        params = _resolve_params(config, {
            "frame_size": frame_size,
            "hop_size": hop_size,
            "filter_bank_size": filter_bank_size,
            "cepstral_coefficient_count": cepstral_coefficient_count,
            "power_threshold": power_threshold,
        })
    except ValueError as e:
        raise click.UsageError(f"Invalid MFCC parameters: {e}")
    if max_seconds is not None and max_seconds <= 0:
        raise click.UsageError("--max-seconds must be positive.")
    if sample_rate is not None and sample_rate <= 0:
        raise click.UsageError("--sample-rate must be positive.")
    if input_file == "-" and not raw:
        raise click.UsageError("Reading from stdin requires --raw.")

    logger.info(f"Running MFCC extraction on: {input_file}")
    logger.info(f"Output file: {output_path}")
    logger.info(f"Params: {params.model_dump()}")

    try:
        if raw:
            sr = sample_rate or config.defaults.sample_rate
            byte_order = config.defaults.big_endian if big_endian is None else big_endian
            max_samples = int(max_seconds * sr) if max_seconds else None
            # '-' opens binary stdin, left open on exit
            with click.open_file(input_file, "rb") as stream:
                series = time_series_from_stream(
                    stream, byte_order,
                    max_samples=max_samples, sample_rate=sr, **params.pipeline_kwargs())
        else:
            if big_endian is not None:
                logger.warning("--big-endian/--little-endian only applies to --raw input; ignoring.")
            sr = sample_rate or audio_info(input_file)["sample_rate"]
            max_samples = int(max_seconds * sr) if max_seconds else None
            series = time_series_from_file(
                input_file, max_samples=max_samples, sample_rate=sr, **params.pipeline_kwargs())

        save_time_series(series, output_path)

    except FileNotFoundError as e:
        raise click.UsageError(f"Input file not found: {e.filename or input_file}")
    except (ValueError, FeatureExtractionError) as e:
        raise click.UsageError(f"Error during feature extraction: {e}")
    except Exception as e:
        logger.error(f"An unexpected error occurred during feature extraction: {e}", exc_info=True)
        raise click.Abort()

    if len(series) == 0:
        click.echo("Warning: no frames survived silence trimming; saved an empty time series.")
    click.echo(f"Extracted {len(series)} frames x {series.n_coefficients} coefficients "
               f"from '{Path(input_file).name}', saved to '{output_path.name}'.")


# --- Show Subcommand ---
@features_cmd.command("show")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--rows", type=int, default=10, show_default=True, help="Number of frames to print (0 for all).")
@click.pass_context
def features_show(ctx, input_file: str, rows: int):
    """Print a saved MFCC time series as a table."""
    try:
        series: TimeSeries = load_time_series(input_file)
    except ValueError as e:
        raise click.UsageError(f"Could not read time series: {e}")

    click.echo(f"Frames: {len(series)}, coefficients: {series.n_coefficients}")
    if len(series) == 0:
        return
    df = series.to_dataframe()
    if rows > 0:
        df = df.head(rows)
    click.echo(tabulate(df, headers="keys", tablefmt="grid", showindex=False, floatfmt=".4f"))
