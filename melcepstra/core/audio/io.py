# melcepstra/core/audio/io.py

"""
Sources of signed 16-bit integer samples.

`decode_samples` turns a raw PCM byte stream into samples; `read_audio_samples`
decodes audio files through soundfile. Both are lazy generators: nothing is
read until the consumer asks for the next sample, and closing the generator
stops all further reads (required for live, never-ending sources).
"""

import logging
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Union, Any

import numpy as np
import soundfile as sf

from ..errors import DecodeError

logger = logging.getLogger(__name__)

# Store readable formats in a way that's easy to check against extensions
SUPPORTED_READ_EXTENSIONS = {f".{fmt.lower()}" for fmt in sf.available_formats()}
# Common spellings that differ from libsndfile's major format names
SUPPORTED_READ_EXTENSIONS.add(".aif")
if ".ogg" in SUPPORTED_READ_EXTENSIONS:
    SUPPORTED_READ_EXTENSIONS |= {".oga", ".opus"}
logger.debug(f"Supported audio read extensions: {sorted(SUPPORTED_READ_EXTENSIONS)}")

DEFAULT_CHUNK_SIZE = 8192
DEFAULT_BLOCK_SIZE = 4096


def _sample_dtype(big_endian: bool) -> np.dtype:
    return np.dtype(">i2" if big_endian else "<i2")


def samples_from_bytes(data: bytes, big_endian: bool = False) -> np.ndarray:
    """
    Decodes an in-memory buffer of 16-bit PCM into an int64 array.

    A dangling final odd byte is ignored.
    """
    usable = len(data) - (len(data) % 2)
    return np.frombuffer(data[:usable], dtype=_sample_dtype(big_endian)).astype(np.int64)


def decode_samples(
    stream: BinaryIO,
    big_endian: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[int]:
    """
    Lazily decodes a binary stream of 16-bit PCM into integer samples.

    Each consecutive byte pair is interpreted as one signed 16-bit value in the
    requested byte order. A read that ends on an odd byte carries that byte
    over into the next read, so chunk boundaries never split a sample.

    Args:
        stream: Binary file-like object with a `read(n)` method (file, pipe,
                socket wrapper, `io.BytesIO`, ...).
        big_endian: Byte order of the encoded samples (from the source's
                    format metadata). Default: little-endian.
        chunk_size: Maximum number of bytes requested per read.

    Yields:
        One Python int per decoded sample.

    Raises:
        ValueError: If chunk_size is smaller than one sample.
        DecodeError: If the stream yields text instead of bytes.
        OSError: Failures of the stream itself are propagated unchanged.
    """
    if chunk_size < 2:
        raise ValueError(f"chunk_size must be at least 2 bytes, got {chunk_size}.")
    logger.debug(f"Decoding 16-bit PCM stream (big_endian={big_endian}, chunk_size={chunk_size})")
    return _decode_chunks(stream, _sample_dtype(big_endian), chunk_size)


def _decode_chunks(stream: BinaryIO, dtype: np.dtype, chunk_size: int) -> Iterator[int]:
    # Buffered pipes and sockets block in read(n) until n bytes arrive;
    # read1 returns whatever a single underlying read delivers.
    read = getattr(stream, "read1", stream.read)
    pending = b""
    total = 0
    while True:
        chunk = read(chunk_size)
        if not chunk:
            break  # Exhausted: normal completion
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise DecodeError(f"Expected a binary stream, read {type(chunk).__name__} instead.")

        data = pending + bytes(chunk)
        usable = len(data) - (len(data) % 2)
        pending = data[usable:]
        values = np.frombuffer(data[:usable], dtype=dtype).tolist()
        total += len(values)
        yield from values

    if pending:
        logger.debug("Ignoring dangling odd byte at end of PCM stream.")
    logger.debug(f"PCM stream exhausted after {total} samples.")


def _check_audio_path(file_path: Union[str, Path]) -> Path:
    """
    Existence and extension checks shared by the file readers.

    Files without an extension are left to soundfile's header sniffing.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Audio input file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Input path is not a file: {path}")
    ext = path.suffix.lower()
    if ext and ext not in SUPPORTED_READ_EXTENSIONS:
        raise DecodeError(f"Unsupported audio file extension '{ext}' for '{path}'. "
                          f"Headerless PCM goes through decode_samples instead.")
    return path


def audio_info(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Returns basic format information for an audio file.

    Returns:
        Dict with keys 'sample_rate', 'channels', 'frames', 'duration' (seconds)
        and 'subtype'.

    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeError: If the extension is not a readable audio format or
                     soundfile cannot parse the file.
    """
    path = _check_audio_path(file_path)
    try:
        info = sf.info(str(path))
    except RuntimeError as e:
        logger.error(f"Could not read audio header of {path}: {e}")
        raise DecodeError(f"Unsupported or malformed audio file '{path}': {e}") from e

    return {
        "sample_rate": int(info.samplerate),
        "channels": int(info.channels),
        "frames": int(info.frames),
        "duration": float(info.duration),
        "subtype": info.subtype,
    }


def read_audio_samples(
    file_path: Union[str, Path],
    block_size: int = DEFAULT_BLOCK_SIZE
) -> Iterator[int]:
    """
    Lazily reads an audio file as a single stream of 16-bit integer samples.

    soundfile converts whatever subtype the file uses to int16. Multi-channel
    files are reduced to one stream by the integer mean of their channels.
    The file is closed when the generator is exhausted, closed or garbage
    collected.

    Args:
        file_path: Path to any format soundfile can read (WAV, FLAC, OGG, AIFF, ...).
        block_size: Number of frames read per block.

    Yields:
        One Python int per (downmixed) sample.

    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeError: If the extension is not a readable audio format or
                     soundfile cannot open or decode the file.
    """
    path = _check_audio_path(file_path)

    try:
        sound_file = sf.SoundFile(str(path))
    except RuntimeError as e:
        logger.error(f"Error opening audio file {path}: {e}")
        raise DecodeError(f"Unsupported or malformed audio file '{path}': {e}") from e

    with sound_file:
        channels = sound_file.channels
        logger.info(f"Reading samples from: {path} (sr={sound_file.samplerate}, "
                    f"channels={channels}, subtype={sound_file.subtype})")
        if channels > 1:
            logger.warning(f"Input audio has {channels} channels. Downmixing to mono by averaging.")

        blocks = sound_file.blocks(blocksize=block_size, dtype="int16", always_2d=True)
        while True:
            try:
                block = next(blocks)
            except StopIteration:
                break
            except RuntimeError as e:
                logger.error(f"Error decoding audio file {path}: {e}")
                raise DecodeError(f"Failed to decode '{path}': {e}") from e

            if channels > 1:
                mono = block.astype(np.int32).sum(axis=1) // channels
            else:
                mono = block[:, 0]
            yield from mono.tolist()
