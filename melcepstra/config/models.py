# melcepstra/config/models.py

"""
Pydantic models for defining the structure and validation of the melcepstra
configuration (melcepstra.toml). Uses Pydantic V2 syntax.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# --- Helper Functions ---

def _resolve_path(path: Union[str, Path]) -> Path:
    """Resolves and expands user paths."""
    return Path(path).expanduser().resolve()


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0

# --- Model Definitions ---

class DefaultsConfig(BaseModel):
    """Default input/output assumptions."""
    sample_rate: int = Field(16000, gt=0, description="Sample rate assumed for raw PCM input.")
    big_endian: bool = Field(False, description="Byte order assumed for raw PCM input.")
    output_format: str = Field("csv", description="Default format for saved time series ('csv', 'json', 'npz').")

    @field_validator('output_format')
    @classmethod
    def check_output_format(cls, value: str) -> str:
        allowed = {"csv", "json", "npz"}
        lower_value = value.lower().lstrip(".")
        if lower_value not in allowed:
            raise ValueError(f"Invalid output format '{value}'. Must be one of {allowed}")
        return lower_value


class PathsConfig(BaseModel):
    """Configuration for file paths used by melcepstra."""
    output_dir: Path = Field(default=Path("./melcepstra_output"), description="Default directory for saving results.")
    log_directory: Path = Field(default=Path("./melcepstra_logs"), description="Directory for log files.")

    @field_validator('output_dir', 'log_directory', mode='before')
    @classmethod
    def resolve_paths_before_validation(cls, value: Any) -> Path:
        """Resolves paths before Pydantic validates them."""
        if isinstance(value, (str, Path)):
            return _resolve_path(value)
        return value


class MFCCParams(BaseModel):
    """Parameters for the MFCC time-series pipeline."""
    frame_size: int = Field(256, gt=1, description="Samples per frame; must be a power of two.")
    hop_size: int = Field(100, gt=0, description="Samples between consecutive frame starts.")
    filter_bank_size: int = Field(26, gt=0, description="Number of triangular mel filters.")
    cepstral_coefficient_count: int = Field(13, gt=0, description="Coefficients per feature vector.")
    pre_emphasis_alpha: float = Field(0.95, ge=0.0, lt=1.0, description="Pre-emphasis coefficient.")
    fmin: float = Field(80.0, ge=0.0, description="Lower edge of the filter bank (Hz).")
    fmax: Optional[float] = Field(None, gt=0.0, description="Upper edge of the filter bank (Hz); Nyquist if unset.")
    power_threshold: float = Field(0.0, description="Frames whose log energy is below this are trimmed as silence at either end.")

    @field_validator('frame_size')
    @classmethod
    def check_frame_size(cls, value: int) -> int:
        if not _is_power_of_two(value):
            raise ValueError(f"frame_size must be a power of two, got {value}")
        return value

    @model_validator(mode='after')
    def check_consistency(self) -> 'MFCCParams':
        if self.hop_size > self.frame_size:
            raise ValueError(f"hop_size ({self.hop_size}) must not exceed frame_size ({self.frame_size})")
        if self.cepstral_coefficient_count > self.filter_bank_size:
            raise ValueError(f"cepstral_coefficient_count ({self.cepstral_coefficient_count}) must not exceed "
                             f"filter_bank_size ({self.filter_bank_size})")
        if self.fmax is not None and self.fmin >= self.fmax:
            raise ValueError(f"fmin ({self.fmin}) must be below fmax ({self.fmax})")
        return self

    def pipeline_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for `melcepstra.core.pipeline.extract_time_series`."""
        return self.model_dump()


class ParametersConfig(BaseModel):
    """Centralized parameters for reusable components."""
    mfcc: MFCCParams = Field(default_factory=MFCCParams)


class LoggingConfig(BaseModel):
    """Logging configuration settings."""
    log_file_enabled: bool = Field(False, description="Enable/disable persistent file logging.")
    log_filename_template: str = Field("melcepstra_run_{timestamp:%Y%m%d_%H%M%S}.log", description="Naming pattern for log files.")
    log_level_file: str = Field("DEBUG", description="Minimum level for file logs (DEBUG, INFO, WARNING, ERROR, CRITICAL).")
    log_format: str = Field("%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)", description="Format string for file log entries.")

    @field_validator('log_level_file')
    @classmethod
    def check_log_level(cls, value: str) -> str:
        """Validate log level strings."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            raise ValueError(f"Invalid log level '{value}'. Must be one of {allowed_levels}")
        return upper_value


class MelcepstraConfig(BaseModel):
    """Root configuration model for melcepstra."""
    model_config = ConfigDict(
        extra='ignore',
        validate_assignment=True
    )

    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    parameters: ParametersConfig = Field(default_factory=ParametersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
