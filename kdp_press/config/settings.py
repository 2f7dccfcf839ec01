import os
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from kdp_press.errors import ConfigError


class PipelineSettings(BaseModel):
    output_root: str = Field(default="outputs", description="Root directory for finished publications")
    max_workers: int = Field(default=4, ge=1, description="Concurrent asset requests within one publication")
    max_concurrent_publications: int = Field(default=1, ge=1, description="Publications built in parallel by a batch")
    max_attempts: int = Field(default=3, ge=1, description="Provider attempts per asset")
    base_delay_s: float = Field(default=1.0, ge=0, description="First retry delay")
    max_delay_s: float = Field(default=30.0, ge=0, description="Upper bound for any single retry delay")
    paper_table_version: Optional[str] = Field(default=None, description="Paper thickness table version")
    paper_table_path: Optional[str] = Field(default=None, description="JSON paper table overriding the built-in ones")
    allow_synthetic: bool = Field(default=False, description="Accept rasters from the fake provider")
    title_font: str = Field(default="Helvetica-Bold", description="Standard font name or path to a TTF")
    subtitle_font: str = Field(default="Helvetica", description="Standard font name or path to a TTF")


# env var -> settings field
ENV_VARS: Dict[str, str] = {
    "KDP_PRESS_OUTPUT_ROOT": "output_root",
    "KDP_PRESS_MAX_WORKERS": "max_workers",
    "KDP_PRESS_MAX_CONCURRENT_PUBLICATIONS": "max_concurrent_publications",
    "KDP_PRESS_MAX_ATTEMPTS": "max_attempts",
    "KDP_PRESS_BASE_DELAY_S": "base_delay_s",
    "KDP_PRESS_MAX_DELAY_S": "max_delay_s",
    "KDP_PRESS_PAPER_TABLE_VERSION": "paper_table_version",
    "KDP_PRESS_PAPER_TABLE_PATH": "paper_table_path",
    "KDP_PRESS_ALLOW_SYNTHETIC": "allow_synthetic",
    "KDP_PRESS_TITLE_FONT": "title_font",
    "KDP_PRESS_SUBTITLE_FONT": "subtitle_font",
}


def settings_from_env(environ=None, **overrides) -> PipelineSettings:
    """Build settings from KDP_PRESS_* variables; keyword overrides win."""
    environ = os.environ if environ is None else environ
    values = {}
    for var, field_name in ENV_VARS.items():
        if environ.get(var) not in (None, ""):
            values[field_name] = environ[var]
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return PipelineSettings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid pipeline settings: {e}") from e
