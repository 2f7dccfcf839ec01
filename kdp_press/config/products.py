"""
Product configuration models

Defines what a single publication request looks like: a coloring book or a
clipart bundle. Models are validated with pydantic; validation failures are
surfaced as ConfigError so callers only deal with one error type.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from kdp_press.errors import ConfigError

Difficulty = Literal["easy", "medium", "advanced", "mixed"]
AgeGroup = Literal["kids", "adults", "seniors", "all"]
Resolution = Literal["standard", "high", "ultra"]

# Square pixel size of a clipart element per resolution tier
RESOLUTIONS: Dict[str, int] = {
    "standard": 2000,
    "high": 4000,
    "ultra": 6000,
}


class ColoringBookConfig(BaseModel):
    """One coloring book request"""
    product: Literal["coloring_book"] = "coloring_book"
    theme: str = Field(..., min_length=1, description="Book theme, e.g. 'Ocean Animals'")
    style: str = Field(..., min_length=1, description="Illustration style, e.g. 'mandala'")
    difficulty: Difficulty = Field(default="medium", description="Line-art complexity")
    difficulty_sequence: Optional[List[Literal["easy", "medium", "advanced"]]] = Field(
        default=None,
        description="Explicit per-page difficulties; overrides seeded 'mixed' selection",
    )
    page_count: int = Field(default=30, description="Interior page count (including blank backs)")
    trim: str = Field(default="8.5x11", description="Trim size key")
    paper: str = Field(default="white", description="Paper stock used for spine width")
    age_group: Optional[AgeGroup] = Field(default=None, description="Target audience")
    include_back_pages: bool = Field(default=True, description="Blank back after every page (single-sided)")
    bleed_in: float = Field(default=0.125, description="Bleed in inches")
    dpi: int = Field(default=300, description="Raster resolution")
    reading_direction: Literal["ltr", "rtl"] = Field(default="ltr", description="Decides which panel is the front cover")
    seed: int = Field(default=0, description="Seed for 'mixed' difficulty selection")

    @field_validator("page_count")
    @classmethod
    def _positive_pages(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"page_count must be >= 1, got {v}")
        return v

    @model_validator(mode="after")
    def _check_back_pages(self):
        if self.include_back_pages and self.page_count % 2:
            raise ValueError(
                f"page_count must be even when include_back_pages is set, got {self.page_count}"
            )
        if self.difficulty_sequence is not None and len(self.difficulty_sequence) < self.asset_count:
            raise ValueError(
                f"difficulty_sequence has {len(self.difficulty_sequence)} entries, need {self.asset_count}"
            )
        return self

    @property
    def asset_count(self) -> int:
        """Number of illustrated pages to generate"""
        return self.page_count // 2 if self.include_back_pages else self.page_count

    @property
    def name(self) -> str:
        return f"{self.theme} ({self.product})"

    class Config:
        json_schema_extra = {
            "example": {
                "product": "coloring_book",
                "theme": "Ocean Animals",
                "style": "mandala",
                "difficulty": "mixed",
                "page_count": 60,
                "trim": "8.5x11",
                "paper": "white",
                "age_group": "adults",
                "include_back_pages": True,
            }
        }


class ClipartConfig(BaseModel):
    """One clipart bundle request"""
    product: Literal["clipart_bundle"] = "clipart_bundle"
    theme: str = Field(..., min_length=1, description="Bundle theme, e.g. 'Spring Flowers'")
    style: str = Field(..., min_length=1, description="Illustration style, e.g. 'watercolor'")
    count: int = Field(default=20, description="Number of base elements")
    color_scheme: List[str] = Field(default_factory=list, description="Hex colors used for prompts and variations")
    include_variations: bool = Field(default=False, description="Add up to 3 tinted variations per element")
    resolution: Resolution = Field(default="high", description="Element size tier")
    subjects: List[str] = Field(default_factory=list, description="Per-element subjects, by index")
    dpi: int = Field(default=300, description="Nominal print resolution")

    @field_validator("count")
    @classmethod
    def _positive_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"count must be >= 1, got {v}")
        return v

    @field_validator("color_scheme")
    @classmethod
    def _hex_colors(cls, v: List[str]) -> List[str]:
        for color in v:
            raw = color.lstrip("#")
            if len(raw) != 6 or any(ch not in "0123456789abcdefABCDEF" for ch in raw):
                raise ValueError(f"Invalid hex color '{color}'")
        return v

    @property
    def pixels(self) -> int:
        return RESOLUTIONS[self.resolution]

    @property
    def asset_count(self) -> int:
        return self.count

    @property
    def name(self) -> str:
        return f"{self.theme} ({self.product})"


PublicationConfig = Union[ColoringBookConfig, ClipartConfig]

_MODELS = {
    "coloring_book": ColoringBookConfig,
    "clipart_bundle": ClipartConfig,
}


def parse_publication_config(data: Any) -> PublicationConfig:
    """Turn a dict (or an existing model) into a validated config."""
    if isinstance(data, (ColoringBookConfig, ClipartConfig)):
        return data
    if not isinstance(data, dict):
        raise ConfigError(f"Publication config must be a mapping, got {type(data).__name__}")

    product = data.get("product", "coloring_book")
    model = _MODELS.get(product)
    if model is None:
        raise ConfigError(f"Unknown product '{product}'. Use one of {list(_MODELS.keys())}")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {product} config: {e}") from e
