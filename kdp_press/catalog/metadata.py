"""
Catalog metadata

Title, description, tags and price for a finished publication, derived only
from its configuration and final unit count. No free-text generation.
"""

from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from kdp_press.config.products import ClipartConfig, ColoringBookConfig, PublicationConfig
from kdp_press.config.sizes import LARGE_TRIMS
from kdp_press.errors import ConfigError

MAX_TAGS = 13

AGE_SUFFIX = {
    "kids": " for Kids",
    "adults": " for Adults",
    "seniors": " for Seniors",
}

PRODUCT_NAMES = {
    "coloring_book": "Coloring Book",
    "clipart_bundle": "Clipart Bundle",
}


def capitalize_words(text: str) -> str:
    """Upper-case the first letter of every word, keep the rest as written."""
    return " ".join(w[:1].upper() + w[1:] for w in text.split())


@dataclass(frozen=True)
class PriceModel:
    """
    base_price_for(count) * multiplier[tier], rounded half-up to cents.

    count_tiers: (min_count, base_price) pairs; the highest min_count <= count
    applies. per_unit is added on top for every unit. tier_order lists the
    size/resolution tiers from cheapest to dearest (defaults to the order of
    multipliers). Prices may not fall as either the count or the tier grows.
    """
    count_tiers: Tuple[Tuple[int, float], ...]
    multipliers: Dict[str, float]
    per_unit: float = 0.0
    tier_order: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.count_tiers:
            raise ConfigError("Price model needs at least one count tier")
        if self.per_unit < 0:
            raise ConfigError(f"per_unit must be >= 0, got {self.per_unit}")
        prices = [price for _, price in sorted(self.count_tiers)]
        for lower, higher in zip(prices, prices[1:]):
            if higher < lower:
                raise ConfigError(f"Count tier prices must not decrease: {lower} is followed by {higher}")

        if not self.tier_order:
            object.__setattr__(self, "tier_order", tuple(self.multipliers))
        if sorted(self.tier_order) != sorted(self.multipliers):
            raise ConfigError(f"tier_order {list(self.tier_order)} must name every multiplier exactly once")
        if any(m <= 0 for m in self.multipliers.values()):
            raise ConfigError("Tier multipliers must be positive")
        for low, high in zip(self.tier_order, self.tier_order[1:]):
            if self.multipliers[high] < self.multipliers[low]:
                raise ConfigError(
                    f"Tier '{high}' ({self.multipliers[high]}) is priced below '{low}' ({self.multipliers[low]})"
                )

    def base_price_for(self, count: int) -> Decimal:
        base = None
        for min_count, price in sorted(self.count_tiers):
            if count >= min_count:
                base = price
        if base is None:
            base = sorted(self.count_tiers)[0][1]
        return Decimal(str(base)) + Decimal(str(self.per_unit)) * count

    def price(self, count: int, tier: str) -> float:
        if count < 0:
            raise ConfigError(f"Unit count must be >= 0, got {count}")
        if tier not in self.multipliers:
            raise ConfigError(f"Unknown price tier '{tier}'. Use one of {list(self.multipliers.keys())}")
        raw = self.base_price_for(count) * Decimal(str(self.multipliers[tier]))
        return float(raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


BOOK_PRICES = PriceModel(
    count_tiers=((0, 6.99), (50, 9.99), (100, 14.99)),
    multipliers={"standard": 1.0, "large": 1.2},
    tier_order=("standard", "large"),
)

BUNDLE_PRICES = PriceModel(
    count_tiers=((0, 4.99),),
    multipliers={"standard": 1.0, "high": 1.3, "ultra": 1.5},
    per_unit=0.30,
    tier_order=("standard", "high", "ultra"),
)


def size_tier(trim_key: str) -> str:
    return "large" if trim_key in LARGE_TRIMS else "standard"


def build_title(config: PublicationConfig, unit_count: int) -> str:
    style = capitalize_words(config.style)
    theme = capitalize_words(config.theme)
    product = PRODUCT_NAMES[config.product]
    if isinstance(config, ColoringBookConfig):
        suffix = AGE_SUFFIX.get(config.age_group or "", "")
    else:
        suffix = f" - {unit_count} PNG Elements - Commercial Use"
    return f"{style} {theme} {product}{suffix}"


def _dedupe(tags: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for tag in tags:
        tag = " ".join(tag.lower().split())
        if tag and tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


def build_tags(config: PublicationConfig) -> List[str]:
    style = config.style.lower()
    theme = config.theme.lower()
    if isinstance(config, ColoringBookConfig):
        base = ["coloring book", "adult coloring book", "coloring pages", "stress relief", "mindfulness"]
        styles = [f"{style} coloring", f"{style} designs"]
        themes = [f"{theme} coloring book", theme]
        if config.age_group == "kids":
            use = ["kids coloring book", "children activity"]
        else:
            use = ["adult coloring", "relaxation"]
    else:
        base = [
            "clipart", "png clipart", "transparent png", "digital download",
            "instant download", "commercial use", "clipart bundle",
        ]
        styles = [f"{style} clipart", f"{style} art"]
        themes = [f"{theme} clipart", theme, f"{theme} png"]
        use = ["scrapbooking", "crafting", "diy"]
    return _dedupe(base + styles + themes + use)[:MAX_TAGS]


def _book_description(config: ColoringBookConfig) -> str:
    if config.difficulty == "mixed" or config.difficulty_sequence:
        difficulty = "Mixed difficulty levels"
    else:
        difficulty = f"{config.difficulty.capitalize()} difficulty"
    lines = [
        f"{config.theme.upper()} COLORING BOOK - {config.page_count} PAGES",
        "",
        f"Relax and unleash your creativity with this {config.style} coloring book!",
        "",
        "FEATURES:",
        f"- {config.asset_count} unique coloring pages",
        f"- {config.style} style illustrations",
        f"- {difficulty}",
    ]
    if config.include_back_pages:
        lines.append("- Single-sided pages to prevent bleed-through")
    lines += [
        f"- {config.trim} size",
        "",
        "PERFECT FOR:",
        "- Relaxation and stress relief",
        "- Mindfulness practice",
        "- Gifts for loved ones",
    ]
    if config.age_group == "kids":
        lines.append("- Developing fine motor skills")
    lines += [
        "",
        "SPECIFICATIONS:",
        f"- Size: {config.trim} inches",
        f"- Pages: {config.page_count}",
        "- Perfect for colored pencils, markers, gel pens, and crayons",
    ]
    return "\n".join(lines)


def _bundle_description(config: ClipartConfig, unit_count: int) -> str:
    lines = [
        f"{config.style.upper()} {config.theme.upper()} CLIPART BUNDLE",
        "",
        "WHAT'S INCLUDED:",
        f"- {unit_count} high-quality PNG files",
        "- Transparent backgrounds",
        f"- {config.pixels}x{config.pixels}px ({config.dpi} DPI)",
    ]
    if config.include_variations and len(config.color_scheme) > 1:
        lines.append("- Multiple color variations included")
    lines += [
        "",
        "COMMERCIAL LICENSE:",
        "- Use in unlimited personal and commercial projects",
        "- Cannot resell or redistribute as digital files",
        "",
        "INSTANT DOWNLOAD: no physical items will be shipped.",
    ]
    return "\n".join(lines)


def build_description(config: PublicationConfig, unit_count: int) -> str:
    if isinstance(config, ColoringBookConfig):
        return _book_description(config)
    return _bundle_description(config, unit_count)


def build_price(config: PublicationConfig, unit_count: int) -> float:
    if isinstance(config, ColoringBookConfig):
        return BOOK_PRICES.price(unit_count, size_tier(config.trim))
    return BUNDLE_PRICES.price(unit_count, config.resolution)


@dataclass
class CatalogRecord:
    title: str
    description: str
    tags: List[str]
    price: float
    files: Dict[str, Optional[str]]
    unit_count: int
    product_type: str
    synthetic: bool = False
    extra: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        return {
            "title": data["title"],
            "description": data["description"],
            "tags": data["tags"],
            "price": data["price"],
            "files": data["files"],
            "unitCount": data["unit_count"],
            "productType": data["product_type"],
            "synthetic": data["synthetic"],
            **data["extra"],
        }


def build_catalog_record(
    config: PublicationConfig,
    unit_count: int,
    files: Dict[str, Optional[str]],
    synthetic: bool = False,
    extra: Optional[Dict[str, object]] = None,
) -> CatalogRecord:
    """
    unit_count is pages for books and elements (variations included) for
    bundles; it drives both the price and the bundle title.
    """
    return CatalogRecord(
        title=build_title(config, unit_count),
        description=build_description(config, unit_count),
        tags=build_tags(config),
        price=build_price(config, unit_count),
        files={
            "interior": files.get("interior"),
            "cover": files.get("cover"),
            "preview": files.get("preview"),
        },
        unit_count=unit_count,
        product_type=config.product,
        synthetic=synthetic,
        extra=dict(extra or {}),
    )
