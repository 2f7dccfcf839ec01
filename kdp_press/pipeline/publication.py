"""
Publication pipeline

Runs one coloring book or clipart bundle from configuration to catalog
record. Stages run strictly in order (config, assets, interior, cover,
preview, metadata, filesystem); only asset generation fans out to a worker
pool. Everything is written into a private staging directory that is renamed
to {output_root}/{theme} only after every stage succeeded.
"""

import json
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from kdp_press.assets.prompts import clipart_prompt, coloring_page_prompt, page_difficulties
from kdp_press.assets.provider import (
    AssetProvider,
    CancellationToken,
    GeneratedAsset,
    RetryPolicy,
    generate_with_retry,
)
from kdp_press.assets.variations import write_thumbnail, write_variations
from kdp_press.catalog.metadata import CatalogRecord, build_catalog_record, build_title
from kdp_press.config.paper import PaperTable, get_paper_table, load_paper_table
from kdp_press.config.products import ClipartConfig, ColoringBookConfig, PublicationConfig, parse_publication_config
from kdp_press.config.settings import PipelineSettings
from kdp_press.config.sizes import PageSpec, element_spec, resolve_page_spec
from kdp_press.cover.cover_renderer import compute_cover_layout, generate_cover, resolve_font
from kdp_press.cover.cover_validator import validate_cover
from kdp_press.errors import AssemblyError, AssetGenerationError, ConfigError, KdpPressError, PublicationCancelled
from kdp_press.logging_config import get_logger
from kdp_press.preview.compositor import book_preview_grid, bundle_preview_grid, write_preview
from kdp_press.renderer.pdf_renderer import assemble_interior
from kdp_press.utils.files import (
    discard_dir,
    make_staging_dir,
    page_filename,
    promote_staging_dir,
    sanitize_theme,
    write_bytes_atomic,
)
from kdp_press.validator.kdp_validator import validate_interior

logger = get_logger(__name__)

BOOK_PREVIEW_SAMPLES = 6


class PublicationStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Publication:
    """Assets of one publication; frozen once assembly begins."""
    config: PublicationConfig
    spec: PageSpec
    work_dir: Path
    status: PublicationStatus = PublicationStatus.PENDING
    _assets: List[GeneratedAsset] = field(default_factory=list)

    def add_asset(self, asset: GeneratedAsset) -> None:
        if self.status != PublicationStatus.GENERATING:
            raise AssemblyError(f"Cannot add assets while publication is {self.status.value}")
        self._assets.append(asset)

    def freeze(self) -> Tuple[GeneratedAsset, ...]:
        self.status = PublicationStatus.ASSEMBLING
        return tuple(self._assets)

    @property
    def assets(self) -> Tuple[GeneratedAsset, ...]:
        return tuple(self._assets)

    @property
    def synthetic(self) -> bool:
        return any(a.synthetic for a in self._assets)


@dataclass(frozen=True)
class PreparedConfig:
    """A config that passed every config-stage check."""
    config: PublicationConfig
    spec: PageSpec
    slug: str


@dataclass
class PublicationFailure:
    name: str
    stage: str
    error_type: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "stage": self.stage, "errorType": self.error_type, "reason": self.reason}


@dataclass
class PublicationResult:
    name: str
    record: Optional[CatalogRecord] = None
    failure: Optional[PublicationFailure] = None
    output_dir: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"name": self.name, "ok": True, "outputDir": self.output_dir, "record": self.record.to_dict()}
        return {"name": self.name, "ok": False, "failure": self.failure.to_dict()}


class PublicationBuilder:
    """Builds publications with one provider and one set of settings.

    The builder holds no per-publication state, so one instance may serve
    several threads.
    """

    def __init__(
        self,
        provider: AssetProvider,
        settings: Optional[PipelineSettings] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.provider = provider
        self.settings = settings or PipelineSettings()
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.settings.max_attempts,
            base_delay=self.settings.base_delay_s,
            max_delay=self.settings.max_delay_s,
        )
        self._paper_table: Optional[PaperTable] = None
        self._paper_table_error: Optional[ConfigError] = None
        try:
            self._paper_table = self._load_paper_table()
        except ConfigError as e:
            # only coloring books need thickness data; each one reports this itself
            logger.error(f"paper table unavailable: {e}")
            self._paper_table_error = e

    def _load_paper_table(self) -> PaperTable:
        if self.settings.paper_table_path:
            return load_paper_table(self.settings.paper_table_path)
        return get_paper_table(self.settings.paper_table_version)

    @property
    def paper_table(self) -> PaperTable:
        if self._paper_table is None:
            raise ConfigError(str(self._paper_table_error))
        return self._paper_table

    def prepare(self, raw_config: Any) -> PreparedConfig:
        """
        Run every config-stage check: parse, trim/bleed/dpi, paper, fonts and
        the output directory name. Raises ConfigError or FontError.
        """
        config = parse_publication_config(raw_config)
        slug = sanitize_theme(config.theme)
        if isinstance(config, ColoringBookConfig):
            spec = resolve_page_spec(config.trim, config.bleed_in, config.dpi)
            self.paper_table.thickness(config.paper)
            resolve_font(self.settings.title_font)
            resolve_font(self.settings.subtitle_font)
        else:
            spec = element_spec(config.pixels, config.dpi)
        return PreparedConfig(config=config, spec=spec, slug=slug)

    def build(self, config: Any, cancel_token: Optional[CancellationToken] = None) -> PublicationResult:
        """Run one publication; failures come back as a PublicationResult."""
        run = _PublicationRun(self, cancel_token)
        name = getattr(config, "name", None) or (config.get("theme") if isinstance(config, dict) else None) or "publication"
        try:
            record, out_dir = run.execute(config)
        except KdpPressError as e:
            logger.error(f"{name}: failed at stage '{run.stage}': {e}")
            return PublicationResult(name=run.name or name, failure=PublicationFailure(
                name=run.name or name, stage=run.stage, error_type=type(e).__name__, reason=str(e),
            ))
        except Exception as e:
            logger.exception(f"{name}: unexpected error at stage '{run.stage}'")
            return PublicationResult(name=run.name or name, failure=PublicationFailure(
                name=run.name or name, stage=run.stage, error_type=type(e).__name__, reason=str(e),
            ))
        return PublicationResult(name=run.name, record=record, output_dir=str(out_dir))


class _PublicationRun:
    """State of a single build() call."""

    def __init__(self, builder: PublicationBuilder, cancel_token: Optional[CancellationToken]):
        self.builder = builder
        self.settings = builder.settings
        self.token = CancellationToken(parent=cancel_token)
        self.stage = "config"
        self.name = ""
        self.publication: Optional[Publication] = None

    def execute(self, raw_config: Any):
        self.stage = "config"
        config = parse_publication_config(raw_config)
        self.name = config.name
        prepared = self.builder.prepare(config)
        spec, slug = prepared.spec, prepared.slug
        self.token.raise_if_cancelled()

        self.stage = "filesystem"
        output_root = Path(self.settings.output_root)
        final_dir = output_root / slug
        staging = make_staging_dir(output_root, slug)
        self.publication = Publication(config=config, spec=spec, work_dir=staging)
        try:
            if isinstance(config, ColoringBookConfig):
                record = self._coloring_book(config, spec, staging, final_dir)
            else:
                record = self._clipart_bundle(config, spec, staging, final_dir)

            self.stage = "filesystem"
            self.token.raise_if_cancelled()
            promote_staging_dir(staging, final_dir)
        except PublicationCancelled:
            self.publication.status = PublicationStatus.CANCELLED
            discard_dir(staging)
            raise
        except BaseException:
            self.publication.status = PublicationStatus.FAILED
            discard_dir(staging)
            raise

        self.publication.status = PublicationStatus.COMPLETE
        logger.info(f"{self.name}: complete -> {final_dir}")
        return record, final_dir

    # -- assets -------------------------------------------------------------

    def _generate_all(self, count: int, make_one) -> List[GeneratedAsset]:
        """Run make_one(index) for every index on the worker pool, in index order."""
        self.stage = "assets"
        self.publication.status = PublicationStatus.GENERATING
        results: List[Optional[GeneratedAsset]] = [None] * count
        workers = max(1, min(self.settings.max_workers, count or 1))

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(make_one, i): i for i in range(count)}
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in done if f.exception() is not None]
            if failed:
                self.token.cancel()
                for f in pending:
                    f.cancel()
                wait(pending)
                # cancellation wins over the errors it caused in other workers
                errors = [f.exception() for f in failed]
                cancelled = [e for e in errors if isinstance(e, PublicationCancelled)]
                first = min(failed, key=lambda f: futures[f])
                raise (cancelled[0] if cancelled else first.exception())
            for f in done:
                results[futures[f]] = f.result()

        for asset in results:
            self.publication.add_asset(asset)
        return results

    def _fetch(self, prompt: str, spec: PageSpec, index: int):
        self.token.raise_if_cancelled()
        raster = generate_with_retry(
            self.builder.provider, prompt, spec, self.builder.retry_policy, self.token, index=index,
        )
        if raster.synthetic and not self.settings.allow_synthetic:
            raise AssetGenerationError(
                f"asset {index}: {raster.provider} returned a synthetic raster and allow_synthetic is off",
                index=index,
            )
        self.token.raise_if_cancelled()
        return raster

    # -- coloring book ------------------------------------------------------

    def _coloring_book(self, config: ColoringBookConfig, spec: PageSpec, staging: Path, final_dir: Path) -> CatalogRecord:
        difficulties = page_difficulties(config)
        logger.info(
            f"{self.name}: generating {config.asset_count} page(s) at "
            f"{spec.pixel_width}x{spec.pixel_height}px ({config.trim}, {spec.dpi} DPI)"
        )

        def make_page(i: int) -> GeneratedAsset:
            prompt = coloring_page_prompt(config, i + 1, difficulties[i])
            raster = self._fetch(prompt, spec, i)
            name = page_filename(i + 1)
            write_bytes_atomic(staging / name, raster.data)
            logger.debug(f"{self.name}: page {i + 1}/{config.asset_count} done")
            return GeneratedAsset(
                id=f"page-{i + 1}",
                index=i,
                path=str(staging / name),
                width=raster.width,
                height=raster.height,
                prompt=prompt,
                tags={"theme": config.theme, "style": config.style, "difficulty": difficulties[i]},
                synthetic=raster.synthetic,
            )

        self._generate_all(config.asset_count, make_page)
        assets = self.publication.freeze()

        self.stage = "interior"
        self.token.raise_if_cancelled()
        expected_pages = len(assets) * (2 if config.include_back_pages else 1)
        title = build_title(config, config.page_count)
        pages = assemble_interior(
            assets, spec, staging / "interior.pdf", interleave_blanks=config.include_back_pages, title=title,
        )
        report = validate_interior(str(staging / "interior.pdf"), spec, expected_pages=expected_pages)
        for issue in report.issues:
            logger.debug(f"{self.name}: interior {issue.level}: {issue.message}")
        if not report.ok:
            errors = "; ".join(i.message for i in report.issues if i.level == "error")
            raise AssemblyError(f"Interior failed validation: {errors}")

        self.stage = "cover"
        self.token.raise_if_cancelled()
        layout = compute_cover_layout(
            spec,
            pages,
            config.paper,
            title=title,
            subtitle=f"{pages} Beautiful Pages to Color",
            paper_table=self.builder.paper_table,
            reading_direction=config.reading_direction,
            title_font=self.settings.title_font,
            subtitle_font=self.settings.subtitle_font,
        )
        generate_cover(layout, staging / "cover.pdf")
        cover_report = validate_cover(str(staging / "cover.pdf"), layout)
        if not cover_report.ok:
            errors = "; ".join(i.message for i in cover_report.issues if i.level == "error")
            raise AssemblyError(f"Cover failed validation: {errors}")

        self.stage = "preview"
        self.token.raise_if_cancelled()
        write_preview([a.path for a in assets[:BOOK_PREVIEW_SAMPLES]], staging / "preview.jpg", book_preview_grid())

        self.stage = "metadata"
        record = build_catalog_record(
            config,
            pages,
            files={
                "interior": str(final_dir / "interior.pdf"),
                "cover": str(final_dir / "cover.pdf"),
                "preview": str(final_dir / "preview.jpg"),
            },
            synthetic=self.publication.synthetic,
            extra={
                "spineWidthIn": round(layout.spine_in, 4),
                "paperTable": layout.paper_table_version,
                "trim": config.trim,
            },
        )
        write_bytes_atomic(staging / "catalog.json", json.dumps(record.to_dict(), indent=2).encode("utf-8"))
        return record

    # -- clipart bundle -----------------------------------------------------

    def _clipart_bundle(self, config: ClipartConfig, spec: PageSpec, staging: Path, final_dir: Path) -> CatalogRecord:
        with_variations = config.include_variations and len(config.color_scheme) > 1
        logger.info(f"{self.name}: generating {config.count} element(s) at {config.pixels}px")

        def make_element(i: int) -> GeneratedAsset:
            prompt = clipart_prompt(config, i)
            raster = self._fetch(prompt, spec, i)
            path = staging / page_filename(i + 1, prefix="clipart")
            write_bytes_atomic(path, raster.data)
            thumb = write_thumbnail(path, staging / page_filename(i + 1, prefix="thumb"))
            asset = GeneratedAsset(
                id=f"element-{i + 1}",
                index=i,
                path=str(path),
                width=raster.width,
                height=raster.height,
                prompt=prompt,
                tags={"theme": config.theme, "style": config.style, "difficulty": ""},
                thumbnail=str(thumb),
                synthetic=raster.synthetic,
            )
            if with_variations:
                for k, var_path in enumerate(write_variations(path, config.color_scheme, staging, i + 1), start=1):
                    asset.variations.append(GeneratedAsset(
                        id=f"element-{i + 1}-var{k}",
                        index=i,
                        path=str(var_path),
                        width=raster.width,
                        height=raster.height,
                        prompt=prompt,
                        tags=dict(asset.tags),
                        synthetic=raster.synthetic,
                    ))
            return asset

        self._generate_all(config.count, make_element)
        elements = self.publication.freeze()
        unit_count = len(elements) + sum(len(e.variations) for e in elements)

        self.stage = "preview"
        self.token.raise_if_cancelled()
        grid = bundle_preview_grid(len(elements))
        write_preview([e.path for e in elements[:grid.capacity]], staging / "preview.jpg", grid)

        self.stage = "metadata"
        record = build_catalog_record(
            config,
            unit_count,
            files={"preview": str(final_dir / "preview.jpg")},
            synthetic=self.publication.synthetic,
            extra={
                "elements": [Path(e.path).name for e in elements],
                "variations": [Path(v.path).name for e in elements for v in e.variations],
                "resolution": config.resolution,
                "licenseType": "commercial",
            },
        )
        write_bytes_atomic(staging / "catalog.json", json.dumps(record.to_dict(), indent=2).encode("utf-8"))
        return record


def build_publication(
    config: Any,
    provider: AssetProvider,
    settings: Optional[PipelineSettings] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PublicationResult:
    return PublicationBuilder(provider, settings).build(config, cancel_token)
