"""
Batch orchestrator

Runs many publication configs and returns one result per input, in input
order. A failing publication never stops its siblings.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from kdp_press.assets.provider import AssetProvider, CancellationToken
from kdp_press.config.settings import PipelineSettings
from kdp_press.errors import KdpPressError
from kdp_press.logging_config import get_logger
from kdp_press.pipeline.publication import PublicationBuilder, PublicationFailure, PublicationResult

logger = get_logger(__name__)


def _config_name(raw: Any, index: int) -> str:
    if isinstance(raw, dict) and raw.get("theme"):
        return str(raw["theme"])
    return getattr(raw, "name", None) or f"config #{index + 1}"


def _claim_output_dirs(configs: Sequence[Any], builder: PublicationBuilder) -> Dict[int, PublicationResult]:
    """
    Reject configs whose theme maps to a directory already claimed by an
    earlier config in the same batch. Only configs that pass the whole
    config stage claim a directory; the others are left to the publication
    itself so they are reported at its config stage.
    """
    rejected: Dict[int, PublicationResult] = {}
    owners: Dict[str, int] = {}
    for index, raw in enumerate(configs):
        try:
            slug = builder.prepare(raw).slug
        except KdpPressError:
            continue
        if slug in owners:
            name = _config_name(raw, index)
            reason = f"Output directory '{slug}' is already used by config #{owners[slug] + 1}"
            rejected[index] = PublicationResult(
                name=name,
                failure=PublicationFailure(name=name, stage="config", error_type="ConfigError", reason=reason),
            )
        else:
            owners[slug] = index
    return rejected


def run_batch(
    configs: Sequence[Any],
    provider: AssetProvider,
    settings: Optional[PipelineSettings] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> List[PublicationResult]:
    settings = settings or PipelineSettings()
    builder = PublicationBuilder(provider, settings)
    results: List[Optional[PublicationResult]] = [None] * len(configs)

    for index, result in _claim_output_dirs(configs, builder).items():
        logger.error(f"{result.name}: {result.failure.reason}")
        results[index] = result
    todo = [i for i in range(len(configs)) if results[i] is None]

    logger.info(
        f"batch: {len(todo)} publication(s), up to {settings.max_concurrent_publications} at a time"
    )

    if settings.max_concurrent_publications == 1:
        for i in todo:
            results[i] = builder.build(configs[i], cancel_token)
    else:
        with ThreadPoolExecutor(max_workers=settings.max_concurrent_publications) as pool:
            futures = {i: pool.submit(builder.build, configs[i], cancel_token) for i in todo}
            for i, future in futures.items():
                results[i] = future.result()

    ok = sum(1 for r in results if r.ok)
    logger.info(f"batch: {ok} succeeded, {len(results) - ok} failed")
    return results
