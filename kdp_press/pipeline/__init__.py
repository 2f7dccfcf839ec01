"""Publication pipeline and batch orchestration"""

from kdp_press.pipeline.publication import (
    Publication,
    PublicationBuilder,
    PublicationFailure,
    PublicationResult,
    PublicationStatus,
    build_publication,
)
from kdp_press.pipeline.batch import run_batch

__all__ = [
    "Publication",
    "PublicationBuilder",
    "PublicationFailure",
    "PublicationResult",
    "PublicationStatus",
    "build_publication",
    "run_batch",
]
