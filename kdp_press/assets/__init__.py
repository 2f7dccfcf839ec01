"""Asset providers: the only boundary to image generation services"""

from kdp_press.assets.provider import (
    AssetProvider,
    CancellationToken,
    GeneratedAsset,
    Raster,
    RetryPolicy,
    generate_with_retry,
)
from kdp_press.assets.fake_provider import FakeAssetProvider
from kdp_press.assets.http_provider import HttpAssetProvider

__all__ = [
    "AssetProvider",
    "CancellationToken",
    "GeneratedAsset",
    "Raster",
    "RetryPolicy",
    "generate_with_retry",
    "FakeAssetProvider",
    "HttpAssetProvider",
]
