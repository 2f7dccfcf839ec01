"""
Error taxonomy for the publication pipeline.

Every failure a publication can hit maps onto one of these classes so the
batch orchestrator can report which stage failed and why.
"""

from typing import Optional


class KdpPressError(Exception):
    """Base class for all pipeline errors"""


class ConfigError(KdpPressError):
    """Invalid configuration (trim size, counts, paper type, ...)"""


class ProviderError(KdpPressError):
    """Asset provider failed to produce a raster"""


class RateLimitedError(ProviderError):
    """Provider asked us to slow down"""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    """Provider did not answer in time"""


class AssetGenerationError(KdpPressError):
    """A single asset could not be produced after all retries"""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class AssemblyError(KdpPressError):
    """Assets do not fit the page spec, or a document could not be built"""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class FontError(AssemblyError):
    """Font file missing or text not encodable in the chosen font"""


class FilesystemError(KdpPressError):
    """Write or rename failure"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(f"{message} ({path})" if path else message)
        self.path = path


class PublicationCancelled(KdpPressError):
    """Publication was cancelled before completion"""
