"""
Asset provider contract

A provider turns a prompt plus a PageSpec into one raster. The pipeline never
talks to a generation service directly; it goes through generate_with_retry,
which owns the retry/backoff policy at this boundary.
"""

import io
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from PIL import Image

from kdp_press.config.sizes import PageSpec
from kdp_press.errors import (
    AssetGenerationError,
    ProviderError,
    PublicationCancelled,
    RateLimitedError,
)
from kdp_press.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Raster:
    """Encoded image returned by a provider"""
    data: bytes
    width: int
    height: int
    provider: str
    synthetic: bool = False
    format: str = "PNG"

    @classmethod
    def from_image(cls, img: Image.Image, provider: str, synthetic: bool = False) -> "Raster":
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return cls(data=buf.getvalue(), width=img.width, height=img.height, provider=provider, synthetic=synthetic)

    def open(self) -> Image.Image:
        img = Image.open(io.BytesIO(self.data))
        img.load()
        return img


@dataclass
class GeneratedAsset:
    """One produced page or clipart element, stored on disk"""
    id: str
    index: int
    path: str
    width: int
    height: int
    prompt: str = ""
    tags: Dict[str, str] = field(default_factory=dict)
    variations: List["GeneratedAsset"] = field(default_factory=list)
    thumbnail: Optional[str] = None
    synthetic: bool = False


class AssetProvider(ABC):
    """Produce one raster for a prompt at the PageSpec pixel size."""

    name = "provider"

    @abstractmethod
    def generate(self, prompt: str, spec: PageSpec) -> Raster:
        """
        Args:
            prompt: Text prompt for the image
            spec: Target geometry; the raster must be spec.pixel_width x spec.pixel_height

        Raises:
            RateLimitedError, ProviderTimeoutError, ProviderError
        """


class CancellationToken:
    """
    Thread-safe flag checked before every asset request.

    A token created with a parent is also cancelled when the parent is, which
    lets a publication stop its own workers without touching the caller's token.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or (self._parent is not None and self._parent.cancelled)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PublicationCancelled("Publication was cancelled")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        deadline = time.monotonic() + seconds
        while not self.cancelled:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._event.wait(min(self.POLL_INTERVAL, remaining))
        return True


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    sleep: Optional[Callable[[float], None]] = None

    def delay_for(self, attempt: int, error: Exception) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            return min(max(error.retry_after, 0.0), self.max_delay)
        return min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)


def generate_with_retry(
    provider: AssetProvider,
    prompt: str,
    spec: PageSpec,
    policy: Optional[RetryPolicy] = None,
    cancel_token: Optional[CancellationToken] = None,
    index: Optional[int] = None,
) -> Raster:
    policy = policy or RetryPolicy()
    label = f"asset {index}" if index is not None else "asset"
    last_error: Optional[ProviderError] = None

    for attempt in range(1, policy.max_attempts + 1):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            raster = provider.generate(prompt, spec)
        except ProviderError as e:
            last_error = e
            if attempt == policy.max_attempts:
                break
            delay = policy.delay_for(attempt, e)
            logger.warning(
                f"{label}: {provider.name} failed ({type(e).__name__}: {e}); "
                f"retry {attempt}/{policy.max_attempts - 1} in {delay:.1f}s"
            )
            if policy.sleep is not None:
                policy.sleep(delay)
            elif cancel_token is not None:
                if cancel_token.wait(delay):
                    cancel_token.raise_if_cancelled()
            else:
                time.sleep(delay)
            continue

        if (raster.width, raster.height) != spec.pixel_size:
            raise AssetGenerationError(
                f"{label}: {provider.name} returned {raster.width}x{raster.height}px, "
                f"expected {spec.pixel_width}x{spec.pixel_height}px",
                index=index,
            )
        return raster

    raise AssetGenerationError(
        f"{label}: {provider.name} failed after {policy.max_attempts} attempt(s): {last_error}",
        index=index,
    ) from last_error
