import base64
import io
import os
from typing import Optional

import requests
from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError

from kdp_press.assets.provider import AssetProvider, Raster
from kdp_press.config.sizes import PageSpec
from kdp_press.errors import ProviderError, ProviderTimeoutError, RateLimitedError

load_dotenv()


class HttpAssetProvider(AssetProvider):
    """
    Client for an image generation endpoint speaking a small JSON protocol.

    POST {base_url}/generate with {"model", "prompt", "width", "height"}.
    The response is either an image body (Content-Type image/*) or JSON with a
    base64 "image" field.
    """

    name = "http"

    def __init__(
        self,
        base_url: str = "http://localhost:7860",
        model: str = "line-art",
        api_key: Optional[str] = None,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key if api_key is not None else os.getenv("KDP_PRESS_PROVIDER_API_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self):
        headers = {"Accept": "image/png, application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(self, prompt: str, spec: PageSpec) -> Raster:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "width": spec.pixel_width,
            "height": spec.pixel_height,
            "dpi": spec.dpi,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/generate",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ProviderTimeoutError(f"{self.base_url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ProviderError(f"Request to {self.base_url} failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_after = float(retry_after) if retry_after is not None else None
            except ValueError:
                retry_after = None
            raise RateLimitedError(f"{self.base_url} rate limited the request", retry_after=retry_after)
        if response.status_code >= 400:
            raise ProviderError(f"{self.base_url} returned HTTP {response.status_code}: {response.text[:200]}")

        content_type = response.headers.get("Content-Type", "")
        if content_type.startswith("image/"):
            data = response.content
        else:
            try:
                body = response.json()
                data = base64.b64decode(body["image"])
            except (ValueError, KeyError, TypeError) as e:
                raise ProviderError(f"Unexpected response from {self.base_url}: {e}") from e

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ProviderError(f"{self.base_url} returned undecodable image data") from e

        if img.format != "PNG":
            return Raster.from_image(img, provider=self.name)
        return Raster(data=data, width=img.width, height=img.height, provider=self.name)
