import base64
import io

import pytest
import requests
from PIL import Image

from kdp_press.assets.http_provider import HttpAssetProvider
from kdp_press.errors import ProviderError, ProviderTimeoutError, RateLimitedError


def image_bytes(size, fmt="PNG"):
    buf = io.BytesIO()
    Image.new("RGB", size, "white").save(buf, format=fmt)
    return buf.getvalue()


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None, json_body=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self._json = json_body
        self.text = content.decode("latin-1") if content else ""

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_image_body(tiny_spec):
    session = FakeSession(FakeResponse(content=image_bytes((25, 25)), headers={"Content-Type": "image/png"}))
    provider = HttpAssetProvider(base_url="http://gen.local/", model="lines", api_key="k", session=session)
    raster = provider.generate("a whale", tiny_spec)

    assert (raster.width, raster.height) == (25, 25)
    assert raster.synthetic is False
    call = session.calls[0]
    assert call["url"] == "http://gen.local/generate"
    assert call["json"] == {"model": "lines", "prompt": "a whale", "width": 25, "height": 25, "dpi": 20}
    assert call["headers"]["Authorization"] == "Bearer k"


def test_json_base64_body(tiny_spec):
    payload = {"image": base64.b64encode(image_bytes((25, 25))).decode("ascii")}
    session = FakeSession(FakeResponse(headers={"Content-Type": "application/json"}, json_body=payload))
    raster = HttpAssetProvider(session=session, api_key="").generate("p", tiny_spec)
    assert raster.width == 25
    assert "Authorization" not in session.calls[0]["headers"]


def test_non_png_is_reencoded(tiny_spec):
    session = FakeSession(FakeResponse(content=image_bytes((25, 25), "JPEG"), headers={"Content-Type": "image/jpeg"}))
    raster = HttpAssetProvider(session=session).generate("p", tiny_spec)
    assert raster.data.startswith(b"\x89PNG")


def test_rate_limited(tiny_spec):
    session = FakeSession(FakeResponse(status_code=429, headers={"Retry-After": "7"}))
    with pytest.raises(RateLimitedError) as exc:
        HttpAssetProvider(session=session).generate("p", tiny_spec)
    assert exc.value.retry_after == 7.0


def test_rate_limited_without_usable_header(tiny_spec):
    session = FakeSession(FakeResponse(status_code=429, headers={"Retry-After": "soon"}))
    with pytest.raises(RateLimitedError) as exc:
        HttpAssetProvider(session=session).generate("p", tiny_spec)
    assert exc.value.retry_after is None


def test_server_error(tiny_spec):
    session = FakeSession(FakeResponse(status_code=500, content=b"overloaded"))
    with pytest.raises(ProviderError, match="HTTP 500"):
        HttpAssetProvider(session=session).generate("p", tiny_spec)


def test_timeout(tiny_spec):
    session = FakeSession(error=requests.Timeout("read timed out"))
    with pytest.raises(ProviderTimeoutError):
        HttpAssetProvider(session=session, timeout=3).generate("p", tiny_spec)


def test_connection_error(tiny_spec):
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(ProviderError) as exc:
        HttpAssetProvider(session=session).generate("p", tiny_spec)
    assert not isinstance(exc.value, ProviderTimeoutError)


def test_garbage_body(tiny_spec):
    session = FakeSession(FakeResponse(content=b"not an image", headers={"Content-Type": "image/png"}))
    with pytest.raises(ProviderError, match="undecodable"):
        HttpAssetProvider(session=session).generate("p", tiny_spec)


def test_api_key_from_env(monkeypatch):
    monkeypatch.setenv("KDP_PRESS_PROVIDER_API_KEY", "from-env")
    assert HttpAssetProvider(session=FakeSession())._headers()["Authorization"] == "Bearer from-env"
