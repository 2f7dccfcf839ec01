import threading

import pytest
from PIL import Image

from kdp_press.assets.provider import AssetProvider, CancellationToken, Raster, RetryPolicy, generate_with_retry
from kdp_press.errors import (
    AssetGenerationError,
    ProviderError,
    ProviderTimeoutError,
    PublicationCancelled,
    RateLimitedError,
)


class ScriptedProvider(AssetProvider):
    """Raises the scripted errors in order, then returns rasters."""

    name = "scripted"

    def __init__(self, errors=(), size=None):
        self.errors = list(errors)
        self.size = size
        self.calls = 0

    def generate(self, prompt, spec):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        w, h = self.size or spec.pixel_size
        return Raster.from_image(Image.new("RGB", (w, h), "white"), provider=self.name)


def recording_policy(**kwargs):
    delays = []
    return RetryPolicy(sleep=delays.append, **kwargs), delays


def test_success_without_retry(tiny_spec):
    provider = ScriptedProvider()
    policy, delays = recording_policy()
    raster = generate_with_retry(provider, "p", tiny_spec, policy)
    assert (raster.width, raster.height) == (25, 25)
    assert provider.calls == 1
    assert delays == []


def test_exponential_backoff(tiny_spec):
    provider = ScriptedProvider([ProviderError("down"), ProviderTimeoutError("slow")])
    policy, delays = recording_policy(max_attempts=3, base_delay=1.0, multiplier=2.0)
    generate_with_retry(provider, "p", tiny_spec, policy)
    assert provider.calls == 3
    assert delays == [1.0, 2.0]


def test_rate_limit_retry_after_is_honored_and_capped(tiny_spec):
    provider = ScriptedProvider([
        RateLimitedError("slow down", retry_after=5),
        RateLimitedError("slow down", retry_after=120),
    ])
    policy, delays = recording_policy(max_attempts=3, max_delay=30.0)
    generate_with_retry(provider, "p", tiny_spec, policy)
    assert delays == [5, 30.0]


def test_exhausted_retries(tiny_spec):
    last = ProviderError("still down")
    provider = ScriptedProvider([ProviderError("down"), ProviderError("down"), last])
    policy, delays = recording_policy(max_attempts=3)
    with pytest.raises(AssetGenerationError) as exc:
        generate_with_retry(provider, "p", tiny_spec, policy, index=4)
    assert exc.value.index == 4
    assert exc.value.__cause__ is last
    assert provider.calls == 3
    assert len(delays) == 2


def test_wrong_size_is_not_retried(tiny_spec):
    provider = ScriptedProvider(size=(30, 25))
    policy, _ = recording_policy()
    with pytest.raises(AssetGenerationError, match="30x25px"):
        generate_with_retry(provider, "p", tiny_spec, policy, index=0)
    assert provider.calls == 1


def test_cancelled_token_stops_before_request(tiny_spec):
    token = CancellationToken()
    token.cancel()
    provider = ScriptedProvider()
    with pytest.raises(PublicationCancelled):
        generate_with_retry(provider, "p", tiny_spec, RetryPolicy(), token)
    assert provider.calls == 0


def test_cancel_during_backoff(tiny_spec):
    token = CancellationToken()
    provider = ScriptedProvider([ProviderError("down")])
    policy = RetryPolicy(max_attempts=3, base_delay=10.0)
    threading.Timer(0.05, token.cancel).start()
    with pytest.raises(PublicationCancelled):
        generate_with_retry(provider, "p", tiny_spec, policy, token)
    assert provider.calls == 1


def test_child_token_follows_parent():
    parent = CancellationToken()
    child = CancellationToken(parent=parent)
    assert not child.cancelled
    assert child.wait(0.01) is False
    parent.cancel()
    assert child.cancelled
    assert child.wait(5.0) is True


def test_child_cancel_does_not_touch_parent():
    parent = CancellationToken()
    child = CancellationToken(parent=parent)
    child.cancel()
    assert child.cancelled
    assert not parent.cancelled
