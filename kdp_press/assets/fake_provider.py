"""
Synthetic asset provider

Draws deterministic placeholder art with Pillow so the whole pipeline can run
without a generation service. Every raster is flagged synthetic; the pipeline
only accepts them when allow_synthetic is set, and labels the result.
"""

import hashlib
import random
from typing import Optional

from PIL import Image, ImageDraw

from kdp_press.assets.provider import AssetProvider, Raster
from kdp_press.config.sizes import PageSpec

PALETTE = [
    (231, 111, 81),
    (244, 162, 97),
    (233, 196, 106),
    (42, 157, 143),
    (38, 70, 83),
    (131, 56, 236),
]


class FakeAssetProvider(AssetProvider):
    name = "fake"

    def __init__(self, seed: int = 0, transparent: Optional[bool] = None):
        """
        Args:
            seed: Mixed into every prompt hash; same seed + prompt -> same pixels
            transparent: Force RGBA clipart (True) or RGB line art (False).
                None picks clipart for square, bleed-less specs.
        """
        self.seed = seed
        self.transparent = transparent

    def _rng(self, prompt: str, spec: PageSpec) -> random.Random:
        key = f"{self.seed}|{spec.pixel_width}x{spec.pixel_height}|{prompt}".encode("utf-8")
        return random.Random(int.from_bytes(hashlib.sha256(key).digest()[:8], "big"))

    def _wants_transparent(self, spec: PageSpec) -> bool:
        if self.transparent is not None:
            return self.transparent
        return spec.bleed_in == 0 and spec.pixel_width == spec.pixel_height

    def generate(self, prompt: str, spec: PageSpec) -> Raster:
        rng = self._rng(prompt, spec)
        if self._wants_transparent(spec):
            img = self._draw_clipart(rng, spec.pixel_width, spec.pixel_height)
        else:
            img = self._draw_line_art(rng, spec.pixel_width, spec.pixel_height)
        return Raster.from_image(img, provider=self.name, synthetic=True)

    @staticmethod
    def _draw_line_art(rng: random.Random, w: int, h: int) -> Image.Image:
        img = Image.new("RGB", (w, h), (255, 255, 255))
        d = ImageDraw.Draw(img)
        stroke = max(1, min(w, h) // 200)
        margin = min(w, h) // 10
        for _ in range(rng.randint(6, 14)):
            x0 = rng.randint(margin, max(margin, w - margin - 1))
            y0 = rng.randint(margin, max(margin, h - margin - 1))
            x1 = rng.randint(x0, max(x0, w - margin))
            y1 = rng.randint(y0, max(y0, h - margin))
            shape = rng.choice(("ellipse", "rectangle", "line"))
            if shape == "ellipse":
                d.ellipse([x0, y0, x1, y1], outline=(0, 0, 0), width=stroke)
            elif shape == "rectangle":
                d.rectangle([x0, y0, x1, y1], outline=(0, 0, 0), width=stroke)
            else:
                d.line([x0, y0, x1, y1], fill=(0, 0, 0), width=stroke)
        return img

    @staticmethod
    def _draw_clipart(rng: random.Random, w: int, h: int) -> Image.Image:
        img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        d = ImageDraw.Draw(img)
        inset = min(w, h) // 6
        color = rng.choice(PALETTE) + (255,)
        outline = max(1, min(w, h) // 100)
        if rng.random() < 0.5:
            d.ellipse([inset, inset, w - inset, h - inset], fill=color, outline=(0, 0, 0, 255), width=outline)
        else:
            d.rounded_rectangle(
                [inset, inset, w - inset, h - inset],
                radius=inset // 2,
                fill=color,
                outline=(0, 0, 0, 255),
                width=outline,
            )
        return img
