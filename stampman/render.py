"""
Stamp card rendering.

Two paths produce the card artwork for a stamp count:

- StampCardRenderer composites it on demand: the fully locked card is the base
  layer and the revealed card is pasted through one circular mask per earned
  stamp.
- sprite_url() maps the count to one of the pre-rendered images, for wallet
  providers that take a URL instead of bytes.
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import requests
from PIL import Image, ImageDraw, UnidentifiedImageError

from stampman.conf import stampman_settings
from stampman.exceptions import FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StampSlot:
    """Circular region of one stamp on the card (pixel coordinates)."""

    x: int
    y: int
    r: int

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        return (self.x - self.r, self.y - self.r, self.x + self.r, self.y + self.r)


@dataclass(frozen=True)
class StampSpriteSpec:
    """Static artwork configuration: slot geometry, source images and sprites."""

    slots: tuple[StampSlot, ...]
    locked_url: str
    revealed_url: str
    sprite_urls: tuple[str, ...]

    @property
    def max_slots(self) -> int:
        return len(self.slots)

    @classmethod
    def from_settings(cls) -> "StampSpriteSpec":
        return cls(
            slots=tuple(StampSlot(*slot) for slot in stampman_settings.STAMP_SLOTS),
            locked_url=stampman_settings.LOCKED_IMAGE_URL,
            revealed_url=stampman_settings.REVEALED_IMAGE_URL,
            sprite_urls=tuple(stampman_settings.SPRITE_URLS),
        )


def clamp_stamps(value, maximum: int) -> int:
    """Clamp a stamp count to [0, maximum]. Non-numeric input counts as 0."""
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        n = 0
    return max(0, min(maximum, n))


def sprite_url(stamps, spec: StampSpriteSpec | None = None) -> str:
    """Pre-rendered card image for a stamp count."""
    spec = spec or StampSpriteSpec.from_settings()
    return spec.sprite_urls[clamp_stamps(stamps, len(spec.sprite_urls) - 1)]


class StampCardRenderer:
    """Composites the stamp card for a given number of revealed stamps."""

    def __init__(self, spec: StampSpriteSpec | None = None, timeout: float | None = None):
        self.spec = spec or StampSpriteSpec.from_settings()
        self.timeout = timeout if timeout is not None else stampman_settings.HTTP_TIMEOUT

    def render(self, stamps) -> bytes:
        """Fetch the sources, composite and encode as PNG."""
        locked, revealed = self.fetch_sources()
        card = self.compose(stamps, locked, revealed)
        buffer = io.BytesIO()
        card.save(buffer, format="PNG")
        return buffer.getvalue()

    def fetch_sources(self) -> tuple[Image.Image, Image.Image]:
        """
        Fetch the locked and revealed images concurrently.

        Raises:
            FetchError: Either image is unreachable, not an image, or the two
                differ in size
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            locked_future = pool.submit(self._load, self.spec.locked_url)
            revealed_future = pool.submit(self._load, self.spec.revealed_url)
            locked = locked_future.result()
            revealed = revealed_future.result()

        if locked.size != revealed.size:
            raise FetchError(
                self.spec.revealed_url,
                f"size {revealed.size} does not match locked image {locked.size}",
            )
        return locked, revealed

    def compose(self, stamps, locked: Image.Image, revealed: Image.Image) -> Image.Image:
        """Draw ``locked`` and reveal the first N slots from ``revealed``."""
        count = clamp_stamps(stamps, self.spec.max_slots)
        card = locked.convert("RGBA")
        revealed = revealed.convert("RGBA")

        for slot in self.spec.slots[:count]:
            mask = Image.new("L", card.size, 0)
            ImageDraw.Draw(mask).ellipse(slot.bbox, fill=255)
            card.paste(revealed, (0, 0), mask)

        return card

    def _load(self, url: str) -> Image.Image:
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Stamp image fetch failed: %s (%s)", url, exc)
            raise FetchError(url, str(exc)) from exc

        if not response.ok:
            logger.error("Stamp image fetch failed: %s (HTTP %s)", url, response.status_code)
            raise FetchError(url, f"HTTP {response.status_code}")

        try:
            image = Image.open(io.BytesIO(response.content))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise FetchError(url, "not a decodable image") from exc
        return image
