"""
Adaptive image size negotiation.

Shrinks a source photo until its base64 JPEG payload fits the transport
budget. Each attempt resizes first and then recompresses; on overflow the
long edge shrinks by a fixed ratio and the quality drops by a fixed step,
floored at a minimum. The first attempt that fits wins.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from PIL import Image
from tenacity import Retrying, stop_after_attempt, retry_if_exception_type

from nomie.utils.image_converter import load_image, resize_to_long_edge, encode_jpeg_base64, to_data_uri
from .types import ImageAsset, EncodedImage, SizeLimitExceeded

logger = logging.getLogger(__name__)

# Keep base64 under the model (4MB) and request body (4.5MB) limits
MAX_BASE64_BYTES = math.floor(3.7 * 1024 * 1024)
START_LONG_EDGE = 1280
START_QUALITY = 0.7
MIN_QUALITY = 0.4
QUALITY_STEP = 0.1
SHRINK_RATIO = 0.8
MAX_ATTEMPTS = 5

# (image, long_edge, constrain_width, quality) -> (base64, width, height)
Encoder = Callable[[Image.Image, int, bool, float], Tuple[str, int, int]]


def default_encoder(img: Image.Image, long_edge: int, constrain_width: bool, quality: float) -> Tuple[str, int, int]:
    resized = resize_to_long_edge(img, long_edge, constrain_width)
    b64 = encode_jpeg_base64(resized, quality)
    return b64, resized.width, resized.height


class _OverBudget(Exception):
    def __init__(self, size: int):
        self.size = size
        super().__init__(size)


@dataclass
class _AttemptState:
    long_edge: int
    quality: float
    last_size: int = 0


class ImageSizeNegotiator:
    def __init__(
        self,
        max_base64_bytes: int = MAX_BASE64_BYTES,
        start_long_edge: int = START_LONG_EDGE,
        start_quality: float = START_QUALITY,
        min_quality: float = MIN_QUALITY,
        quality_step: float = QUALITY_STEP,
        shrink_ratio: float = SHRINK_RATIO,
        max_attempts: int = MAX_ATTEMPTS,
        encoder: Optional[Encoder] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 < shrink_ratio < 1:
            raise ValueError("shrink_ratio must be between 0 and 1")
        self.max_base64_bytes = max_base64_bytes
        self.start_long_edge = start_long_edge
        self.start_quality = start_quality
        self.min_quality = min_quality
        self.quality_step = quality_step
        self.shrink_ratio = shrink_ratio
        self.max_attempts = max_attempts
        self.encoder = encoder or default_encoder

    @classmethod
    def from_config(cls, image_cfg) -> "ImageSizeNegotiator":
        return cls(
            max_base64_bytes=image_cfg.max_base64_bytes,
            start_long_edge=image_cfg.start_long_edge,
            start_quality=image_cfg.start_quality,
            min_quality=image_cfg.min_quality,
            quality_step=image_cfg.quality_step,
            shrink_ratio=image_cfg.shrink_ratio,
            max_attempts=image_cfg.max_attempts,
        )

    def negotiate(self, asset: ImageAsset) -> EncodedImage:
        img = load_image(asset.source)
        width = asset.width or img.width
        height = asset.height or img.height

        # Never upscale past the original long edge
        state = _AttemptState(
            long_edge=min(max(width, height), self.start_long_edge),
            quality=self.start_quality,
        )
        constrain_width = width >= height

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception_type(_OverBudget),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return self._attempt(img, state, constrain_width, attempt.retry_state.attempt_number)
        except _OverBudget as e:
            raise SizeLimitExceeded(self.max_attempts, e.size, self.max_base64_bytes) from None

    def _attempt(self, img: Image.Image, state: _AttemptState, constrain_width: bool, attempt_number: int) -> EncodedImage:
        b64, out_w, out_h = self.encoder(img, state.long_edge, constrain_width, state.quality)
        size = len(b64)  # base64 chars are single bytes on the wire
        logger.debug(
            "image attempt %d: edge=%d quality=%.2f size=%d budget=%d",
            attempt_number, state.long_edge, state.quality, size, self.max_base64_bytes,
        )

        if size <= self.max_base64_bytes:
            return EncodedImage(
                data_uri=to_data_uri(b64, "image/jpeg"),
                width=out_w,
                height=out_h,
                encoded_byte_length=size,
            )

        # Tighten for the next pass: edge first, then quality with its floor
        state.last_size = size
        state.long_edge = max(1, math.floor(state.long_edge * self.shrink_ratio))
        state.quality = max(self.min_quality, round(state.quality - self.quality_step, 4))
        raise _OverBudget(size)
