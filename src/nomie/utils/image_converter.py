from __future__ import annotations
from pathlib import Path
from typing import Tuple, Union
import base64
import binascii
import io
import re
from PIL import Image, ImageOps, UnidentifiedImageError

from ..pipeline.recipes.types import ImageDecodeError

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]*)*(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def parse_data_uri(data_uri: str) -> Tuple[str, bytes]:
    match = DATA_URI_RE.match(data_uri.strip())
    if not match or not match.group("b64"):
        raise ImageDecodeError("Image must be a base64 data URI")
    try:
        payload = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image payload: {e}") from e
    return match.group("mime") or "application/octet-stream", payload


def to_data_uri(b64: str, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{b64}"


def load_image(image_data: Union[str, Path, bytes, Image.Image]) -> Image.Image:
    """Decode to a PIL image with the EXIF orientation applied to the pixels."""
    if isinstance(image_data, Image.Image):
        return ImageOps.exif_transpose(image_data)

    if isinstance(image_data, str) and image_data.startswith("data:"):
        _, image_data = parse_data_uri(image_data)

    if isinstance(image_data, (str, Path)):
        path = Path(image_data)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {image_data}")
        try:
            with Image.open(path) as img:
                img.load()
                # camera photos are stored sensor-side up with an Orientation tag
                return ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image {path}: {e}") from e

    elif isinstance(image_data, bytes):
        try:
            img = Image.open(io.BytesIO(image_data))
            img.load()
            return ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image bytes: {e}") from e

    else:
        raise ValueError(f"Unsupported image data type: {type(image_data)}")


def resize_to_long_edge(img: Image.Image, long_edge: int, constrain_width: bool) -> Image.Image:
    width, height = img.size
    if constrain_width:
        new_w = long_edge
        new_h = max(1, round(height * long_edge / width))
    else:
        new_h = long_edge
        new_w = max(1, round(width * long_edge / height))
    if (new_w, new_h) == (width, height):
        return img.copy()
    return img.resize((new_w, new_h), Image.LANCZOS)


def encode_jpeg_base64(img: Image.Image, quality: float) -> str:
    """JPEG-compress at `quality` (0..1) and return the base64 text."""
    if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')

    buffer = io.BytesIO()
    img.save(buffer, format='JPEG', quality=int(round(quality * 100)), optimize=True)
    buffer.seek(0)
    return base64.b64encode(buffer.getvalue()).decode('utf-8')
