from io import BytesIO
from pathlib import Path
from typing import Union
import logging

import cv2
import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from ..models.image import Image
from ..models.errors import DecodeFailure

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles byte/file I/O for Image entities.  Every decoded image is RGBA.
    """

    @staticmethod
    def decode(data: bytes, mime_type: str = None) -> Image:
        """Decode raw image bytes into an RGBA Image."""
        if not data:
            raise DecodeFailure("Image data is empty")
        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                pil_img.load()
                arr = np.array(pil_img.convert("RGBA"), dtype=np.uint8)
        except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, SyntaxError, ValueError) as err:
            raise DecodeFailure(f"Could not decode image: {err}") from err
        if arr.shape[0] < 1 or arr.shape[1] < 1:
            raise DecodeFailure(f"Decoded image has no pixels: {arr.shape}")
        return Image(pixels=arr, mime_type=mime_type)

    @classmethod
    def load(cls, path: Union[str, Path]) -> Image:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        img = cls.decode(path.read_bytes())
        return Image(pixels=img.pixels, path=path)

    @staticmethod
    def encode_png(pixels: np.ndarray) -> bytes:
        """Encode an RGBA (H, W, 4) buffer as PNG bytes."""
        ok, buf = cv2.imencode(".png", cv2.cvtColor(np.ascontiguousarray(pixels), cv2.COLOR_RGBA2BGRA))
        if not ok:
            raise RuntimeError("PNG encode failed")
        return buf.tobytes()

    @classmethod
    def save(cls, image: Image, path: Union[str, Path] = None) -> Path:
        target = Path(path) if path is not None else image.path
        if target is None:
            raise ValueError("Image has no path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(cls.encode_png(image.pixels))
        logger.debug(f"Saved {image.width}x{image.height} image to {target}")
        return target
