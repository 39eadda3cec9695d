from pathlib import Path
from typing import Union
import base64
import logging

from ..models.image import Image
from ..models.errors import InvalidFileType
from ..repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)


class ImageService:
    """I/O helpers.  No geometry, no resampling."""
    def __init__(self):
        self.image_repository = ImageRepository()

    @staticmethod
    def is_image_type(mime_type: str | None) -> bool:
        return bool(mime_type) and mime_type.lower().startswith("image/")

    def check_type(self, mime_type: str | None) -> None:
        if not self.is_image_type(mime_type):
            raise InvalidFileType(f"Please select a valid image file (got {mime_type or 'unknown type'})")

    def decode(self, data: bytes, mime_type: str) -> Image:
        """
        Validate the declared type, then decode the bytes.

        Raises:
            InvalidFileType: mime_type is not image/*
            DecodeFailure: bytes are corrupt or in an unsupported format
        """
        self.check_type(mime_type)
        img = self.image_repository.decode(data, mime_type)
        logger.info(f"Decoded {mime_type} image: {img.width}x{img.height}")
        return img

    def load(self, path: Union[str, Path]) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def save(self, image: Image, path: Union[str, Path] = None) -> Path:
        return self.image_repository.save(image, path)

    def to_png_bytes(self, image: Image) -> bytes:
        return self.image_repository.encode_png(image.pixels)

    def to_base64(self, image: Image) -> str:
        """Convert Image object to a PNG data URI for JSON responses."""
        encoded = base64.b64encode(self.to_png_bytes(image)).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
