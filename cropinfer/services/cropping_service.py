import logging

from ..models.image import Image
from ..models.geometry import NormalizedRect, SourceRect
from ..models.errors import EmptyCrop

logger = logging.getLogger(__name__)


class CroppingService:

    @staticmethod
    def clamp(rect: NormalizedRect, source_width: int, source_height: int) -> SourceRect:
        """
        Clamp a source-space rect to the image.  The origin is kept inside the image and the
        size is cut so that x + w <= width and y + h <= height.
        """
        x = max(0.0, min(rect.x, source_width - 1))
        y = max(0.0, min(rect.y, source_height - 1))
        w = max(0.0, min(rect.w, source_width - x))
        h = max(0.0, min(rect.h, source_height - y))
        return SourceRect(x=x, y=y, w=w, h=h,
                          source_width=source_width, source_height=source_height)

    def crop(self, img: Image, source_rect: SourceRect) -> Image:
        """
        Copy the pixels under *source_rect* out of the full-resolution image.

        Raises:
            EmptyCrop: the rect resolves to less than one pixel in either dimension.
        """
        if (source_rect.source_width, source_rect.source_height) != (img.width, img.height):
            raise ValueError(
                f"Rect was clamped for {source_rect.source_width}x{source_rect.source_height}, "
                f"image is {img.width}x{img.height}"
            )

        box = source_rect.pixel_box()
        if box.is_empty:
            raise EmptyCrop(f"Crop resolves to {box.width}x{box.height} px")

        logger.info(
            f"Cropping from original {img.width}x{img.height} image: "
            f"{source_rect.x:.1f},{source_rect.y:.1f} {source_rect.w:.1f}x{source_rect.h:.1f} "
            f"-> {box.width}x{box.height}px block at ({box.left},{box.top})"
        )
        pixels = img.pixels[box.top:box.top + box.height, box.left:box.left + box.width].copy()
        return Image(pixels=pixels, path=img.path, mime_type=img.mime_type)
