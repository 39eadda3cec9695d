# pipeline/orchestrator.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Sequence

import numpy as np

from ..models.image import Image
from ..models.geometry import DisplayTransform, NormalizedRect, Point
from ..models.selection_state import IDLE, Dragging, SelectionState
from ..models.canonical_tensor import CanonicalTensor
from ..models.errors import DegenerateSelection, ModelFailure, PipelineError
from ..models.status import ERROR, LOADING, SUCCESS, Status
from ..services import coordinate_mapper
from ..services.image_service import ImageService
from ..services.selection_service import SelectionService
from ..services.cropping_service import CroppingService
from ..services.preprocessing_service import PreprocessingService
from ..services.result_render_service import ResultRenderService
from ..services.overlay_service import OverlayService

logger = logging.getLogger(__name__)

InferFn = Callable[[np.ndarray], Awaitable[Sequence[float]]]

DISPLAY = "display"
PREPROCESSED = "preprocessed"
RESULT = "result"


class PipelineContext:
    """
    Owns one loaded image and everything derived from it.

    Chains:
        selection committed → crop (full resolution) → preprocess → preprocessed surface
        inference requested → await infer(tensor) → render → result surface
    Every public method reports failures through `status` instead of raising.
    """

    def __init__(
        self,
        infer: InferFn | None = None,
        *,
        image_service: ImageService | None = None,
        selection_service: SelectionService | None = None,
        cropping_service: CroppingService | None = None,
        preprocessing_service: PreprocessingService | None = None,
        result_render_service: ResultRenderService | None = None,
        overlay_service: OverlayService | None = None,
    ):
        self.infer = infer
        self.image_service = image_service or ImageService()
        self.selection_service = selection_service or SelectionService()
        self.cropping_service = cropping_service or CroppingService()
        self.preprocessing_service = preprocessing_service or PreprocessingService()
        self.result_render_service = result_render_service or ResultRenderService()
        self.overlay_service = overlay_service or OverlayService()

        self.image: Optional[Image] = None
        self.container_width: Optional[float] = None
        self.display_size: Optional[tuple[int, int]] = None
        self.transform: Optional[DisplayTransform] = None
        self.selection: SelectionState = IDLE
        self.committed_rect: Optional[NormalizedRect] = None
        self.cropped: Optional[Image] = None
        self.preprocessed: Optional[Image] = None
        self.tensor: Optional[CanonicalTensor] = None
        self.result: Optional[Image] = None
        self.surfaces: Dict[str, Optional[np.ndarray]] = {DISPLAY: None, PREPROCESSED: None, RESULT: None}
        self.status = Status("Upload an image to get started", LOADING)
        self.inference_in_flight = False
        self._load_generation = 0
        # Bumped whenever derived state is discarded; late model output for an older epoch is dropped.
        self._derived_epoch = 0

    # ─── Status ──────────────────────────────────────────────────────
    def _report(self, message: str, kind: str = LOADING) -> None:
        self.status = Status(message, kind)
        if kind == ERROR:
            logger.warning(message)
        else:
            logger.info(message)

    def _report_error(self, prefix: str, err: PipelineError) -> None:
        if err.silent:
            logger.debug(f"{prefix}: {err}")
            return
        self._report(f"{prefix}: {err}", ERROR)

    # ─── Image loading ───────────────────────────────────────────────
    async def load_image(self, data: bytes, mime_type: str) -> bool:
        """
        Decode *data* and make it the current image.  A load that completes after a newer
        load has started is discarded.  Failures leave the current state untouched.
        """
        try:
            self.image_service.check_type(mime_type)
        except PipelineError as err:
            self._report(str(err), ERROR)
            return False

        self._load_generation += 1
        generation = self._load_generation
        self._report("Loading image...", LOADING)

        try:
            img = await asyncio.to_thread(self.image_service.decode, data, mime_type)
        except PipelineError as err:
            if generation == self._load_generation:
                self._report_error("Error loading image", err)
            return False

        if generation != self._load_generation:
            logger.info("Discarding image load superseded by a newer upload")
            return False

        self.image = img
        self._clear_derived()
        self._layout()
        self._report(f"Image ready ({img.width}x{img.height}) - Select area to crop", SUCCESS)
        return True

    def surface_ready(self, container_width: float) -> bool:
        """
        Layout signal from the host: size the display surface to *container_width*.
        The width is remembered and reused for later uploads.
        """
        self.container_width = container_width
        if self.image is None:
            return False
        self._layout()
        return True

    def set_display_width(self, display_width: int) -> bool:
        """Use an exact display width (aspect kept) instead of fitting a container."""
        if self.image is None or display_width < 1:
            return False
        display_height = max(1, int(display_width * self.image.height / self.image.width))
        self._set_display_size((int(display_width), display_height))
        return True

    def _layout(self) -> None:
        # Until the host signals layout, show the image at its own size.
        if self.container_width is None:
            size = (self.image.width, self.image.height)
        else:
            size = coordinate_mapper.fit_display(self.image.width, self.image.height, self.container_width)
        logger.info(f"Display surface {size[0]}x{size[1]} for {self.image.width}x{self.image.height} image")
        self._set_display_size(size)

    def _set_display_size(self, size: tuple[int, int]) -> None:
        if size != self.display_size:
            # Display-space overlay coordinates are meaningless at the new size; the crop is kept.
            self.selection = IDLE
            self.committed_rect = None
        self.display_size = size
        self.transform = coordinate_mapper.transform_for(self.image.width, self.image.height, *size)
        self._redraw()

    # ─── Selection ───────────────────────────────────────────────────
    def begin_selection(self, x: float, y: float) -> None:
        if self.image is None:
            return
        self.selection = self.selection_service.begin(self.selection, Point(x, y))

    def move_selection(self, x: float, y: float) -> None:
        if self.image is None or not isinstance(self.selection, Dragging):
            return
        self.selection = self.selection_service.move(self.selection, Point(x, y))
        self._redraw()

    def end_selection(self) -> bool:
        """Finish the gesture; on a non-degenerate selection run crop → preprocess."""
        if self.image is None or not isinstance(self.selection, Dragging):
            return False
        self.selection, rect = self.selection_service.end(self.selection)
        if rect is None:
            self._report_error("Selection ignored", DegenerateSelection("Selection is too small to crop"))
            return False
        self.committed_rect = rect
        self._redraw()
        return self._crop_and_preprocess(rect)

    def _crop_and_preprocess(self, rect: NormalizedRect) -> bool:
        source = coordinate_mapper.rect_to_source(rect, self.transform)
        clamped = self.cropping_service.clamp(source, self.image.width, self.image.height)
        logger.info(f"Display selection: {rect.x:.1f},{rect.y:.1f} {rect.w:.1f}x{rect.h:.1f}")
        try:
            cropped = self.cropping_service.crop(self.image, clamped)
        except PipelineError as err:
            self._report_error("Crop aborted", err)
            return False

        processed = self.preprocessing_service.process(cropped)
        self.cropped = cropped
        self.preprocessed = processed.display
        self.tensor = processed.tensor
        self.surfaces[PREPROCESSED] = processed.display.pixels
        self._report("Image cropped from full resolution and processed - Ready for inference", SUCCESS)
        return True

    # ─── Inference ───────────────────────────────────────────────────
    @property
    def inference_enabled(self) -> bool:
        return self.tensor is not None and not self.inference_in_flight

    async def run_inference(self) -> Optional[Image]:
        """
        Send the current tensor to the model and render its output.
        At most one call is in flight; extra calls return None without dispatching.
        """
        if self.infer is None:
            self._report("Model not loaded", ERROR)
            return None
        if not self.inference_enabled:
            logger.info("Inference trigger ignored: nothing to infer or a request is in flight")
            return None

        self.inference_in_flight = True
        self._report("Running inference...", LOADING)
        tensor = self.tensor
        epoch = self._derived_epoch
        try:
            try:
                output = await self.infer(tensor.values)
            except Exception as exc:
                raise ModelFailure(exc) from exc
            if epoch != self._derived_epoch:
                logger.info("Discarding model output for a crop that was reset or replaced")
                return None
            try:
                rendered = self.result_render_service.render(output)
            except (TypeError, ValueError) as exc:
                raise ModelFailure(exc) from exc
        except PipelineError as err:
            self._report_error("Inference failed", err)
            return None
        finally:
            self.inference_in_flight = False

        self.result = rendered
        self.surfaces[RESULT] = rendered.pixels
        self._report("Inference completed successfully!", SUCCESS)
        return rendered

    # ─── Reset ───────────────────────────────────────────────────────
    def reset(self) -> None:
        """Drop selection, crop and result; show the full original again."""
        self._clear_derived()
        if self.image is not None:
            self._redraw()
        self._report("Draw a selection box to crop", SUCCESS if self.image is not None else LOADING)

    def _clear_derived(self) -> None:
        self._derived_epoch += 1
        self.selection = IDLE
        self.committed_rect = None
        self.cropped = None
        self.preprocessed = None
        self.tensor = None
        self.result = None
        self.surfaces[PREPROCESSED] = None
        self.surfaces[RESULT] = None

    # ─── Rendering ───────────────────────────────────────────────────
    def current_rect(self) -> Optional[NormalizedRect]:
        if isinstance(self.selection, Dragging):
            return self.selection.rect.normalized()
        return self.committed_rect

    def _redraw(self) -> None:
        if self.image is None or self.display_size is None:
            return
        self.surfaces[DISPLAY] = self.overlay_service.render(
            self.image, self.display_size, self.current_rect(), self.transform
        )
