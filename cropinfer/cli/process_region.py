"""
One-shot run of the selection pipeline without a browser.

    cropinfer-process photo.jpg --box 100 50 200 100 --display-width 500 --out-dir out/

The box is given in display coordinates (two opposite corners); --display-width sets the
simulated display surface (defaults to the source width, i.e. scale 1).
"""
import argparse
import asyncio
import logging
import mimetypes
import os
import sys
from pathlib import Path

import numpy as np
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.inference_engine import InferenceEngine
from ..pipeline.orchestrator import PipelineContext
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crop a region, build the 256x256 tensor and optionally run a model.")
    parser.add_argument("image", type=Path, help="Path to the source image")
    parser.add_argument("--box", type=float, nargs=4, metavar=("X0", "Y0", "X1", "Y1"), required=True,
                        help="Selection corners in display coordinates")
    parser.add_argument("--display-width", type=int, default=None,
                        help="Width of the simulated display surface (default: source width)")
    parser.add_argument("--model", type=Path, default=os.getenv("MODEL_PATH") or None,
                        help="TorchScript model to run on the tensor (default: $MODEL_PATH)")
    parser.add_argument("--out-dir", type=Path, default=Path("out"))
    return parser


async def run(args: argparse.Namespace, image_service: ImageService | None = None) -> int:
    image_service = image_service or ImageService()
    infer = None
    if args.model:
        try:
            infer = InferenceEngine(args.model).infer_async
        except (OSError, RuntimeError, ValueError) as err:
            logger.error(f"Could not load model {args.model}: {err}")
            return 1
    ctx = PipelineContext(infer, image_service=image_service)

    mime_type = mimetypes.guess_type(args.image.name)[0] or "application/octet-stream"
    if not await ctx.load_image(args.image.read_bytes(), mime_type):
        logger.error(ctx.status.message)
        return 1

    if args.display_width:
        ctx.set_display_width(args.display_width)

    x0, y0, x1, y1 = args.box
    ctx.begin_selection(x0, y0)
    ctx.move_selection(x1, y1)
    if not ctx.end_selection():
        logger.error(f"No crop produced for box {args.box} (selection too small or outside the image)")
        return 1

    args.out_dir.mkdir(parents=True, exist_ok=True)
    image_service.save(ctx.preprocessed, args.out_dir / "preprocessed.png")
    np.save(args.out_dir / "tensor.npy", ctx.tensor.values)
    logger.info(f"Wrote preprocessed.png and tensor.npy to {args.out_dir}")

    if infer is not None:
        if await ctx.run_inference() is None:
            logger.error(ctx.status.message)
            return 1
        image_service.save(ctx.result, args.out_dir / "result.png")
        logger.info(f"Wrote result.png to {args.out_dir}")
    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
