# models/inference_engine.py
from __future__ import annotations
import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Union

import numpy as np
import torch
from dotenv import load_dotenv

from .canonical_tensor import SIDE

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class InferenceEngine:
    """
    Cached wrapper around a TorchScript model with a fixed (1, 1, SIDE, SIDE) input.

    • One instance per model file; repeated construction returns the cached engine.
    • Weights are frozen and the module is put in eval mode.
    • infer() takes and returns flat numpy vectors so callers never touch torch.
    """

    _instances: Dict[Path, "InferenceEngine"] = {}
    _lock = threading.RLock()

    # ───────────────────────── cached ctor
    def __new__(cls, model_path: Union[str, Path, None] = None, device: str | None = None):
        model_path = model_path or os.getenv("MODEL_PATH")
        if not model_path:
            raise ValueError("No model configured: pass model_path or set MODEL_PATH")
        key = Path(model_path).resolve()
        with cls._lock:
            if key not in cls._instances:
                instance = super().__new__(cls)
                instance._init(key, device or os.getenv("MODEL_DEVICE", "auto"))
                cls._instances[key] = instance
            return cls._instances[key]

    # ───────────────────────── actual init
    def _init(self, model_path: Path, device: str):
        if device == "auto":
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = device
        self.model_path = model_path

        self.model = torch.jit.load(str(model_path), map_location=self.device).eval()
        for p in self.model.parameters():
            p.requires_grad_(False)

        logger.info(f"Loaded TorchScript model {model_path.name} on {self.device}")

    # ───────────────────────── public API
    @torch.inference_mode()
    def infer(self, values: np.ndarray) -> np.ndarray:
        """
        values : flat float vector of SIDE*SIDE samples, row-major
        returns: flat float32 vector of whatever length the model produced
        """
        x = torch.as_tensor(np.asarray(values, dtype=np.float32).copy(), device=self.device)
        x = x.view(1, 1, SIDE, SIDE)
        out = self.model(x)
        return out.detach().float().cpu().numpy().reshape(-1)

    async def infer_async(self, values: np.ndarray) -> np.ndarray:
        """Run infer() off the event loop so the caller can await it."""
        return await asyncio.to_thread(self.infer, values)

    @classmethod
    def clear_cache(cls) -> None:
        with cls._lock:
            cls._instances.clear()
