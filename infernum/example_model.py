"""
EXAMPLE MODEL

A weight-free InferenceModel over VisionRequest, used by the demo server
and the test-suite. It describes the image instead of running a network:
size and mean RGB colour, followed by the prompt.
"""

import time

import numpy as np
from loguru import logger

from .errors import ModelError
from .model import InferenceModel
from .vision import VisionRequest, VisionResponse


class ImageStatsModel(InferenceModel):
    """
    Describes an image with simple pixel statistics.

    Args:
        delay_seconds: Artificial compute time added to every run
    """

    def __init__(self, delay_seconds: float = 0.0):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        self.delay_seconds = delay_seconds
        self.runs = 0

    def run(self, request: VisionRequest) -> VisionResponse:
        if request.image.size == 0:
            raise ModelError("image is empty")

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        self.runs += 1
        width, height = request.image_size
        mean = request.image.reshape(-1, 3).mean(axis=0)
        r, g, b = (int(round(c)) for c in np.asarray(mean))

        words = request.prompt.split()[: request.sample_len]
        prompt = " ".join(words)

        result = f"{width}x{height} image, mean color rgb({r}, {g}, {b})"
        if prompt:
            result = f"{prompt}: {result}"
        return VisionResponse(result=result)

    def close(self) -> None:
        logger.info(f"ImageStatsModel closed after {self.runs} run(s)")
