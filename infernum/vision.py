"""
IMAGE + PROMPT REQUEST TYPES

Request/response types for vision-language models served by infernum,
plus image loading for the serving layer.

FRAME MEMORY RULES:
- VisionRequest owns its pixel buffer until the model consumes it
- VisionMetadata copies the prompt and image size only
- Metadata NEVER references the pixel buffer
"""

import os
from dataclasses import dataclass
from typing import NamedTuple

import cv2
import numpy as np

from .errors import ImageReadError
from .model import RequestMetadata

SUPPORTED_EXTENSIONS = ("jpg", "jpeg", "png")


class ImageSize(NamedTuple):
    width: int
    height: int


@dataclass(frozen=True)
class VisionMetadata:
    """Lightweight summary of a VisionRequest."""

    prompt: str
    image_size: ImageSize


@dataclass
class VisionRequest(RequestMetadata):
    """
    Single image + prompt inference request.

    image: RGB uint8 array of shape (height, width, 3)
    sample_len: Maximum number of tokens the model may generate
    """

    prompt: str
    image: np.ndarray
    sample_len: int = 50

    def __post_init__(self):
        """Validate request on construction."""
        if not isinstance(self.prompt, str):
            raise ValueError("prompt must be a string")

        if not isinstance(self.image, np.ndarray) or self.image.ndim != 3 or self.image.shape[2] != 3:
            raise ValueError("image must be a (height, width, 3) numpy array")

        if not isinstance(self.sample_len, int) or self.sample_len <= 0:
            raise ValueError("sample_len must be a positive integer")

    @property
    def image_size(self) -> ImageSize:
        height, width = self.image.shape[:2]
        return ImageSize(width=int(width), height=int(height))

    def metadata(self) -> VisionMetadata:
        return VisionMetadata(prompt=str(self.prompt), image_size=self.image_size)


@dataclass
class VisionResponse:
    result: str


def read_image(path: str) -> np.ndarray:
    """
    Read a JPEG or PNG image from disk as RGB.

    Args:
        path: Image file path; the format is chosen from the extension

    Returns:
        RGB uint8 array of shape (height, width, 3)

    Raises:
        ImageReadError: Missing/unsupported extension or unreadable file
    """
    extension = os.path.splitext(str(path))[1].lstrip(".").lower()
    if not extension:
        raise ImageReadError("Invalid file extension")

    if extension not in SUPPORTED_EXTENSIONS:
        raise ImageReadError(f"Unsupported image format: {extension}")

    if not os.path.isfile(path):
        raise ImageReadError(f"Image not found: {path}")

    bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if bgr is None:
        raise ImageReadError(f"Failed to decode image: {path}")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
