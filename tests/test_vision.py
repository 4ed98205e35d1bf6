"""Tests for vision requests, image loading and the example model."""

import os

import cv2
import numpy as np
import pytest

from infernum import ImageReadError, InferenceEngine, ModelError
from infernum.example_model import ImageStatsModel
from infernum.vision import ImageSize, VisionMetadata, VisionRequest, read_image

from conftest import poll_until


def _write_bgr(path, rgb):
    assert cv2.imwrite(str(path), cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
    return str(path)


class TestVisionRequest:

    def test_metadata_copies_prompt_and_size(self, rgb_image):
        request = VisionRequest(prompt="what is red?", image=rgb_image)

        metadata = request.metadata()

        assert metadata == VisionMetadata(prompt="what is red?", image_size=ImageSize(4, 2))
        assert not any(isinstance(v, np.ndarray) for v in (metadata.prompt, *metadata.image_size))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"prompt": None, "image": np.zeros((2, 2, 3), dtype=np.uint8)},
            {"prompt": "p", "image": np.zeros((2, 2), dtype=np.uint8)},
            {"prompt": "p", "image": "not an image"},
            {"prompt": "p", "image": np.zeros((2, 2, 3), dtype=np.uint8), "sample_len": 0},
        ],
    )
    def test_invalid_request_rejected(self, kwargs):
        with pytest.raises(ValueError):
            VisionRequest(**kwargs)


class TestReadImage:

    def test_png_is_rgb(self, tmp_path, rgb_image):
        path = _write_bgr(tmp_path / "frame.png", rgb_image)

        image = read_image(path)

        assert image.shape == (2, 4, 3)
        assert image.dtype == np.uint8
        np.testing.assert_array_equal(image, rgb_image)

    def test_jpeg_extension_accepted(self, tmp_path):
        rgb = np.full((8, 8, 3), 128, dtype=np.uint8)
        written = _write_bgr(tmp_path / "frame.jpg", rgb)
        path = tmp_path / "frame.JPEG"
        os.rename(written, path)

        image = read_image(str(path))

        assert image.shape == (8, 8, 3)

    def test_missing_extension(self, tmp_path):
        with pytest.raises(ImageReadError, match="Invalid file extension"):
            read_image(str(tmp_path / "frame"))

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(ImageReadError, match="Unsupported image format: bmp"):
            read_image(str(tmp_path / "frame.bmp"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageReadError, match="not found"):
            read_image(str(tmp_path / "absent.png"))

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not a png")

        with pytest.raises(ImageReadError, match="Failed to decode"):
            read_image(str(path))

    def test_image_read_error_is_value_error(self):
        assert issubclass(ImageReadError, ValueError)


class TestImageStatsModel:

    def test_describes_image(self, rgb_image):
        model = ImageStatsModel()

        response = model.run(VisionRequest(prompt="describe", image=rgb_image))

        assert response.result == "describe: 4x2 image, mean color rgb(128, 0, 0)"
        assert model.runs == 1

    def test_prompt_truncated_to_sample_len(self, rgb_image):
        response = ImageStatsModel().run(
            VisionRequest(prompt="one two three four", image=rgb_image, sample_len=2)
        )
        assert response.result.startswith("one two: ")

    def test_empty_image_fails(self):
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        with pytest.raises(ModelError):
            ImageStatsModel().run(VisionRequest(prompt="", image=empty))

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            ImageStatsModel(delay_seconds=-0.1)

    def test_runs_inside_engine(self, rgb_image):
        with InferenceEngine(ImageStatsModel()) as engine:
            engine.schedule(VisionRequest(prompt="", image=rgb_image))
            result = poll_until(engine, 1)[0]

        assert result.is_success
        assert result.response.result.result == "4x2 image, mean color rgb(128, 0, 0)"
        assert result.response.metadata.image_size == ImageSize(width=4, height=2)
