import numpy as np
import pytest

from cropinfer.models.canonical_tensor import SIDE
from cropinfer.models.image import Image
from cropinfer.services.preprocessing_service import PreprocessingService
from cropinfer.services.result_render_service import ResultRenderService


@pytest.fixture
def service():
    return PreprocessingService()


def solid(width, height, rgba):
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return Image(pixels=pixels)


@pytest.mark.parametrize("size", [(10, 10), (1000, 700), (3, 900), (256, 256)])
def test_output_shape_and_range(service, make_image, size):
    result = service.process(make_image(*size))
    assert result.display.pixels.shape == (SIDE, SIDE, 4)
    assert result.tensor.values.shape == (SIDE * SIDE,)
    assert result.tensor.values.min() >= 0.0
    assert result.tensor.values.max() <= 1.0


def test_black_crop_gives_zero_tensor(service):
    result = service.process(solid(10, 10, (0, 0, 0, 255)))
    assert len(result.tensor) == 65536
    assert not result.tensor.values.any()


def test_white_crop_gives_ones(service):
    result = service.process(solid(300, 300, (255, 255, 255, 255)))
    assert np.all(result.tensor.values == 1.0)


def test_luma_weights_and_rounding():
    pixels = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255], [10, 20, 30, 255]]],
                      dtype=np.uint8)
    luma = PreprocessingService.to_luma(pixels)
    # 76.245, 149.685, 29.07, 18.15
    assert luma.tolist() == [[76, 150, 29, 18]]


def test_luma_extremes():
    pixels = np.array([[[0, 0, 0, 255]]], dtype=np.uint8)
    assert PreprocessingService.to_luma(pixels).tolist() == [[0]]
    assert PreprocessingService.to_luma(np.full((1, 1, 4), 255, dtype=np.uint8)).tolist() == [[255]]


def test_display_and_tensor_agree(service, make_image):
    result = service.process(make_image(640, 480))
    flat = result.display.pixels.reshape(-1, 4)
    assert np.array_equal(flat[:, 0], flat[:, 1])
    assert np.array_equal(flat[:, 0], flat[:, 2])
    expected = flat[:, 0].astype(np.float32) / np.float32(255.0)
    assert np.array_equal(result.tensor.values, expected)


def test_alpha_is_carried_from_resampled_pixels(service):
    result = service.process(solid(512, 512, (40, 80, 120, 128)))
    assert np.all(result.display.pixels[..., 3] == 128)


def test_resample_is_deterministic(service, make_image):
    img = make_image(333, 517)
    first = service.process(img)
    second = service.process(img)
    assert np.array_equal(first.tensor.values, second.tensor.values)


def test_resample_is_not_nearest_neighbour(service):
    # A one-pixel checkerboard averages to mid-gray when shrunk; nearest-neighbour would keep 0/255.
    pixels = np.zeros((512, 512, 4), dtype=np.uint8)
    pixels[::2, ::2, :3] = 255
    pixels[1::2, 1::2, :3] = 255
    pixels[..., 3] = 255
    result = service.process(Image(pixels=pixels))
    assert np.allclose(result.tensor.values, 0.5, atol=0.01)


def test_tensor_is_read_only(service, make_image):
    result = service.process(make_image(20, 20))
    with pytest.raises(ValueError):
        result.tensor.values[0] = 1.0


def test_renderer_reproduces_preprocessed_display(service, make_image):
    result = service.process(make_image(900, 300))
    rendered = ResultRenderService().render(result.tensor)
    assert np.array_equal(rendered.pixels[..., :3], result.display.pixels[..., :3])
    assert np.all(rendered.pixels[..., 3] == 255)
