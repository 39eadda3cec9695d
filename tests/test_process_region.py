import numpy as np

from cropinfer.cli.process_region import main
from cropinfer.models.canonical_tensor import SIDE
from tests.conftest import png_bytes, gradient_pixels


def test_writes_preprocessed_and_tensor(tmp_path):
    src = tmp_path / "photo.png"
    src.write_bytes(png_bytes(gradient_pixels(1000, 500)))
    out = tmp_path / "out"

    code = main([str(src), "--box", "100", "50", "200", "100", "--display-width", "500",
                 "--out-dir", str(out)])

    assert code == 0
    assert (out / "preprocessed.png").is_file()
    tensor = np.load(out / "tensor.npy")
    assert tensor.shape == (SIDE * SIDE,)
    assert not (out / "result.png").exists()


def test_degenerate_box_fails(tmp_path):
    src = tmp_path / "photo.png"
    src.write_bytes(png_bytes(gradient_pixels(100, 100)))
    assert main([str(src), "--box", "0", "0", "3", "50", "--out-dir", str(tmp_path / "out")]) == 1


def test_non_image_file_fails(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("hello")
    assert main([str(src), "--box", "0", "0", "30", "50", "--out-dir", str(tmp_path / "out")]) == 1


def test_bad_model_path_fails_cleanly(tmp_path):
    src = tmp_path / "photo.png"
    src.write_bytes(png_bytes(gradient_pixels(100, 100)))
    code = main([str(src), "--box", "0", "0", "50", "50", "--model", str(tmp_path / "missing.pt"),
                 "--out-dir", str(tmp_path / "out")])
    assert code == 1
    assert not (tmp_path / "out").exists()
