import os

from PIL import Image

from utils.qr_generator import generate_qr, qr_png_bytes, render_qr


def test_label_adds_caption_space():
    plain = render_qr("IMC001")
    labelled = render_qr("IMC001", label="Interflon Metal Clean")
    assert labelled.height > plain.height
    assert labelled.width >= plain.width


def test_png_bytes():
    assert qr_png_bytes("IMC001", label="Spray").startswith(b"\x89PNG")


def test_generate_qr_writes_file(tmp_path):
    path = generate_qr("IMC001", "imc001", label="Spray", output_dir=str(tmp_path / "qr"))
    assert path == os.path.join(str(tmp_path / "qr"), "imc001.png")
    with Image.open(path) as image:
        assert image.format == "PNG"
