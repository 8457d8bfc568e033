import io
import os

import qrcode
from PIL import Image, ImageDraw, ImageFont


def render_qr(data: str, label: str = "", box_size: int = 10) -> Image.Image:
    """Return a QR code image for *data*, with *label* printed underneath."""
    qr = qrcode.QRCode(
        version=1,
        box_size=box_size,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    qr_img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    if not label:
        return qr_img

    font = ImageFont.load_default()
    text = label.strip()
    draw = ImageDraw.Draw(qr_img)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_width = right - left
    text_height = bottom - top

    padding = 10
    extra_height = text_height + (padding * 2)
    canvas_width = max(qr_img.width, text_width + (padding * 2))
    canvas = Image.new("RGB", (canvas_width, qr_img.height + extra_height), "white")

    qr_x = (canvas_width - qr_img.width) // 2
    canvas.paste(qr_img, (qr_x, 0))

    draw = ImageDraw.Draw(canvas)
    text_x = (canvas_width - text_width) // 2
    text_y = qr_img.height + padding
    draw.text((text_x, text_y), text, fill="black", font=font)
    return canvas


def qr_png_bytes(data: str, label: str = "", box_size: int = 10) -> bytes:
    buffer = io.BytesIO()
    render_qr(data, label=label, box_size=box_size).save(buffer, format="PNG")
    return buffer.getvalue()


def generate_qr(data: str, filename: str, label: str = "", output_dir: str = "qr_codes") -> str:
    """Save the QR code for *data* as ``<output_dir>/<filename>.png``.

    The directory is created if needed. Returns the path of the PNG file.
    """
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, f"{filename}.png")
    render_qr(data, label=label).save(path)
    return path
