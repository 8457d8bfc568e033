"""Utility package for the product registration app.

QR image rendering, QR code string generation and scanner input cleanup.
"""

from .code_generator import generate_product_code
from .qr_generator import generate_qr, qr_png_bytes
from .scanner import clean_code, no_match_message, resolve_product

__all__ = [
    "clean_code",
    "generate_product_code",
    "generate_qr",
    "no_match_message",
    "qr_png_bytes",
    "resolve_product",
]
