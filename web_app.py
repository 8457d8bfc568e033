"""
Flask web app for product QR codes: product page on scan, print sheets,
attachment downloads.
"""

import io
import logging
import os
from datetime import datetime

from flask import Flask, abort, jsonify, render_template, request, send_file, send_from_directory

import database
import storage
from settings_store import load_settings, scanner_patterns
from utils.qr_generator import qr_png_bytes
from utils.scanner import clean_code, no_match_message, resolve_product


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = Flask(__name__)

database.init_db()


def category_names():
    result = database.fetch_categories()
    if result.error:
        return {}
    return {category.id: category.name for category in result.data}


def generated_on():
    now = datetime.now()
    return f"{now.strftime('%d-%m-%Y')} om {now.strftime('%H:%M:%S')}"


# -----------------------------
# Main Route
# -----------------------------
@app.route("/")
def index():
    code = (request.args.get("code") or "").strip()
    result = database.fetch_products()
    if result.error:
        logger.error("Could not load products: %s", result.error)
        abort(503)
    products = result.data

    # If QR scanned (with ?code=)
    if code:
        settings = load_settings()
        cleaned = clean_code(
            code,
            char_map=settings.get("scanner_char_map"),
            patterns=scanner_patterns(settings),
        )
        product = resolve_product(code, products, cleaned=cleaned)
        if product is None:
            return render_template("product_not_found.html", message=no_match_message(cleaned, code)), 404

        return render_template(
            "product_detail.html",
            product=product,
            category=category_names().get(product.category_id, ""),
        )

    # If no code → show all products
    return render_template("products_list.html", products=products, categories=category_names())


@app.route("/qr/<code>.png")
def qr_image(code):
    label = request.args.get("label", "")
    png = qr_png_bytes(code, label=label, box_size=8)
    return send_file(io.BytesIO(png), mimetype="image/png", download_name=f"{code}.png")


@app.route("/print")
def print_all():
    result = database.fetch_products()
    if result.error:
        abort(503)
    products = [product for product in result.data if product.qrcode]
    return render_template(
        "qr_print.html",
        title="QR Codes - Alle Producten",
        products=products,
        generated_on=generated_on(),
        size=150,
    )


@app.route("/print/<int:product_id>")
def print_one(product_id):
    result = database.fetch_product(product_id)
    if result.error:
        abort(503)
    product = result.data
    if product is None or not product.qrcode:
        return render_template("product_not_found.html", message="Geen QR code gevonden voor dit product"), 404
    return render_template(
        "qr_print.html",
        title=f"QR Code - {product.name}",
        products=[product],
        generated_on=generated_on(),
        size=200,
    )


@app.route("/attachments/<path:filename>")
def attachments(filename):
    if storage.attachment_path(filename) is None:
        abort(404)
    return send_from_directory(os.path.abspath(storage.ATTACHMENT_DIR), filename, as_attachment=False)


@app.route("/health")
def health():
    return jsonify(ok=database.check_connection())


# -----------------------------
# Run Server
# -----------------------------
if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", load_settings().get("flask_port", 5000)))
    app.run(host=host, port=port, debug=False)
