import logging
import os
import re
import time

from database import DbResult


logger = logging.getLogger(__name__)

ATTACHMENT_DIR = os.getenv("ATTACHMENT_DIR", "attachments")
ATTACHMENT_URL_PREFIX = "/attachments/"
ALLOWED_ATTACHMENT_EXTS = {".pdf", ".png", ".jpg", ".jpeg", ".doc", ".docx", ".xlsx", ".txt"}


def safe_filename(text):
    cleaned = re.sub(r"[^a-zA-Z0-9_.-]+", "_", (text or "").strip())
    return cleaned.strip("_.") or "bestand"


def upload_attachment(product_id, file_name, data):
    """Store *data* as the attachment of a product and return its URL."""
    ext = os.path.splitext(file_name or "")[1].lower()
    if ext not in ALLOWED_ATTACHMENT_EXTS:
        return DbResult(None, f"Bestandstype {ext or '?'} wordt niet ondersteund")

    os.makedirs(ATTACHMENT_DIR, exist_ok=True)
    stored_name = safe_filename(f"product-{product_id}-{int(time.time() * 1000)}{ext}")
    path = os.path.join(ATTACHMENT_DIR, stored_name)
    try:
        with open(path, "wb") as file_obj:
            file_obj.write(data)
    except OSError as exc:
        logger.error("Could not store attachment %s: %s", path, exc)
        return DbResult(None, str(exc))

    return DbResult(f"{ATTACHMENT_URL_PREFIX}{stored_name}", None)


def attachment_path(stored_name):
    """Resolve a stored attachment, or ``None`` if it is not a plain file name."""
    if not stored_name or stored_name != os.path.basename(stored_name):
        return None
    return os.path.join(ATTACHMENT_DIR, stored_name)


def delete_attachment(url):
    if not url or not url.startswith(ATTACHMENT_URL_PREFIX):
        # Not one of ours.
        return DbResult(None, None)

    path = attachment_path(url[len(ATTACHMENT_URL_PREFIX):])
    if path is None:
        return DbResult(None, None)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning("Attachment %s was already gone", path)
    except OSError as exc:
        logger.error("Could not delete attachment %s: %s", path, exc)
        return DbResult(None, str(exc))
    return DbResult(None, None)
