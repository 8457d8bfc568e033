import logging
import re
import time
from dataclasses import dataclass

from charset_normalizer import from_bytes

import database
from auth import create_auth_user


logger = logging.getLogger(__name__)


USER_HEADER = ["Naam", "Email", "Wachtwoord", "Niveau", "Badge Code"]
PRODUCT_HEADER = ["Productnaam", "Categorie"]
LABEL_HEADER = ["Productnaam", "QR Code"]

USER_TEMPLATE_ROWS = [
    ["Jan Janssen", "jan.janssen@dematic.com", "wachtwoord123", "user", "BADGE001"],
    ["Marie Peeters", "marie.peeters@dematic.com", "veiligwachtwoord", "admin", "BADGE002"],
]

USERS_EXPORT_FILE = "gebruikers_export.csv"
USERS_TEMPLATE_FILE = "gebruikers_template.csv"
PRODUCTS_EXPORT_FILE = "producten.csv"
LABELS_EXPORT_FILE = "qr_codes.csv"

USER_IMPORT_FORMAT_TEXT = "Ongeldig bestandsformaat. Verwacht: Naam, Email, Wachtwoord, Niveau, Badge Code"
PRODUCT_IMPORT_FORMAT_TEXT = "Ongeldig CSV formaat: kolom A: Productnaam, kolom B: Categorie"

MIN_PASSWORD_LENGTH = 6


@dataclass
class ImportReport:
    success_count: int = 0
    error_count: int = 0
    message: str = ""
    is_error: bool = False


def clean_text(value):
    if value is None:
        return ""
    return str(value).strip()


# -----------------------------
# CSV codec
# -----------------------------
def escape_value(value):
    value = "" if value is None else str(value)
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def parse_line(line):
    """Split one CSV line into trimmed fields.

    Commas inside double quotes do not split, and ``""`` inside quotes is a
    literal quote. Quoted values spanning several lines are not supported.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def build_csv(rows):
    return "\n".join(",".join(escape_value(value) for value in row) for row in rows)


def decode_upload(raw):
    """Decode an uploaded CSV file to text with ``\\n`` line endings.

    UTF-8 (with or without BOM) is tried first; anything else goes through
    charset-normalizer, which covers the cp1252 files Excel writes.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        text = raw.decode("utf-8-sig")
    else:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            match = from_bytes(raw).best()
            if match is not None:
                logger.info("Decoded upload as %s", match.encoding)
                text = str(match)
            else:
                text = raw.decode("utf-8", errors="replace")
    return text.replace("\r\n", "\n").replace("\r", "\n")


# -----------------------------
# Exports
# -----------------------------
def user_email(name, domain="dematic.com"):
    local_part = re.sub(r"\s+", ".", name.lower())
    return f"{local_part}@{domain}"


def users_export_csv(users, email_domain="dematic.com"):
    # Passwords are never exported.
    rows = [USER_HEADER]
    for user in users:
        rows.append([user.name, user_email(user.name, email_domain), "", user.role, user.badge_code or ""])
    return build_csv(rows)


def users_template_csv():
    return build_csv([USER_HEADER] + USER_TEMPLATE_ROWS)


def products_export_csv(products, categories):
    names = {category.id: category.name for category in categories}
    rows = [PRODUCT_HEADER]
    for product in products:
        rows.append([product.name, names.get(product.category_id, "") if product.category_id else ""])
    return build_csv(rows)


def qr_codes_export_csv(products):
    rows = [LABEL_HEADER]
    rows.extend([product.name, product.qrcode] for product in products if product.qrcode)
    return build_csv(rows)


# -----------------------------
# Imports
# -----------------------------
def import_users(
    text,
    existing_users,
    delay=0.5,
    min_password_length=MIN_PASSWORD_LENGTH,
    progress=None,
    sleep=time.sleep,
):
    """Create sign-in accounts for every valid row of a user CSV.

    Existing names are checked against *existing_users* as it was when the
    import started. Rows are processed one by one with *delay* seconds between
    created users; nothing is rolled back when a later row fails.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return ImportReport(message="Bestand is leeg", is_error=True)

    header = parse_line(lines[0])
    if len(header) < 3:
        return ImportReport(message=USER_IMPORT_FORMAT_TEXT, is_error=True)

    existing_names = {user.name for user in existing_users}
    success_count = 0
    error_count = 0

    for line in lines[1:]:
        data = parse_line(line)
        if len(data) < 3:
            continue

        name, email, password = data[0], data[1], data[2]
        level = data[3] if len(data) > 3 and data[3] else "user"
        badge_code = data[4] if len(data) > 4 else ""

        if not name or not email or not password:
            logger.info("Skipping row with missing fields: %r", name)
            error_count += 1
            continue
        if len(password) < min_password_length:
            logger.info("Skipping %s: password too short", name)
            error_count += 1
            continue
        if name in existing_names:
            logger.info("Skipping %s: user already exists", name)
            error_count += 1
            continue

        if progress:
            progress(f"Bezig met aanmaken gebruiker: {name}...")

        result = create_auth_user(email, password, name, level)
        if result.error:
            logger.error("Could not create user %s: %s", name, result.error)
            error_count += 1
            continue

        if badge_code:
            badge_result = database.save_badge_code(badge_code, email, name)
            if badge_result.error:
                logger.warning("User %s created but badge failed: %s", name, badge_result.error)

        success_count += 1
        logger.info("Imported user %s", name)
        if delay:
            sleep(delay)

    if success_count:
        message = f"{success_count} gebruikers succesvol geïmporteerd!"
        if error_count:
            message += f" ({error_count} fouten)"
        return ImportReport(success_count, error_count, message)
    return ImportReport(
        success_count,
        error_count,
        f"Geen gebruikers geïmporteerd. {error_count} fouten gevonden.",
        is_error=True,
    )


def import_products(text, products, categories, progress=None):
    """Create products (and missing categories) from a ``Productnaam,Categorie`` CSV.

    Fields are split on plain commas. Products whose name already exists in
    *products* are skipped.
    """
    lines = text.split("\n")
    header = [column for column in lines[0].split(",") if column.strip()] if lines else []
    if not header:
        return ImportReport(message=PRODUCT_IMPORT_FORMAT_TEXT, is_error=True)

    category_ids = {category.name: category.id for category in categories}
    existing_names = {product.name for product in products}
    created = 0
    error_count = 0

    for line in lines[1:]:
        data = line.split(",")
        product_name = data[0].strip()
        category_name = data[1].strip() if len(data) > 1 else ""
        if not product_name:
            continue

        category_id = None
        if category_name:
            category_id = category_ids.get(category_name)
            if category_id is None:
                result = database.save_category(category_name)
                if result.error:
                    logger.warning("Could not create category %s: %s", category_name, result.error)
                else:
                    category_id = result.data.id
                    refreshed = database.fetch_categories()
                    if not refreshed.error:
                        category_ids = {category.name: category.id for category in refreshed.data}
                    category_ids[category_name] = category_id

        if product_name in existing_names:
            logger.info("Skipping existing product %s", product_name)
            continue

        if progress:
            progress(f"Bezig met aanmaken product: {product_name}...")
        result = database.save_product(product_name, category_id=category_id)
        if result.error:
            error_count += 1
        else:
            created += 1

    message = f"{created} producten geïmporteerd!"
    if error_count:
        message += f" ({error_count} fouten)"
    return ImportReport(created, error_count, message)
