"""Clean up codes typed by wireless QR scanners and match them to products.

Some handheld scanners "type" the decoded code through an AZERTY keyboard
layout while the receiving machine expects QWERTY, so the digit row arrives as
``&é"'(§è!çà``. ``clean_code`` maps those glyphs back to digits and then
applies literal fixes for glitches seen in practice.
"""

import logging
import re
import string


logger = logging.getLogger(__name__)


AZERTY_TO_QWERTY = {
    # digit row
    "&": "1",
    "é": "2",
    '"': "3",
    "'": "4",
    "(": "5",
    "§": "6",
    "è": "7",
    "!": "8",
    "ç": "9",
    "à": "0",
    # symbols
    "°": "_",
    "-": "-",
    "=": "=",
}
# Letters sit on the same keys for the codes we print; kept explicit so a
# layout quirk can be overridden per letter.
AZERTY_TO_QWERTY.update({letter: letter for letter in string.ascii_letters})

KNOWN_PATTERNS = [
    ('°(!&(""', "_581533"),
    ("°(!&(", "_5815"),
]

FUZZY_PREFIX_LENGTH = 6

_NON_CODE_CHARS = re.compile(r"[^A-Z0-9]")


def clean_code(raw, char_map=None, patterns=None):
    """Return *raw* with scanner layout glitches corrected.

    *char_map* and *patterns* extend the built-in tables; they never replace
    them.
    """
    raw = raw or ""
    table = dict(AZERTY_TO_QWERTY)
    if char_map:
        table.update(char_map)

    cleaned = "".join(table.get(char, char) for char in raw)

    for wrong, correct in KNOWN_PATTERNS + list(patterns or []):
        if wrong and wrong in cleaned:
            cleaned = cleaned.replace(wrong, correct, 1)
            logger.debug("Applied scanner pattern fix %r -> %r", wrong, correct)

    if cleaned != raw:
        logger.info("Cleaned scanned code %r -> %r", raw, cleaned)
    return cleaned


def _code_key(code):
    return _NON_CODE_CHARS.sub("", code)


def _is_fuzzy_match(product_code, cleaned):
    key = _code_key(product_code)
    if key and key == _code_key(cleaned):
        return True
    return (
        product_code[:FUZZY_PREFIX_LENGTH] in cleaned
        or cleaned[:FUZZY_PREFIX_LENGTH] in product_code
    )


def resolve_product(raw, products, cleaned=None):
    """Find the product a scanned code belongs to.

    Lookup order: exact match on the cleaned code, exact match on the raw
    code, then a fuzzy match. The first product in list order wins.
    Returns ``None`` when nothing matches.
    """
    raw = raw or ""
    if cleaned is None:
        cleaned = clean_code(raw)
    if not raw and not cleaned:
        return None

    coded = [product for product in products if product.qrcode]

    for product in coded:
        if product.qrcode == cleaned:
            return product

    for product in coded:
        if product.qrcode == raw:
            return product

    if cleaned:
        for product in coded:
            if _is_fuzzy_match(product.qrcode, cleaned):
                logger.info("Fuzzy matched %r to %r", cleaned, product.qrcode)
                return product

    return None


def no_match_message(cleaned, raw):
    return f"Geen product gevonden voor QR code: {cleaned} (origineel: {raw})"
