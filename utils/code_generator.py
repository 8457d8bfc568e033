import re


DEFAULT_STOPWORDS = ("spray", "ml", "gr", "kit")
MAX_PREFIX_LENGTH = 4
MAX_COUNTER = 999

_QUANTITY = re.compile(r"^\d+(?:[.,]\d+)?")


def _is_stopword(word, stopwords):
    lowered = word.lower()
    if lowered in stopwords:
        return True
    # "500ml", "400gr": a quantity with a unit counts as the unit.
    unit = _QUANTITY.sub("", lowered)
    return unit != lowered and unit in stopwords


def code_prefix(name, stopwords=DEFAULT_STOPWORDS):
    stopwords = {word.lower() for word in stopwords}
    prefix = "".join(
        word[0].upper()
        for word in name.split()
        if len(word) > 2 and not _is_stopword(word, stopwords)
    )
    if len(prefix) < 2:
        prefix = re.sub(r"\s+", "", name)[:3].upper()
    return prefix[:MAX_PREFIX_LENGTH]


def generate_product_code(name, existing_codes, stopwords=DEFAULT_STOPWORDS):
    """Build a short code such as ``IMC001`` for a product without one.

    The counter starts at 1 and stops at 999; when every slot is taken the
    last attempt is returned even though it collides.
    """
    prefix = code_prefix(name, stopwords)
    taken = set(existing_codes)

    code = ""
    for number in range(1, MAX_COUNTER + 1):
        code = f"{prefix}{number:03d}"
        if code not in taken:
            break
    return code
