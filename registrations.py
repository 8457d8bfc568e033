"""Registration form helpers, history filters and usage statistics."""

from collections import Counter
from datetime import datetime, timezone


SORT_FIELDS = ("date", "user", "product", "location")
ALL = "all"


class RegistrationError(ValueError):
    pass


def build_registration(user, product, location, purpose, qr_code=None, now=None):
    """Return the row to save for one registration.

    Raises ``RegistrationError`` when one of the four required fields is
    empty.
    """
    values = [(value or "").strip() for value in (user, product, location, purpose)]
    if not all(values):
        raise RegistrationError("Vul alle velden in")

    now = now or datetime.now(timezone.utc)
    user, product, location, purpose = values
    return {
        "user_name": user,
        "product_name": product,
        "location": location,
        "purpose": purpose,
        "timestamp": now.isoformat(),
        "date": now.date().isoformat(),
        "time": now.astimezone().strftime("%H:%M") if now.tzinfo else now.strftime("%H:%M"),
        "qr_code": qr_code or None,
    }


def _registration_date(registration):
    if registration.date:
        return registration.date
    return registration.timestamp[:10]


def filter_registrations(
    registrations,
    query="",
    user=ALL,
    location=ALL,
    date_from=None,
    date_to=None,
):
    query = (query or "").lower()
    date_from = str(date_from) if date_from else ""
    date_to = str(date_to) if date_to else ""

    filtered = []
    for registration in registrations:
        if query:
            haystack = [
                registration.user,
                registration.product,
                registration.location,
                registration.purpose,
                registration.qrcode or "",
            ]
            if not any(query in value.lower() for value in haystack):
                continue
        if user != ALL and registration.user != user:
            continue
        if location != ALL and registration.location != location:
            continue

        day = _registration_date(registration)
        if date_from and day < date_from:
            continue
        if date_to and day > date_to:
            continue
        filtered.append(registration)
    return filtered


def sort_registrations(registrations, sort_by="date", order="newest"):
    keys = {
        "date": lambda reg: reg.timestamp,
        "user": lambda reg: reg.user.casefold(),
        "product": lambda reg: reg.product.casefold(),
        "location": lambda reg: reg.location.casefold(),
    }
    key = keys.get(sort_by, keys["date"])
    return sorted(registrations, key=key, reverse=(order == "newest"))


def filter_products(products, category_id=ALL, query=""):
    query = (query or "").lower()
    filtered = []
    for product in products:
        if category_id != ALL and product.category_id != category_id:
            continue
        if query and query not in product.name.lower() and query not in (product.qrcode or "").lower():
            continue
        filtered.append(product)
    return filtered


def filter_users(users, query=""):
    query = (query or "").lower()
    matching = [user for user in users if query in user.name.lower()]
    return sorted(matching, key=lambda user: user.name.casefold())


def top_users(registrations, limit=5):
    return Counter(reg.user for reg in registrations).most_common(limit)


def top_products(registrations, limit=5):
    return Counter(reg.product for reg in registrations).most_common(limit)


def usage_count(registrations, field, value):
    return sum(1 for reg in registrations if getattr(reg, field) == value)
