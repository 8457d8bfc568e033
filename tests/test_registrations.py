from datetime import date, datetime

import pytest

from models import Product, Registration, User
from registrations import (
    ALL,
    RegistrationError,
    build_registration,
    filter_products,
    filter_registrations,
    filter_users,
    sort_registrations,
    top_products,
    top_users,
    usage_count,
)


def reg(id, user, product, location, day, hour="10:00", purpose="Onderhoud", qrcode=None):
    return Registration(
        id=id,
        user=user,
        product=product,
        location=location,
        purpose=purpose,
        timestamp=f"{day}T{hour}:00",
        date=day,
        time=hour,
        qrcode=qrcode,
    )


REGISTRATIONS = [
    reg("1", "Jan", "Hamer", "Magazijn", "2024-05-01", qrcode="HAM001"),
    reg("2", "Marie", "Spray", "Werkplaats", "2024-05-02"),
    reg("3", "Jan", "Spray", "Werkplaats", "2024-05-03", purpose="Reiniging"),
]


def test_build_registration():
    row = build_registration(" Jan ", "Hamer", "Magazijn", "Onderhoud", qr_code="HAM001", now=datetime(2024, 5, 1, 14, 30, 5))
    assert row == {
        "user_name": "Jan",
        "product_name": "Hamer",
        "location": "Magazijn",
        "purpose": "Onderhoud",
        "timestamp": "2024-05-01T14:30:05",
        "date": "2024-05-01",
        "time": "14:30",
        "qr_code": "HAM001",
    }


def test_build_registration_requires_all_fields():
    with pytest.raises(RegistrationError, match="Vul alle velden in"):
        build_registration("Jan", "", "Magazijn", "Onderhoud")


def test_filter_by_query_is_case_insensitive():
    assert [r.id for r in filter_registrations(REGISTRATIONS, "spray")] == ["2", "3"]
    assert [r.id for r in filter_registrations(REGISTRATIONS, "ham001")] == ["1"]
    assert [r.id for r in filter_registrations(REGISTRATIONS, "reiniging")] == ["3"]


def test_filter_by_user_location_and_dates():
    assert [r.id for r in filter_registrations(REGISTRATIONS, user="Jan")] == ["1", "3"]
    assert [r.id for r in filter_registrations(REGISTRATIONS, location="Werkplaats", user=ALL)] == ["2", "3"]
    between = filter_registrations(REGISTRATIONS, date_from=date(2024, 5, 2), date_to=date(2024, 5, 3))
    assert [r.id for r in between] == ["2", "3"]
    assert [r.id for r in filter_registrations(REGISTRATIONS, date_to="2024-05-01")] == ["1"]


def test_sort_registrations():
    assert [r.id for r in sort_registrations(REGISTRATIONS)] == ["3", "2", "1"]
    assert [r.id for r in sort_registrations(REGISTRATIONS, "date", "oldest")] == ["1", "2", "3"]
    assert [r.user for r in sort_registrations(REGISTRATIONS, "user", "oldest")] == ["Jan", "Jan", "Marie"]


def test_filter_products():
    products = [
        Product(id="1", name="Hamer", qrcode="HAM001", category_id="1"),
        Product(id="2", name="Spray", category_id="2"),
    ]
    assert [p.id for p in filter_products(products, "2")] == ["2"]
    assert [p.id for p in filter_products(products, ALL, "ham0")] == ["1"]
    assert [p.id for p in filter_products(products, ALL, "")] == ["1", "2"]


def test_filter_users_sorted():
    users = [User(name="piet"), User(name="Anna"), User(name="Jan")]
    assert [u.name for u in filter_users(users)] == ["Anna", "Jan", "piet"]
    assert [u.name for u in filter_users(users, "AN")] == ["Anna", "Jan"]


def test_statistics():
    assert top_users(REGISTRATIONS) == [("Jan", 2), ("Marie", 1)]
    assert top_products(REGISTRATIONS, limit=1) == [("Spray", 2)]
    assert usage_count(REGISTRATIONS, "location", "Werkplaats") == 2
    assert usage_count(REGISTRATIONS, "purpose", "Nergens") == 0
