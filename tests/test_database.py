import gc
from datetime import datetime

import pytest

import database
from registrations import build_registration


def register(user="Jan", product="Hamer", location="Magazijn", purpose="Onderhoud"):
    row = build_registration(user, product, location, purpose, now=datetime(2024, 5, 1, 9, 15))
    return database.save_registration(row)


def test_check_connection():
    assert database.check_connection()


def test_save_and_fetch_products_newest_first():
    category = database.save_category("Reinigers").data
    first = database.save_product("Spray", qrcode="SPR001", category_id=category.id)
    second = database.save_product("Hamer")

    assert first.error is None
    assert first.data.id == "1"
    assert first.data.category_id == category.id
    products = database.fetch_products().data
    assert [product.name for product in products] == ["Hamer", "Spray"]
    assert products[1].qrcode == "SPR001"
    assert products[0].qrcode is None
    assert second.data.id == "2"


def test_fetch_product_by_code():
    database.save_product("Spray", qrcode="SPR001")
    assert database.fetch_product_by_code("SPR001").data.name == "Spray"
    assert database.fetch_product_by_code("NOPE").data is None


def test_update_product_overwrites_fields():
    product = database.save_product("Spray").data
    result = database.update_product(
        product.id,
        "Spray XL",
        qrcode="SX001",
        attachment_url="/attachments/a.pdf",
        attachment_name="a.pdf",
    )
    assert result.error is None
    assert result.data.name == "Spray XL"
    assert result.data.qrcode == "SX001"
    assert result.data.has_attachment


def test_update_missing_rows_report_not_found():
    assert database.update_product("999", "x").error == "Product not found"
    assert database.update_location("Nergens", "Ergens").error == "Location not found"
    assert database.update_purpose("Niets", "Iets").error == "Purpose not found"
    assert database.update_category("42", "x").error == "Category not found"
    assert database.update_user("Niemand", "Iemand").error == "User not found"


def test_duplicate_location_is_an_error():
    assert database.save_location("Magazijn").error is None
    assert database.save_location("Magazijn").error


def test_deleting_location_keeps_registrations():
    database.save_location("Magazijn")
    register(location="Magazijn")

    assert database.delete_location("Magazijn").error is None

    assert database.fetch_locations().data == []
    registrations = database.fetch_registrations().data
    assert len(registrations) == 1
    assert registrations[0].location == "Magazijn"


def test_save_registration_fields():
    result = register()
    assert result.error is None
    registration = result.data
    assert registration.user == "Jan"
    assert registration.date == "2024-05-01"
    assert registration.time == "09:15"
    assert registration.qrcode is None
    assert database.fetch_registrations().data == [registration]


def test_subscribers_get_full_table_after_changes():
    received = []
    unsubscribe = database.subscribe("locations", received.append)

    database.save_location("B")
    database.save_location("A")
    unsubscribe()
    database.save_location("C")

    assert received == [["B"], ["A", "B"]]


def test_failing_subscriber_does_not_break_mutation():
    def broken(_rows):
        raise RuntimeError("boom")

    database.subscribe("purposes", broken)
    assert database.save_purpose("Onderhoud").error is None
    assert database.fetch_purposes().data == ["Onderhoud"]


def test_subscribe_unknown_table():
    with pytest.raises(ValueError):
        database.subscribe("nope", print)


def test_badges_replace_previous_and_follow_renames():
    database.save_user("Jan", "admin")
    database.save_badge_code("B1", "jan@example.com", "Jan")
    database.save_badge_code("B2", "jan@example.com", "Jan")

    assert database.load_user_badges() == {"Jan": "B2"}
    assert database.find_badge("B1").data is None

    database.update_user("Jan", "Jan Janssen", "user")
    users = database.fetch_users().data
    assert [(user.name, user.role, user.badge_code) for user in users] == [("Jan Janssen", "user", "B2")]
    assert database.find_badge("B2").data["user_name"] == "Jan Janssen"

    database.delete_badge_code("Jan Janssen")
    assert database.load_user_badges() == {}


def test_empty_badge_is_ignored():
    assert database.save_badge_code("  ", "jan@example.com", "Jan") == database.DbResult(None, None)
    assert database.load_user_badges() == {}


def test_delete_user_and_product():
    database.save_user("Jan")
    product = database.save_product("Hamer").data
    database.delete_user("Jan")
    database.delete_product(product.id)
    assert database.fetch_users().data == []
    assert database.fetch_products().data == []


def test_errors_are_returned_not_raised(monkeypatch, tmp_path):
    monkeypatch.setattr(database, "DATABASE", str(tmp_path / "missing" / "db.sqlite"))
    result = database.fetch_products()
    assert result.data is None
    assert result.error


def test_update_user_returns_stored_row():
    database.save_user("Jan", "admin")
    database.save_badge_code("B1", "jan@example.com", "Jan")

    result = database.update_user("Jan", "Jan Janssen")

    assert result.error is None
    assert result.data == database.fetch_user("Jan Janssen").data
    assert (result.data.role, result.data.badge_code) == ("admin", "B1")


def test_update_user_keeps_account_in_step():
    database.save_user("Jan", "admin")
    database.insert_account("jan@example.com", "hash", "Jan", "admin")

    database.update_user("Jan", "Jan Janssen", "user")

    account = database.find_account("jan@example.com").data
    assert (account["name"], account["role"]) == ("Jan Janssen", "user")


def test_delete_user_removes_badge_and_account():
    database.save_user("Jan")
    database.insert_account("jan@example.com", "hash", "Jan")
    database.save_badge_code("B1", "jan@example.com", "Jan")

    assert database.delete_user("Jan").error is None

    assert database.fetch_user("Jan").data is None
    assert database.find_account("jan@example.com").data is None
    assert database.find_badge("B1").data is None


def test_weak_subscriber_is_dropped_with_its_owner():
    received = []

    def callback(rows):
        received.append(rows)

    database.subscribe("locations", callback, weak=True)
    database.save_location("A")

    del callback
    gc.collect()
    database.save_location("B")

    assert received == [["A"]]
    assert database._subscribers["locations"] == []


def test_weak_subscriber_with_bound_method():
    class Store:
        def __init__(self):
            self.rows = None

        def replace(self, rows):
            self.rows = rows

    store = Store()
    database.subscribe("purposes", store.replace, weak=True)
    database.save_purpose("Onderhoud")
    assert store.rows == ["Onderhoud"]
