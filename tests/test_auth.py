from werkzeug.security import generate_password_hash

import database
from auth import create_auth_user, display_name, sign_in, sign_in_with_badge, sign_out


def test_create_and_sign_in():
    created = create_auth_user("jan@example.com", "geheim123", "Jan", "admin")
    assert created.error is None
    assert created.data.role == "admin"
    assert [user.name for user in database.fetch_users().data] == ["Jan"]

    result = sign_in("JAN@example.com", "geheim123")
    assert result.error is None
    assert result.data.name == "Jan"
    assert result.data.email == "jan@example.com"
    assert result.data.role == "admin"


def test_password_is_stored_hashed():
    create_auth_user("jan@example.com", "geheim123", "Jan")
    account = database.find_account("jan@example.com").data
    assert account["password_hash"] != "geheim123"


def test_sign_in_errors():
    create_auth_user("jan@example.com", "geheim123", "Jan")
    assert sign_in("", "x").error == "Voer je email adres in"
    assert sign_in("jan@example.com", "").error == "Voer je wachtwoord in"
    assert sign_in("jan@example.com", "fout").error == "Ongeldige inloggegevens"
    assert sign_in("piet@example.com", "geheim123").error == "Ongeldige inloggegevens"


def test_duplicate_email_is_rejected():
    create_auth_user("jan@example.com", "geheim123", "Jan")
    result = create_auth_user("Jan@Example.com", "anders123", "Jan 2")
    assert result.data is None
    assert result.error


def test_unknown_role_becomes_user():
    assert create_auth_user("jan@example.com", "geheim123", "Jan", "root").data.role == "user"


def test_badge_sign_in_uses_user_role():
    create_auth_user("marie@example.com", "geheim123", "Marie", "admin")
    database.save_badge_code("B42", "marie@example.com", "Marie")

    result = sign_in_with_badge(" B42 ")

    assert result.error is None
    assert result.data.id == "badge-user-B42"
    assert result.data.name == "Marie"
    assert result.data.role == "admin"


def test_badge_sign_in_errors():
    assert sign_in_with_badge("").error == "Voer je badge ID in"
    assert sign_in_with_badge("NOPE").error == "Badge niet gevonden"


def test_display_name():
    assert display_name("Jan", "x@example.com") == "Jan"
    assert display_name("", "piet@example.com") == "piet"
    assert display_name("", "") == "Gebruiker"


def test_sign_out():
    assert sign_out() == database.DbResult(None, None)


def test_sign_in_follows_role_change():
    create_auth_user("jan@example.com", "geheim123", "Jan", "admin")
    database.update_user("Jan", "Jan", "user")

    result = sign_in("jan@example.com", "geheim123")

    assert result.error is None
    assert result.data.role == "user"


def test_sign_in_follows_rename():
    create_auth_user("jan@example.com", "geheim123", "Jan", "admin")
    database.update_user("Jan", "Jan Janssen")

    result = sign_in("jan@example.com", "geheim123")

    assert result.data.name == "Jan Janssen"
    assert result.data.role == "admin"


def test_deleted_user_cannot_sign_in():
    create_auth_user("jan@example.com", "geheim123", "Jan", "admin")
    database.delete_user("Jan")

    result = sign_in("jan@example.com", "geheim123")

    assert result.data is None
    assert result.error == "Ongeldige inloggegevens"
    assert database.find_account("jan@example.com").data is None


def test_account_without_app_user_is_rejected():
    database.insert_account("los@example.com", generate_password_hash("geheim123"), "Los")
    result = sign_in("los@example.com", "geheim123")
    assert result.error == "Ongeldige inloggegevens"
