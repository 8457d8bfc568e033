"""Password and badge sign-in.

Both flows return a ``DbResult`` whose data is an ``AuthUser``; the UI only
needs the display name and role of whoever signed in.
"""

import logging

from werkzeug.security import check_password_hash, generate_password_hash

import database
from database import DbResult
from models import ROLES, AuthUser


logger = logging.getLogger(__name__)


def display_name(name, email):
    if name:
        return name
    if email:
        return email.split("@")[0]
    return "Gebruiker"


def sign_in(email, password):
    email = (email or "").strip()
    if not email:
        return DbResult(None, "Voer je email adres in")
    if not password:
        return DbResult(None, "Voer je wachtwoord in")

    result = database.find_account(email)
    if result.error:
        return result
    account = result.data
    if not account or not check_password_hash(account["password_hash"], password):
        logger.info("Failed sign in for %s", email)
        return DbResult(None, "Ongeldige inloggegevens")

    # The app user row holds the current role; without it the account is orphaned.
    app_user = database.fetch_user(account["name"])
    if app_user.error:
        return app_user
    if app_user.data is None:
        logger.warning("Account %s has no app user %r", account["email"], account["name"])
        return DbResult(None, "Ongeldige inloggegevens")

    logger.info("Signed in %s", account["email"])
    user = AuthUser(
        id=str(account["id"]),
        email=account["email"],
        name=display_name(app_user.data.name, account["email"]),
        role=app_user.data.role,
    )
    return DbResult(user, None)


def sign_in_with_badge(badge_id):
    badge_id = (badge_id or "").strip()
    if not badge_id:
        return DbResult(None, "Voer je badge ID in")

    result = database.find_badge(badge_id)
    if result.error:
        return result
    badge = result.data
    if not badge:
        logger.info("Unknown badge %s", badge_id)
        return DbResult(None, "Badge niet gevonden")

    role = "user"
    app_user = database.fetch_user(badge["user_name"])
    if not app_user.error and app_user.data is not None:
        role = app_user.data.role

    logger.info("Badge sign in for %s", badge["user_name"])
    user = AuthUser(
        id=f"badge-user-{badge_id}",
        email=badge["user_email"] or "",
        name=display_name(badge["user_name"], badge["user_email"]),
        role=role,
    )
    return DbResult(user, None)


def sign_out():
    return DbResult(None, None)


def create_auth_user(email, password, name, role="user"):
    """Create a sign-in account and the matching app user.

    A duplicate email is reported as an error. When the account exists but the
    app user row cannot be written, the account is kept and only a warning is
    logged.
    """
    if role not in ROLES:
        role = "user"
    result = database.insert_account(email, generate_password_hash(password), name, role)
    if result.error:
        return result

    user_result = database.save_user(name, role)
    if user_result.error:
        logger.warning("Account %s created but app user failed: %s", email, user_result.error)

    return DbResult(AuthUser(id=str(result.data), email=email, name=name, role=role), None)
