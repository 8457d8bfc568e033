import logging
import os
import sqlite3
import types
import weakref
from collections import defaultdict, namedtuple
from datetime import datetime, timezone

from models import Category, Product, Registration, User


logger = logging.getLogger(__name__)

DATABASE = os.getenv("REGISTRATION_DB", "registrations.db")

TABLES = ("users", "products", "categories", "locations", "purposes", "registrations")

DbResult = namedtuple("DbResult", ["data", "error"])
WriteResult = namedtuple("WriteResult", ["lastrowid", "rowcount"])

_subscribers = defaultdict(list)


def connect():
    conn = sqlite3.connect(DATABASE)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    conn = connect()
    c = conn.cursor()

    c.execute("""
        CREATE TABLE IF NOT EXISTS users (
            name TEXT PRIMARY KEY,
            role TEXT NOT NULL DEFAULT 'user'
        )
    """)
    c.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            password_hash TEXT NOT NULL,
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user',
            created_at TEXT
        )
    """)
    c.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            badge_id TEXT PRIMARY KEY,
            user_email TEXT,
            user_name TEXT NOT NULL
        )
    """)
    c.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL
        )
    """)
    c.execute("""
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            qr_code TEXT,
            category_id INTEGER,
            attachment_url TEXT,
            attachment_name TEXT,
            created_at TEXT
        )
    """)
    c.execute("CREATE TABLE IF NOT EXISTS locations (name TEXT PRIMARY KEY)")
    c.execute("CREATE TABLE IF NOT EXISTS purposes (name TEXT PRIMARY KEY)")
    c.execute("""
        CREATE TABLE IF NOT EXISTS registrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_name TEXT NOT NULL,
            product_name TEXT NOT NULL,
            location TEXT NOT NULL,
            purpose TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            date TEXT,
            time TEXT,
            qr_code TEXT,
            created_at TEXT
        )
    """)

    conn.commit()
    conn.close()


def now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _query(sql, params=()):
    conn = connect()
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


def _write(sql, params=()):
    conn = connect()
    try:
        cursor = conn.execute(sql, params)
        conn.commit()
        return WriteResult(cursor.lastrowid, cursor.rowcount)
    finally:
        conn.close()


def _failed(action, exc):
    logger.error("Database error while %s: %s", action, exc)
    return DbResult(None, str(exc))


# -----------------------------
# Push notifications
# -----------------------------
def _reference(callback, weak):
    if not weak:
        return lambda: callback
    if isinstance(callback, types.MethodType):
        return weakref.WeakMethod(callback)
    return weakref.ref(callback)


def subscribe(table, callback, weak=False):
    """Call *callback* with the refetched rows of *table* after each change.

    With ``weak=True`` only a weak reference is kept: the subscription ends
    by itself once the caller drops the callback. Returns a function that
    removes the subscription.
    """
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")
    ref = _reference(callback, weak)
    _subscribers[table].append(ref)

    def unsubscribe():
        if ref in _subscribers[table]:
            _subscribers[table].remove(ref)

    return unsubscribe


def _live_callbacks(table):
    refs = _subscribers.get(table, [])
    callbacks = [ref() for ref in refs]
    if None in callbacks:
        _subscribers[table] = [ref for ref, callback in zip(refs, callbacks) if callback is not None]
        logger.debug("Dropped %d stale subscribers for %s", callbacks.count(None), table)
    return [callback for callback in callbacks if callback is not None]


def _notify(table):
    callbacks = _live_callbacks(table)
    if not callbacks:
        return
    result = FETCHERS[table]()
    if result.error:
        return
    for callback in callbacks:
        try:
            callback(result.data)
        except Exception:
            logger.exception("Subscriber for %s failed", table)


def check_connection():
    for table in TABLES:
        try:
            _query(f"SELECT COUNT(*) FROM {table}")
        except sqlite3.Error as exc:
            logger.error("Table %s is not accessible: %s", table, exc)
            return False
    return True


# -----------------------------
# Fetch
# -----------------------------
def load_user_badges():
    try:
        rows = _query("SELECT badge_id, user_name FROM user_badges")
    except sqlite3.Error as exc:
        logger.error("Could not load badges: %s", exc)
        return {}
    return {row["user_name"]: row["badge_id"] for row in rows if row["user_name"] and row["badge_id"]}


def fetch_users():
    try:
        rows = _query("SELECT name, role FROM users ORDER BY name COLLATE NOCASE")
    except sqlite3.Error as exc:
        return _failed("fetching users", exc)
    badges = load_user_badges()
    return DbResult([User.from_row(row, badges.get(row["name"])) for row in rows], None)


def fetch_products():
    try:
        rows = _query("SELECT * FROM products ORDER BY id DESC")
    except sqlite3.Error as exc:
        return _failed("fetching products", exc)
    return DbResult([Product.from_row(row) for row in rows], None)


def fetch_categories():
    try:
        rows = _query("SELECT id, name FROM categories ORDER BY name COLLATE NOCASE")
    except sqlite3.Error as exc:
        return _failed("fetching categories", exc)
    return DbResult([Category.from_row(row) for row in rows], None)


def fetch_locations():
    try:
        rows = _query("SELECT name FROM locations ORDER BY name COLLATE NOCASE")
    except sqlite3.Error as exc:
        return _failed("fetching locations", exc)
    return DbResult([row["name"] for row in rows], None)


def fetch_purposes():
    try:
        rows = _query("SELECT name FROM purposes ORDER BY name COLLATE NOCASE")
    except sqlite3.Error as exc:
        return _failed("fetching purposes", exc)
    return DbResult([row["name"] for row in rows], None)


def fetch_registrations():
    try:
        rows = _query("SELECT * FROM registrations ORDER BY timestamp DESC, id DESC")
    except sqlite3.Error as exc:
        return _failed("fetching registrations", exc)
    return DbResult([Registration.from_row(row) for row in rows], None)


def fetch_user(name):
    try:
        rows = _query("SELECT name, role FROM users WHERE name = ?", (name,))
    except sqlite3.Error as exc:
        return _failed("fetching user", exc)
    if not rows:
        return DbResult(None, None)
    return DbResult(User.from_row(rows[0], load_user_badges().get(name)), None)


def fetch_product(product_id):
    try:
        rows = _query("SELECT * FROM products WHERE id = ?", (product_id,))
    except sqlite3.Error as exc:
        return _failed("fetching product", exc)
    return DbResult(Product.from_row(rows[0]) if rows else None, None)


def fetch_product_by_code(code):
    try:
        rows = _query("SELECT * FROM products WHERE qr_code = ? ORDER BY id LIMIT 1", (code,))
    except sqlite3.Error as exc:
        return _failed("fetching product by code", exc)
    return DbResult(Product.from_row(rows[0]) if rows else None, None)


FETCHERS = {
    "users": fetch_users,
    "products": fetch_products,
    "categories": fetch_categories,
    "locations": fetch_locations,
    "purposes": fetch_purposes,
    "registrations": fetch_registrations,
}


# -----------------------------
# Save
# -----------------------------
def save_user(name, role="user"):
    try:
        _write("INSERT INTO users (name, role) VALUES (?, ?)", (name, role))
    except sqlite3.Error as exc:
        return _failed("saving user", exc)
    _notify("users")
    return DbResult(User(name=name, role=role), None)


def save_product(name, qrcode=None, category_id=None):
    created_at = now_iso()
    try:
        written = _write(
            "INSERT INTO products (name, qr_code, category_id, created_at) VALUES (?, ?, ?, ?)",
            (name, qrcode or None, int(category_id) if category_id else None, created_at),
        )
    except sqlite3.Error as exc:
        return _failed("saving product", exc)
    _notify("products")
    product = Product(
        id=str(written.lastrowid),
        name=name,
        qrcode=qrcode or None,
        category_id=str(category_id) if category_id else None,
        created_at=created_at,
    )
    return DbResult(product, None)


def save_category(name):
    try:
        written = _write("INSERT INTO categories (name) VALUES (?)", (name,))
    except sqlite3.Error as exc:
        return _failed("saving category", exc)
    _notify("categories")
    return DbResult(Category(id=str(written.lastrowid), name=name), None)


def save_location(name):
    try:
        _write("INSERT INTO locations (name) VALUES (?)", (name,))
    except sqlite3.Error as exc:
        return _failed("saving location", exc)
    _notify("locations")
    return DbResult(name, None)


def save_purpose(name):
    try:
        _write("INSERT INTO purposes (name) VALUES (?)", (name,))
    except sqlite3.Error as exc:
        return _failed("saving purpose", exc)
    _notify("purposes")
    return DbResult(name, None)


def save_registration(registration):
    """Insert a registration built by ``registrations.build_registration``."""
    row = {"date": None, "time": None, "qr_code": None, **registration}
    row.setdefault("created_at", now_iso())
    try:
        written = _write(
            """
            INSERT INTO registrations
            (user_name, product_name, location, purpose, timestamp, date, time, qr_code, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row["user_name"],
                row["product_name"],
                row["location"],
                row["purpose"],
                row["timestamp"],
                row.get("date"),
                row.get("time"),
                row.get("qr_code"),
                row["created_at"],
            ),
        )
    except sqlite3.Error as exc:
        return _failed("saving registration", exc)
    _notify("registrations")
    row["id"] = written.lastrowid
    return DbResult(Registration.from_row(row), None)


# -----------------------------
# Update
# -----------------------------
def update_user(old_name, new_name, role=None):
    """Rename a user and optionally change its role.

    The user's badge and sign-in account follow the new name and role.
    """
    conn = connect()
    try:
        if role:
            cursor = conn.execute(
                "UPDATE users SET name = ?, role = ? WHERE name = ?", (new_name, role, old_name)
            )
        else:
            cursor = conn.execute("UPDATE users SET name = ? WHERE name = ?", (new_name, old_name))
        if cursor.rowcount == 0:
            return DbResult(None, "User not found")
        conn.execute("UPDATE user_badges SET user_name = ? WHERE user_name = ?", (new_name, old_name))
        conn.execute(
            "UPDATE accounts SET name = ?, role = (SELECT role FROM users WHERE name = ?) WHERE name = ?",
            (new_name, new_name, old_name),
        )
        conn.commit()
    except sqlite3.Error as exc:
        return _failed("updating user", exc)
    finally:
        conn.close()
    _notify("users")
    return fetch_user(new_name)


def update_product(
    product_id,
    name,
    qrcode=None,
    category_id=None,
    attachment_url=None,
    attachment_name=None,
):
    """Overwrite every editable column of a product (last writer wins)."""
    try:
        written = _write(
            """
            UPDATE products
            SET
                name = ?,
                qr_code = ?,
                category_id = ?,
                attachment_url = ?,
                attachment_name = ?
            WHERE id = ?
            """,
            (
                name,
                qrcode or None,
                int(category_id) if category_id else None,
                attachment_url or None,
                attachment_name or None,
                int(product_id),
            ),
        )
    except (sqlite3.Error, ValueError) as exc:
        return _failed("updating product", exc)
    if written.rowcount == 0:
        logger.error("No product found with id %s", product_id)
        return DbResult(None, "Product not found")
    _notify("products")
    return fetch_product(product_id)


def update_category(category_id, name):
    try:
        written = _write("UPDATE categories SET name = ? WHERE id = ?", (name, category_id))
    except sqlite3.Error as exc:
        return _failed("updating category", exc)
    if written.rowcount == 0:
        return DbResult(None, "Category not found")
    _notify("categories")
    return DbResult(Category(id=str(category_id), name=name), None)


def update_location(old_name, new_name):
    try:
        written = _write("UPDATE locations SET name = ? WHERE name = ?", (new_name, old_name))
    except sqlite3.Error as exc:
        return _failed("updating location", exc)
    if written.rowcount == 0:
        return DbResult(None, "Location not found")
    _notify("locations")
    return DbResult(new_name, None)


def update_purpose(old_name, new_name):
    try:
        written = _write("UPDATE purposes SET name = ? WHERE name = ?", (new_name, old_name))
    except sqlite3.Error as exc:
        return _failed("updating purpose", exc)
    if written.rowcount == 0:
        return DbResult(None, "Purpose not found")
    _notify("purposes")
    return DbResult(new_name, None)


# -----------------------------
# Delete
# -----------------------------
# Registrations keep the names they were saved with; nothing cascades.
def _delete(table, column, value):
    try:
        _write(f"DELETE FROM {table} WHERE {column} = ?", (value,))
    except sqlite3.Error as exc:
        return _failed(f"deleting from {table}", exc)
    _notify(table)
    return DbResult(None, None)


def delete_user(name):
    """Delete a user together with its badge and sign-in account."""
    conn = connect()
    try:
        conn.execute("DELETE FROM user_badges WHERE user_name = ?", (name,))
        conn.execute("DELETE FROM accounts WHERE name = ?", (name,))
        conn.execute("DELETE FROM users WHERE name = ?", (name,))
        conn.commit()
    except sqlite3.Error as exc:
        return _failed("deleting user", exc)
    finally:
        conn.close()
    _notify("users")
    return DbResult(None, None)


def delete_product(product_id):
    return _delete("products", "id", product_id)


def delete_category(category_id):
    return _delete("categories", "id", category_id)


def delete_location(name):
    return _delete("locations", "name", name)


def delete_purpose(name):
    return _delete("purposes", "name", name)


# -----------------------------
# Badges
# -----------------------------
def save_badge_code(badge_code, user_email, user_name):
    """Attach *badge_code* to a user, replacing the user's previous badge."""
    badge_code = (badge_code or "").strip()
    if not badge_code:
        return DbResult(None, None)

    conn = connect()
    try:
        conn.execute("DELETE FROM user_badges WHERE user_name = ?", (user_name,))
        conn.execute(
            "INSERT INTO user_badges (badge_id, user_email, user_name) VALUES (?, ?, ?)",
            (badge_code, user_email, user_name),
        )
        conn.commit()
    except sqlite3.Error as exc:
        return _failed("saving badge", exc)
    finally:
        conn.close()
    _notify("users")
    return DbResult(badge_code, None)


def delete_badge_code(user_name):
    try:
        _write("DELETE FROM user_badges WHERE user_name = ?", (user_name,))
    except sqlite3.Error as exc:
        return _failed("deleting badge", exc)
    _notify("users")
    return DbResult(None, None)


def find_badge(badge_id):
    try:
        rows = _query(
            "SELECT badge_id, user_email, user_name FROM user_badges WHERE badge_id = ?",
            (badge_id,),
        )
    except sqlite3.Error as exc:
        return _failed("looking up badge", exc)
    return DbResult(dict(rows[0]) if rows else None, None)


# -----------------------------
# Accounts
# -----------------------------
def insert_account(email, password_hash, name, role="user"):
    try:
        written = _write(
            "INSERT INTO accounts (email, password_hash, name, role, created_at) VALUES (?, ?, ?, ?, ?)",
            (email, password_hash, name, role, now_iso()),
        )
    except sqlite3.Error as exc:
        return _failed("creating account", exc)
    return DbResult(written.lastrowid, None)


def find_account(email):
    try:
        rows = _query(
            "SELECT id, email, password_hash, name, role FROM accounts WHERE lower(email) = lower(?)",
            (email,),
        )
    except sqlite3.Error as exc:
        return _failed("looking up account", exc)
    return DbResult(dict(rows[0]) if rows else None, None)
