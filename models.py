"""Records mirrored from the database.

Rows come back with integer ids, ``None`` for empty columns and the column
names of the tables (``qr_code``, ``category_id``, ...). The ``from_row``
constructors turn them into records with string ids and ``None`` for missing
optional values, so the rest of the app never deals with raw rows.
"""

from dataclasses import dataclass
from typing import Optional


ROLES = ("user", "admin")


def _text(value):
    if value is None:
        return ""
    return str(value).strip()


def _optional(value):
    text = _text(value)
    return text or None


@dataclass(frozen=True)
class Category:
    id: str
    name: str

    @classmethod
    def from_row(cls, row):
        return cls(id=_text(row["id"]), name=_text(row["name"]))


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    qrcode: Optional[str] = None
    category_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        keys = row.keys()
        return cls(
            id=_text(row["id"]),
            name=_text(row["name"]),
            qrcode=_optional(row["qr_code"]) if "qr_code" in keys else None,
            category_id=_optional(row["category_id"]) if "category_id" in keys else None,
            attachment_url=_optional(row["attachment_url"]) if "attachment_url" in keys else None,
            attachment_name=_optional(row["attachment_name"]) if "attachment_name" in keys else None,
            created_at=_optional(row["created_at"]) if "created_at" in keys else None,
        )

    @property
    def has_attachment(self):
        return bool(self.attachment_url)


@dataclass(frozen=True)
class User:
    name: str
    role: str = "user"
    badge_code: Optional[str] = None

    @classmethod
    def from_row(cls, row, badge_code=None):
        role = _text(row["role"]).lower()
        return cls(
            name=_text(row["name"]),
            role=role if role in ROLES else "user",
            badge_code=_optional(badge_code),
        )

    @property
    def is_admin(self):
        return self.role == "admin"


@dataclass(frozen=True)
class Registration:
    id: str
    user: str
    product: str
    location: str
    purpose: str
    timestamp: str
    date: str
    time: str
    qrcode: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_text(row["id"]),
            user=_text(row["user_name"]),
            product=_text(row["product_name"]),
            location=_text(row["location"]),
            purpose=_text(row["purpose"]),
            timestamp=_text(row["timestamp"]),
            date=_text(row["date"]),
            time=_text(row["time"]),
            qrcode=_optional(row["qr_code"]),
            created_at=_optional(row["created_at"]),
        )


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    name: str
    role: str = "user"
