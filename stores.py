"""In-memory copies of the database collections.

``AppState`` holds one tuple per collection. It is never mutated; ``reduce``
returns a new state for an action. The Streamlit app keeps the current state
in ``st.session_state`` and dispatches ``Replace`` after every refetch, both
its own and the ones pushed by ``database.subscribe``.
"""

from dataclasses import dataclass, replace as _replace
from typing import Any, Tuple

from models import Category, Product, Registration, User


COLLECTIONS = ("users", "products", "categories", "locations", "purposes", "registrations")


@dataclass(frozen=True)
class AppState:
    users: Tuple[User, ...] = ()
    products: Tuple[Product, ...] = ()
    categories: Tuple[Category, ...] = ()
    locations: Tuple[str, ...] = ()
    purposes: Tuple[str, ...] = ()
    registrations: Tuple[Registration, ...] = ()


@dataclass(frozen=True)
class Replace:
    collection: str
    items: Any


def reduce(state, action):
    collection = action.collection
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")
    if not isinstance(action, Replace):
        raise TypeError(f"Unsupported action: {action!r}")
    return _replace(state, **{collection: tuple(action.items or ())})


def find_product(state, name):
    for product in state.products:
        if product.name == name:
            return product
    return None


def category_name(state, category_id):
    for category in state.categories:
        if category.id == category_id:
            return category.name
    return ""
