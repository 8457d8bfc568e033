import pytest

from models import Category, Product, User
from stores import AppState, Replace, category_name, find_product, reduce


def test_replace_collection():
    state = reduce(AppState(), Replace("locations", ["A", "B"]))
    assert state.locations == ("A", "B")
    assert state.products == ()


def test_replace_overwrites_previous_items():
    state = reduce(AppState(), Replace("users", [User("Jan"), User("Marie")]))
    state = reduce(state, Replace("users", [User("Jan", role="admin")]))
    assert [(user.name, user.role) for user in state.users] == [("Jan", "admin")]
    assert reduce(state, Replace("users", None)).users == ()


def test_state_is_not_mutated():
    before = AppState()
    after = reduce(before, Replace("purposes", ["Onderhoud"]))
    assert before.purposes == ()
    assert after is not before


def test_unknown_collection_and_action():
    with pytest.raises(ValueError):
        reduce(AppState(), Replace("nope", []))

    class Rename:
        collection = "users"

    with pytest.raises(TypeError):
        reduce(AppState(), Rename())


def test_lookups():
    state = AppState(
        products=(Product("1", "Hamer", category_id="3"),),
        categories=(Category("3", "Gereedschap"),),
    )
    assert find_product(state, "Hamer").id == "1"
    assert find_product(state, "Tang") is None
    assert category_name(state, "3") == "Gereedschap"
    assert category_name(state, None) == ""
