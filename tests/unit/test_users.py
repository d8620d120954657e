import pytest

from core.errors import UserNotFoundError, ValidationError
from core.users import UserRegistry


def test_add_numbers_and_dedupes(tmp_path):
    registry = UserRegistry(tmp_path / "users")
    assert registry.add("alice") is True
    assert registry.add("bob") is True
    assert registry.add("alice") is False
    assert registry.numbered() == [(1, "alice"), (2, "bob")]
    assert registry.number_of("bob") == 2
    assert registry.number_of("zed") is None


def test_numbers_shift_after_removal(tmp_path):
    registry = UserRegistry(tmp_path / "users")
    for name in ("alice", "bob", "carol"):
        registry.add(name)
    assert registry.remove("alice") is True
    assert registry.remove("alice") is False
    assert registry.username_at(1) == "bob"
    assert registry.number_of("carol") == 2


def test_resolve_numbers_and_names(tmp_path):
    registry = UserRegistry(tmp_path / "users")
    registry.add("alice")
    assert registry.resolve("1") == "alice"
    assert registry.resolve("someone") == "someone"
    with pytest.raises(UserNotFoundError):
        registry.resolve("5")
    with pytest.raises(ValidationError):
        registry.resolve("two words")


def test_empty_registry(tmp_path):
    registry = UserRegistry(tmp_path / "users")
    assert registry.list_users() == []
    with pytest.raises(UserNotFoundError, match="No users configured"):
        registry.username_at(1)
    with pytest.raises(ValidationError):
        registry.add("bad/name")
