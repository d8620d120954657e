import base64

import pytest

from core.errors import (
    ProfileExistsError,
    ProfileNotFoundError,
    RecordParseError,
    ValidationError,
)
from core.profiles import (
    ProfileStore,
    default_email,
    parse,
    parse_record,
    profile_issues,
    serialize,
)


def _b64(value: str) -> str:
    return base64.b64encode(f"{value}\n".encode("utf-8")).decode("ascii")


def test_parse_v1_base64_record():
    profile = parse(f"alice:1:{_b64('Alice Smith')}:{_b64('alice@example.com')}")
    assert profile.schema_version == 1
    assert profile.name == "Alice Smith"
    assert profile.email == "alice@example.com"
    assert profile.host == "github.com"


def test_parse_v2_record_with_signing_and_ssh():
    line = ":".join(
        [
            "bob",
            "2",
            _b64("Bob"),
            _b64("bob@example.com"),
            _b64("ABC123"),
            _b64("~/.ssh/id_bob"),
            "true",
            "1700000000",
        ]
    )
    profile = parse(line)
    assert profile.schema_version == 2
    assert profile.gpg_key == "ABC123"
    assert profile.ssh_key == "~/.ssh/id_bob"
    assert profile.auto_sign is True


def test_parse_v3_colon_record():
    profile = parse("carol:Carol:carol@example.com:KEY1:true")
    assert profile.schema_version == 3
    assert profile.gpg_key == "KEY1"
    assert profile.auto_sign is True

    short = parse("dave:Dave:dave@example.com")
    assert short.gpg_key == ""
    assert short.auto_sign is False


def test_parse_v4_and_v5_tab_records():
    v4 = parse("\t".join(["erin", "v4", "Erin", "erin@example.com", "", "false", "~/.ssh/id_erin"]))
    assert v4.schema_version == 4
    assert v4.ssh_key == "~/.ssh/id_erin"
    assert v4.host == "github.com"

    v5 = parse(
        "\t".join(["frank", "v5", "Frank", "frank@corp.com", "K9", "true", "", "github.corp.com"])
    )
    assert v5.schema_version == 5
    assert v5.host == "github.corp.com"
    assert v5.auto_sign is True

    compact = parse("user\tv5\tname\temail@example.com\t\tgithub.com")
    assert compact.ssh_key == ""
    assert compact.gpg_key == ""
    assert compact.host == "github.com"


def test_unknown_version_and_garbage_raise():
    with pytest.raises(RecordParseError, match="unknown schema version"):
        parse_record("gina\tv9\tGina\tgina@example.com", 3)
    with pytest.raises(RecordParseError) as excinfo:
        parse("not-a-record", 7)
    assert excinfo.value.line_number == 7
    assert excinfo.value.line == "not-a-record"


def test_invalid_host_in_record_is_a_parse_error():
    with pytest.raises(RecordParseError, match="protocol"):
        parse("\t".join(["hank", "v5", "Hank", "h@example.com", "", "false", "", "https://github.com"]))


def test_missing_name_and_email_fall_back_to_username():
    profile = parse("\t".join(["ivy", "v4", "", "", "", "false", ""]))
    assert profile.name == "ivy"
    assert profile.email == "ivy@users.noreply.github.com"


def test_serialize_writes_latest_layout_and_is_stable():
    legacy = parse(f"alice:1:{_b64('Alice')}:{_b64('alice@example.com')}")
    line = serialize(legacy)
    assert line.split("\t")[1] == "v5"
    reparsed = parse(line)
    assert reparsed.same_identity(legacy)
    assert reparsed.schema_version == 5
    assert serialize(reparsed) == line


def test_default_email_depends_on_host():
    assert default_email("alice") == "alice@users.noreply.github.com"
    assert default_email("alice", "github.corp.com") == "alice@github.corp.com"


def test_store_skips_one_bad_line_and_keeps_the_rest(tmp_path):
    path = tmp_path / "profiles"
    path.write_text(
        "\n".join(
            [
                "alice:Alice:alice@example.com",
                "broken\tv7\tx",
                "\t".join(["bob", "v4", "Bob", "bob@example.com", "", "false", ""]),
                "\t".join(["carol", "v5", "Carol", "c@example.com", "", "false", "", "github.com"]),
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    store = ProfileStore(path)
    profiles = store.load()
    assert [item.username for item in profiles] == ["alice", "bob", "carol"]
    assert len(store.warnings) == 1
    assert store.warnings[0].line_number == 2


def test_rewrite_keeps_unreadable_lines(tmp_path):
    path = tmp_path / "profiles"
    path.write_text("garbage\n", encoding="utf-8")
    store = ProfileStore(path)
    store.create("alice", name="Alice", email="alice@example.com")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert "garbage" in lines
    assert any(line.startswith("alice\tv5\t") for line in lines)


def test_create_defaults_and_duplicates(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    created = store.create("alice")
    assert created.name == "alice"
    assert created.email == "alice@users.noreply.github.com"
    assert store.get("alice").same_identity(created)

    with pytest.raises(ProfileExistsError):
        store.create("alice", name="Other")
    replaced = store.create("alice", name="Other", force=True)
    assert store.get("alice").name == "Other"
    assert replaced.name == "Other"
    assert len(store.list_profiles()) == 1


def test_create_validates_input(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    with pytest.raises(ValidationError):
        store.create("bad user")
    with pytest.raises(ValidationError):
        store.create("alice", email="not-an-email")
    with pytest.raises(ValidationError, match="protocol"):
        store.create("alice", host="https://github.com")
    with pytest.raises(ValidationError, match="too long"):
        store.create("alice", name="x" * 300)
    assert store.list_profiles() == []


def test_enterprise_profile_derives_email_from_host(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    profile = store.create("alice", host="github.corp.com")
    assert profile.email == "alice@github.corp.com"


def test_update_fields(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    store.create("alice", name="Alice")

    moved = store.update("alice", "host", "github.corp.com")
    assert moved.host == "github.corp.com"
    assert moved.email == "alice@github.corp.com"

    store.update("alice", "email", "alice@work.com")
    kept = store.update("alice", "host", "github.com")
    assert kept.email == "alice@work.com"

    assert store.update("alice", "auto_sign", "yes").auto_sign is True
    assert store.update("alice", "display_name", "Alice S").name == "Alice S"
    with pytest.raises(ValidationError):
        store.update("alice", "auto_sign", "maybe")
    with pytest.raises(ValidationError, match="Unknown profile field"):
        store.update("alice", "colour", "blue")
    with pytest.raises(ProfileNotFoundError):
        store.update("nobody", "name", "X")


def test_remove(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    store.create("alice")
    store.create("bob")
    assert store.remove("alice") is True
    assert store.remove("alice") is False
    assert [item.username for item in store.list_profiles()] == ["bob"]


def test_migrate_file_upgrades_legacy_records(tmp_path):
    path = tmp_path / "profiles"
    path.write_text(
        f"alice:1:{_b64('Alice')}:{_b64('alice@example.com')}\n"
        "bob:Bob:bob@example.com\n",
        encoding="utf-8",
    )
    store = ProfileStore(path)
    assert store.migrate_file() == 2
    lines = path.read_text(encoding="utf-8").splitlines()
    assert all("\tv5\t" in line for line in lines)
    assert list(tmp_path.glob("profiles.backup.*"))
    assert store.get("alice").name == "Alice"
    assert store.migrate_file() == 0


def test_profile_issues_reports_missing_key(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    profile = store.create("alice", ssh_key=str(tmp_path / ".ssh" / "missing"), auto_sign=True)
    issues = profile_issues(profile, tmp_path)
    assert any("SSH key not found" in issue for issue in issues)
    assert "Auto-sign enabled without a GPG key" in issues


def test_update_many_writes_nothing_when_one_change_is_invalid(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    store.create("alice", name="Alice", email="alice@example.com")
    before = (tmp_path / "profiles").read_text(encoding="utf-8")

    with pytest.raises(ValidationError):
        store.update_many("alice", {"name": "Mallory", "email": "not-an-email"})
    assert (tmp_path / "profiles").read_text(encoding="utf-8") == before
    assert store.get("alice").name == "Alice"

    updated = store.update_many("alice", {"name": "Alice S", "host": "github.corp.com"})
    assert updated.name == "Alice S"
    assert updated.host == "github.corp.com"
    assert updated.email == "alice@example.com"


def test_duplicate_username_is_reported_and_kept(tmp_path):
    path = tmp_path / "profiles"
    path.write_text(
        "alice:Alice:alice@example.com\n"
        "alice:Other:other@example.com\n",
        encoding="utf-8",
    )
    store = ProfileStore(path)
    profiles = store.load()
    assert [item.name for item in profiles] == ["Alice"]
    assert len(store.warnings) == 1
    assert "duplicate username" in store.warnings[0].reason
    assert store.warnings[0].line_number == 2

    store.create("bob")
    assert "alice:Other:other@example.com" in path.read_text(encoding="utf-8").splitlines()


def test_created_profile_survives_serialize_and_parse(tmp_path):
    store = ProfileStore(tmp_path / "profiles")
    created = store.create(
        "alice",
        name="Alice Smith",
        ssh_key="~/.ssh/id_ed25519_alice",
        gpg_key="ABC123DEF",
        auto_sign=True,
        host="github.corp.com",
    )
    reparsed = parse(serialize(created))
    assert reparsed.same_identity(created)
    assert reparsed.host == "github.corp.com"
    assert reparsed.auto_sign is True
    assert store.get("alice").same_identity(created)
