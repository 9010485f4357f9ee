"""Tests for workspace paths, file I/O and the local user."""

from datetime import datetime, timedelta, timezone

import pytest

from active.errors import StoreError
from active.fileio import read_json, read_yaml, write_json_atomic
from active.users import UserStorage
from active.workspace import get_user_timezone, store_path, workspace_root


def test_workspace_root_from_env(workspace):
    assert workspace_root() == workspace.resolve()
    assert store_path() == workspace.resolve() / "data" / "store.json"


def test_timezone_from_profile(workspace):
    (workspace / "profile.yaml").write_text("timezone: Asia/Tokyo\n", encoding="utf-8")
    assert str(get_user_timezone(workspace)) == "Asia/Tokyo"


def test_timezone_defaults_to_utc(tmp_path):
    assert str(get_user_timezone(tmp_path)) == "UTC"


def test_timezone_with_malformed_profile(workspace):
    (workspace / "profile.yaml").write_text("timezone: [", encoding="utf-8")
    assert str(get_user_timezone(workspace)) == "UTC"


def test_write_and_read_json(tmp_path):
    path = tmp_path / "nested" / "data.json"
    write_json_atomic(path, {"habits": [{"name": "Lire"}]})
    assert read_json(path) == {"habits": [{"name": "Lire"}]}
    assert not list(path.parent.glob(".tmp_*"))


def test_read_json_missing_or_blank(tmp_path):
    assert read_json(tmp_path / "missing.json") == {}
    blank = tmp_path / "blank.json"
    blank.write_text("  \n", encoding="utf-8")
    assert read_json(blank) == {}


def test_read_json_not_an_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(StoreError):
        read_json(path)


def test_read_yaml_not_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    assert read_yaml(path) == {}


class TestUsers:
    def test_get_or_create_is_stable(self, context):
        users = UserStorage()
        assert users.get_user(context) is None
        user = users.get_or_create(context)
        assert users.get_or_create(context) is user

    def test_earliest_user_wins(self, context):
        users = UserStorage()
        first = datetime(2026, 1, 1, tzinfo=timezone.utc)
        later = users.create(context, created_at=first + timedelta(days=1))
        earliest = users.create(context, created_at=first)
        assert users.get_user(context) is earliest
        assert users.get_user(context) is not later
