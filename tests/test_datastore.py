"""Tests for datastore/ -- Reference paths, the REST database client, and the SQL store.

RealtimeDatabase is tested with its module-level session patched; SQLDataStore
runs on real SQLite (in-memory and file-backed).
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from core.errors import DataStoreError
from datastore.realtime import RealtimeDatabase
from datastore.store import SQLDataStore

_PROFILE = {"email": "a@b.com", "firstName": "A", "lastName": "B"}


# ---------------------------------------------------------------------------
# Reference
# ---------------------------------------------------------------------------


class TestReference:
    def test_child_builds_path(self, data_store):
        ref = data_store.reference().child("users").child("uid-1")
        assert ref.path == ("users", "uid-1")
        assert repr(ref) == "Reference('/users/uid-1')"

    @pytest.mark.parametrize("segment", ["", "a.b", "a/b", "$uid", "a#b", "a[0]"])
    def test_invalid_segments_rejected(self, data_store, segment):
        with pytest.raises(DataStoreError):
            data_store.reference().child(segment)


# ---------------------------------------------------------------------------
# RealtimeDatabase (REST)
# ---------------------------------------------------------------------------


def _ok(body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    return resp


class TestRealtimeDatabase:
    def test_set_value_puts_json_with_auth(self):
        db = RealtimeDatabase("https://db.example.com/", timeout=3)
        with patch("datastore.realtime._session") as session:
            session.put.return_value = _ok()
            db.reference().child("users").child("uid-1").set_value(_PROFILE, auth_token="tok")
        session.put.assert_called_once_with(
            "https://db.example.com/users/uid-1.json",
            json=_PROFILE,
            params={"auth": "tok"},
            timeout=3,
        )

    def test_get_data_returns_decoded_body(self):
        db = RealtimeDatabase("https://db.example.com")
        with patch("datastore.realtime._session") as session:
            session.get.return_value = _ok(_PROFILE)
            data = db.reference().child("users").child("uid-1").get_data()
        assert data == _PROFILE
        assert session.get.call_args.kwargs["params"] == {}

    def test_get_data_null_is_none(self):
        db = RealtimeDatabase("https://db.example.com")
        with patch("datastore.realtime._session") as session:
            session.get.return_value = _ok(None)
            assert db.reference().child("users").child("uid-1").get_data() is None

    def test_http_error_is_data_store_error(self):
        db = RealtimeDatabase("https://db.example.com")
        resp = MagicMock()
        resp.status_code = 401
        resp.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized", response=resp)
        with patch("datastore.realtime._session") as session:
            session.put.return_value = resp
            with pytest.raises(DataStoreError) as exc_info:
                db.reference().child("users").child("uid-1").set_value(_PROFILE)
        assert exc_info.value.code == "HTTP_401"

    def test_non_json_body_is_invalid_response(self):
        db = RealtimeDatabase("https://db.example.com")
        resp = _ok()
        resp.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        with patch("datastore.realtime._session") as session:
            session.get.return_value = resp
            with pytest.raises(DataStoreError) as exc_info:
                db.reference().child("users").child("uid-1").get_data()
        assert exc_info.value.code == "INVALID_RESPONSE"

    def test_transport_error_is_network_error(self):
        db = RealtimeDatabase("https://db.example.com")
        with patch("datastore.realtime._session") as session:
            session.get.side_effect = requests.Timeout("timed out")
            with pytest.raises(DataStoreError) as exc_info:
                db.reference().child("users").child("uid-1").get_data()
        assert exc_info.value.code == "NETWORK_ERROR"


# ---------------------------------------------------------------------------
# SQLDataStore
# ---------------------------------------------------------------------------


class TestSQLDataStore:
    def test_missing_node_is_none(self, data_store):
        assert data_store.reference().child("users").child("nobody").get_data() is None

    def test_set_then_get(self, data_store):
        ref = data_store.reference().child("users").child("uid-1")
        ref.set_value(_PROFILE)
        assert ref.get_data() == _PROFILE

    def test_overwrite_replaces_node(self, data_store):
        ref = data_store.reference().child("users").child("uid-1")
        ref.set_value(_PROFILE)
        ref.set_value({"email": "new@b.com"})
        assert ref.get_data() == {"email": "new@b.com"}

    def test_sibling_paths_are_independent(self, data_store):
        users = data_store.reference().child("users")
        users.child("uid-1").set_value({"email": "one@b.com"})
        users.child("uid-2").set_value({"email": "two@b.com"})
        assert users.child("uid-1").get_data() == {"email": "one@b.com"}

    def test_unserializable_value_rejected(self, data_store):
        with pytest.raises(DataStoreError) as exc_info:
            data_store.reference().child("users").child("uid-1").set_value({"when": object()})
        assert exc_info.value.code == "INVALID_DATA"

    def test_file_backed_store_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'data.db'}"
        first = SQLDataStore(url)
        first.reference().child("users").child("uid-1").set_value(_PROFILE)
        first.close()

        second = SQLDataStore(url)
        assert second.reference().child("users").child("uid-1").get_data() == _PROFILE
        second.close()
