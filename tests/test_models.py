"""Unit tests for core/models.py -- UserInfo field views and reconstruction.

Pure logic, no I/O. Reconstruction is the important path: whatever the data
store hands back, UserInfo.from_data() must produce a value and never raise.
"""

from dataclasses import FrozenInstanceError, replace

import pytest

from core.models import USER_INFO_KEYS, UserInfo

_FULL = UserInfo(
    email="ada@example.com",
    first_name="Ada",
    last_name="Lovelace",
    address="12 St James's Square",
    railcard="16-25",
    photocard="PC-1815",
)


class TestFromData:
    @pytest.mark.parametrize("payload", [None, [], "ada@example.com", 42, {}])
    def test_non_mapping_or_empty_payload_gives_blank_profile(self, payload):
        info = UserInfo.from_data(payload)
        assert info == UserInfo(email="", first_name="", last_name="")

    def test_partial_payload_defaults_missing_fields(self):
        info = UserInfo.from_data({"email": "ada@example.com", "lastName": "Lovelace"})
        assert info.email == "ada@example.com"
        assert info.first_name == ""
        assert info.last_name == "Lovelace"
        assert info.address == ""
        assert info.railcard == ""
        assert info.photocard == ""

    def test_mistyped_fields_become_empty_strings(self):
        info = UserInfo.from_data(
            {"email": "ada@example.com", "firstName": 42, "lastName": None, "address": ["x"], "railcard": {"a": 1}}
        )
        assert info.email == "ada@example.com"
        assert info.first_name == ""
        assert info.last_name == ""
        assert info.address == ""
        assert info.railcard == ""

    def test_unknown_keys_are_ignored(self):
        info = UserInfo.from_data({**_FULL.as_dict(), "legacyField": "x"})
        assert info == _FULL

    def test_stored_keys_are_camel_case(self):
        # Attribute names are snake_case; stored keys are what existing records use.
        info = UserInfo.from_data({"first_name": "Ada", "firstName": "Augusta"})
        assert info.first_name == "Augusta"


class TestFieldViews:
    def test_ordered_view_follows_declaration_order(self):
        assert list(_FULL.as_ordered_dict().keys()) == [
            "email",
            "firstName",
            "lastName",
            "address",
            "railcard",
            "photocard",
        ]
        assert tuple(_FULL.as_ordered_dict().keys()) == USER_INFO_KEYS

    def test_both_views_carry_the_same_data(self):
        assert _FULL.as_dict() == dict(_FULL.as_ordered_dict())

    def test_view_rebuilds_equal_value(self):
        assert UserInfo.from_data(_FULL.as_dict()) == _FULL

    def test_optional_fields_default_to_empty(self):
        info = UserInfo(email="a@b.com", first_name="A", last_name="B")
        assert info.as_dict() == {
            "email": "a@b.com",
            "firstName": "A",
            "lastName": "B",
            "address": "",
            "railcard": "",
            "photocard": "",
        }


class TestValueSemantics:
    def test_equality_is_structural(self):
        assert replace(_FULL) == _FULL
        assert replace(_FULL, photocard="") != _FULL

    def test_user_info_is_immutable(self):
        with pytest.raises(FrozenInstanceError):
            _FULL.email = "other@example.com"
