"""Unit tests for EntityCodec."""

from datetime import datetime, timedelta, timezone

import pytest

from kv_auth import (
    AdapterAccount,
    AdapterSession,
    AdapterUser,
    DecodeError,
    EntityCodec,
    InvalidRecordError,
    UserDeletionMarker,
)
from tests.shared.fixtures.factories import AuthRecordFactory

KEY = "authjs:test"


class TestUserEncoding:
    """User records."""

    def setup_method(self):
        self.codec = EntityCodec()

    def test_encode_leaves_out_none_fields(self):
        encoded = self.codec.encode_user(AuthRecordFactory.bob())

        assert encoded == {
            "id": AuthRecordFactory.BOB_ID,
            "email": AuthRecordFactory.BOB_EMAIL,
        }

    def test_email_verified_is_iso_utc(self):
        encoded = self.codec.encode_user(AuthRecordFactory.alice())

        assert encoded["emailVerified"] == "2024-01-15T12:00:00+00:00"

    def test_decode_restores_user(self):
        alice = AuthRecordFactory.alice()

        decoded = self.codec.decode_user(self.codec.encode_user(alice), KEY)

        assert decoded == alice

    def test_empty_optional_strings_stay_empty(self):
        """An empty name or image is a value, not an absent field."""
        user = AdapterUser(id="u1", email="a@example.com", name="", image="")

        encoded = self.codec.encode_user(user)
        decoded = self.codec.decode_user(encoded, KEY)

        assert encoded["name"] == ""
        assert encoded["image"] == ""
        assert decoded == user
        assert decoded.name == ""
        assert decoded.image == ""

    def test_missing_optional_field_decodes_to_none(self):
        data = self.codec.encode_user(AuthRecordFactory.alice())
        del data["image"]

        decoded = self.codec.decode_user(data, KEY)

        assert decoded.image is None
        assert decoded.name == "Alice"

    @pytest.mark.parametrize("data", [None, {}])
    def test_absent_record_decodes_to_none(self, data):
        assert self.codec.decode_user(data, KEY) is None

    def test_missing_required_field_raises(self):
        data = self.codec.encode_user(AuthRecordFactory.alice())
        del data["email"]

        with pytest.raises(DecodeError) as exc_info:
            self.codec.decode_user(data, KEY)

        assert exc_info.value.entity == "user"
        assert exc_info.value.key == KEY
        assert exc_info.value.field == "email"

    def test_empty_required_field_raises(self):
        data = self.codec.encode_user(AuthRecordFactory.alice())
        data["id"] = ""

        with pytest.raises(DecodeError, match="'id'"):
            self.codec.decode_user(data, KEY)

    def test_encode_rejects_empty_email(self):
        with pytest.raises(InvalidRecordError) as exc_info:
            self.codec.encode_user(AdapterUser(id="u1", email=""))

        assert exc_info.value.entity == "user"
        assert exc_info.value.field == "email"

    def test_unparseable_datetime_raises(self):
        data = self.codec.encode_user(AuthRecordFactory.alice())
        data["emailVerified"] = "Mon Jan 15 2024"

        with pytest.raises(DecodeError, match="unparseable datetime"):
            self.codec.decode_user(data, KEY)


class TestAccountEncoding:
    """Provider account records."""

    def setup_method(self):
        self.codec = EntityCodec()

    def test_roundtrip_with_token_fields(self):
        account = AuthRecordFactory.github_account(AuthRecordFactory.ALICE_ID)

        encoded = self.codec.encode_account(account)

        assert encoded["userId"] == AuthRecordFactory.ALICE_ID
        assert encoded["providerAccountId"] == "gh-1001"
        assert encoded["expires_at"] == "1705320000"
        assert "refresh_token" not in encoded
        assert self.codec.decode_account(encoded, KEY) == account

    def test_encode_rejects_empty_type(self):
        account = AdapterAccount(
            user_id="u1",
            provider="github",
            provider_account_id="1",
            type="",
        )

        with pytest.raises(InvalidRecordError, match="'type'"):
            self.codec.encode_account(account)

    def test_invalid_record_error_is_a_value_error(self):
        account = AdapterAccount(user_id="", provider="github", provider_account_id="1", type="oauth")

        with pytest.raises(ValueError):
            self.codec.encode_account(account)

    def test_unparseable_expires_at_raises(self):
        data = self.codec.encode_account(AuthRecordFactory.github_account("u1"))
        data["expires_at"] = "soon"

        with pytest.raises(DecodeError, match="unparseable integer"):
            self.codec.decode_account(data, KEY)


class TestSessionEncoding:
    """Session records."""

    def setup_method(self):
        self.codec = EntityCodec()

    def test_naive_expiry_is_treated_as_utc(self):
        session = AdapterSession(
            session_token="tok1",
            user_id="u1",
            expires=datetime(2024, 2, 1, 8, 30),
        )

        encoded = self.codec.encode_session(session)
        decoded = self.codec.decode_session(encoded, KEY)

        assert encoded["expires"] == "2024-02-01T08:30:00+00:00"
        assert decoded.expires == datetime(2024, 2, 1, 8, 30, tzinfo=timezone.utc)

    def test_offset_expiry_is_normalized_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        session = AdapterSession(
            session_token="tok1",
            user_id="u1",
            expires=datetime(2024, 2, 1, 10, 30, tzinfo=plus_two),
        )

        encoded = self.codec.encode_session(session)

        assert encoded["expires"] == "2024-02-01T08:30:00+00:00"

    def test_missing_expiry_raises(self):
        with pytest.raises(DecodeError, match="'expires'"):
            self.codec.decode_session({"sessionToken": "tok1", "userId": "u1"}, KEY)


class TestAuxiliaryRecords:
    """Email index, deletion marker and verification token records."""

    def setup_method(self):
        self.codec = EntityCodec()

    def test_email_index(self):
        encoded = self.codec.encode_email_index("u1")

        assert encoded == {"userId": "u1"}
        assert self.codec.decode_email_index(encoded, KEY) == "u1"
        assert self.codec.decode_email_index({}, KEY) is None

    def test_deletion_marker_without_email(self):
        marker = UserDeletionMarker(user_id="u1", email=None, started_at=AuthRecordFactory.NOW)

        encoded = self.codec.encode_deletion_marker(marker)

        assert "email" not in encoded
        assert self.codec.decode_deletion_marker(encoded, KEY) == marker

    def test_verification_token_roundtrip(self):
        token = AuthRecordFactory.verification_token()

        encoded = self.codec.encode_verification_token(token)

        assert encoded["token"] == "verify-abc123"
        assert self.codec.decode_verification_token(encoded, KEY) == token
