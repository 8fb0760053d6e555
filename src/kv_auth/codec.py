"""Conversion between adapter records and flat hash field maps.

Required fields are always written and must be non-empty. Optional
fields are written only when they hold a value, so an absent field
decodes to ``None`` while a stored empty string stays an empty string.
Datetimes are stored as ISO-8601 in UTC; integers in base 10.

An empty or missing mapping decodes to ``None`` (record absent). A
mapping missing a required field raises DecodeError (record malformed).
Encoding a record with an empty required field raises
InvalidRecordError, so such a record never reaches the store.
"""

from collections.abc import Mapping
from datetime import datetime

from kv_auth.exceptions import DecodeError, InvalidRecordError
from kv_auth.schemas import (
    AdapterAccount,
    AdapterSession,
    AdapterUser,
    UserDeletionMarker,
    VerificationToken,
)
from kv_auth.time import to_utc


def _encode_datetime(value: datetime) -> str:
    return to_utc(value).isoformat()


class _FieldWriter:
    """Builds a field map, rejecting empty required values."""

    def __init__(self, entity: str):
        self._entity = entity
        self.fields: dict[str, str] = {}

    def required(self, field: str, value: str) -> "_FieldWriter":
        if not value:
            raise InvalidRecordError(self._entity, field)
        self.fields[field] = value
        return self

    def required_datetime(self, field: str, value: datetime) -> "_FieldWriter":
        self.fields[field] = _encode_datetime(value)
        return self

    def optional(self, field: str, value: str | None) -> "_FieldWriter":
        if value is not None:
            self.fields[field] = value
        return self

    def optional_datetime(self, field: str, value: datetime | None) -> "_FieldWriter":
        if value is not None:
            self.fields[field] = _encode_datetime(value)
        return self

    def optional_int(self, field: str, value: int | None) -> "_FieldWriter":
        if value is not None:
            self.fields[field] = str(value)
        return self


class _FieldReader:
    """Reads typed fields from a fetched mapping, raising DecodeError on gaps."""

    def __init__(self, entity: str, key: str, data: Mapping[str, str]):
        self._entity = entity
        self._key = key
        self._data = data

    def _fail(self, field: str, reason: str) -> DecodeError:
        return DecodeError(self._entity, self._key, field, reason)

    def required(self, field: str) -> str:
        value = self._data.get(field)
        if not value:
            raise self._fail(field, "missing required field")
        return value

    def optional(self, field: str) -> str | None:
        return self._data.get(field)

    def _parse_datetime(self, field: str, raw: str) -> datetime:
        try:
            return to_utc(datetime.fromisoformat(raw))
        except ValueError as e:
            raise self._fail(field, "unparseable datetime in field") from e

    def required_datetime(self, field: str) -> datetime:
        return self._parse_datetime(field, self.required(field))

    def optional_datetime(self, field: str) -> datetime | None:
        raw = self.optional(field)
        return None if raw is None else self._parse_datetime(field, raw)

    def optional_int(self, field: str) -> int | None:
        raw = self.optional(field)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as e:
            raise self._fail(field, "unparseable integer in field") from e


class EntityCodec:
    """Encodes adapter records to field maps and decodes them back."""

    # Users
    def encode_user(self, user: AdapterUser) -> dict[str, str]:
        return (
            _FieldWriter("user")
            .required("id", user.id)
            .optional("name", user.name)
            .required("email", user.email)
            .optional_datetime("emailVerified", user.email_verified)
            .optional("image", user.image)
            .fields
        )

    def decode_user(
        self,
        data: Mapping[str, str] | None,
        key: str,
    ) -> AdapterUser | None:
        if not data:
            return None
        reader = _FieldReader("user", key, data)
        return AdapterUser(
            id=reader.required("id"),
            email=reader.required("email"),
            name=reader.optional("name"),
            email_verified=reader.optional_datetime("emailVerified"),
            image=reader.optional("image"),
        )

    # Accounts
    def encode_account(self, account: AdapterAccount) -> dict[str, str]:
        return (
            _FieldWriter("account")
            .required("userId", account.user_id)
            .required("provider", account.provider)
            .required("providerAccountId", account.provider_account_id)
            .required("type", account.type)
            .optional("access_token", account.access_token)
            .optional("refresh_token", account.refresh_token)
            .optional_int("expires_at", account.expires_at)
            .optional("token_type", account.token_type)
            .optional("scope", account.scope)
            .optional("id_token", account.id_token)
            .optional("session_state", account.session_state)
            .fields
        )

    def decode_account(
        self,
        data: Mapping[str, str] | None,
        key: str,
    ) -> AdapterAccount | None:
        if not data:
            return None
        reader = _FieldReader("account", key, data)
        return AdapterAccount(
            user_id=reader.required("userId"),
            provider=reader.required("provider"),
            provider_account_id=reader.required("providerAccountId"),
            type=reader.required("type"),
            access_token=reader.optional("access_token"),
            refresh_token=reader.optional("refresh_token"),
            expires_at=reader.optional_int("expires_at"),
            token_type=reader.optional("token_type"),
            scope=reader.optional("scope"),
            id_token=reader.optional("id_token"),
            session_state=reader.optional("session_state"),
        )

    # Sessions
    def encode_session(self, session: AdapterSession) -> dict[str, str]:
        return (
            _FieldWriter("session")
            .required("sessionToken", session.session_token)
            .required("userId", session.user_id)
            .required_datetime("expires", session.expires)
            .fields
        )

    def decode_session(
        self,
        data: Mapping[str, str] | None,
        key: str,
    ) -> AdapterSession | None:
        if not data:
            return None
        reader = _FieldReader("session", key, data)
        return AdapterSession(
            session_token=reader.required("sessionToken"),
            user_id=reader.required("userId"),
            expires=reader.required_datetime("expires"),
        )

    # Verification tokens
    def encode_verification_token(self, token: VerificationToken) -> dict[str, str]:
        return (
            _FieldWriter("verification token")
            .required("identifier", token.identifier)
            .required("token", token.token)
            .required_datetime("expires", token.expires)
            .fields
        )

    def decode_verification_token(
        self,
        data: Mapping[str, str] | None,
        key: str,
    ) -> VerificationToken | None:
        if not data:
            return None
        reader = _FieldReader("verification token", key, data)
        return VerificationToken(
            identifier=reader.required("identifier"),
            token=reader.required("token"),
            expires=reader.required_datetime("expires"),
        )

    # Auxiliary records
    def encode_email_index(self, user_id: str) -> dict[str, str]:
        return _FieldWriter("email index").required("userId", user_id).fields

    def decode_email_index(self, data: Mapping[str, str] | None, key: str) -> str | None:
        if not data:
            return None
        return _FieldReader("email index", key, data).required("userId")

    def encode_deletion_marker(self, marker: UserDeletionMarker) -> dict[str, str]:
        return (
            _FieldWriter("user deletion marker")
            .required("userId", marker.user_id)
            .optional("email", marker.email)
            .required_datetime("startedAt", marker.started_at)
            .fields
        )

    def decode_deletion_marker(
        self,
        data: Mapping[str, str] | None,
        key: str,
    ) -> UserDeletionMarker | None:
        if not data:
            return None
        reader = _FieldReader("user deletion marker", key, data)
        return UserDeletionMarker(
            user_id=reader.required("userId"),
            email=reader.optional("email"),
            started_at=reader.required_datetime("startedAt"),
        )
