"""Record shapes exchanged with the authentication framework.

These are pure data transfer objects. Field names follow Python
conventions; the stored field names are defined by the codec.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True)
class AdapterUser:
    """A user as seen by the authentication framework."""

    id: str
    email: str
    name: str | None = None
    email_verified: datetime | None = None
    image: str | None = None

    @classmethod
    def create(
        cls,
        email: str,
        name: str | None = None,
        email_verified: datetime | None = None,
        image: str | None = None,
    ) -> "AdapterUser":
        """Create a user with a freshly generated id."""
        return cls(
            id=str(uuid4()),
            email=email,
            name=name,
            email_verified=email_verified,
            image=image,
        )


@dataclass(frozen=True)
class AdapterAccount:
    """A link between a user and an external provider account.

    ``type`` is the framework's account kind ("oauth", "oidc", "email",
    "webauthn"). Token fields are whatever the provider returned.
    """

    user_id: str
    provider: str
    provider_account_id: str
    type: str
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None
    token_type: str | None = None
    scope: str | None = None
    id_token: str | None = None
    session_state: str | None = None


@dataclass(frozen=True)
class AdapterSession:
    session_token: str
    user_id: str
    expires: datetime


@dataclass(frozen=True)
class SessionUpdate:
    """Partial session update; ``None`` fields keep their stored value."""

    session_token: str
    user_id: str | None = None
    expires: datetime | None = None


@dataclass(frozen=True)
class SessionAndUser:
    session: AdapterSession
    user: AdapterUser


@dataclass(frozen=True)
class VerificationToken:
    """Single-use token, e.g. for passwordless email sign-in."""

    identifier: str
    token: str
    expires: datetime


@dataclass(frozen=True)
class UserDeletionMarker:
    """Written before a user deletion cascade starts and removed once it ends.

    A marker that outlives its cascade identifies a deletion to resume.
    ``email`` is None when the user record was too damaged to read one.
    """

    user_id: str
    email: str | None
    started_at: datetime
