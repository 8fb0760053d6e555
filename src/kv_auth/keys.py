"""Key encoding for adapter records.

Keys are ``:``-joined segments under a fixed prefix. Segments are not
escaped, so injectivity rests on a precondition: every segment that is
followed by another segment must be non-empty and free of ``:``. Only the
final segment of a key (provider account id, session token, email,
verification identifier) may contain ``:``.

User ids are always checked because ``user:<id>`` and
``user:<id>:accounts`` share a prefix.
"""

from kv_auth.exceptions import InvalidKeySegmentError

DEFAULT_PREFIX = "authjs"
SEPARATOR = ":"


def _segment(name: str, value: str) -> str:
    if not value or SEPARATOR in value:
        raise InvalidKeySegmentError(name, value)
    return value


def _tail(name: str, value: str) -> str:
    if not value:
        raise InvalidKeySegmentError(name, value)
    return value


class KeyEncoder:
    """Deterministic mapping from (entity type, identifier) to store keys."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self._prefix = _segment("key prefix", prefix)

    @property
    def prefix(self) -> str:
        return self._prefix

    def _key(self, *segments: str) -> str:
        return SEPARATOR.join((self._prefix, *segments))

    def user(self, user_id: str) -> str:
        return self._key("user", _segment("user id", user_id))

    def user_email(self, email: str) -> str:
        return self._key("user_email", _tail("email", email))

    def user_accounts(self, user_id: str) -> str:
        return self._key("user", _segment("user id", user_id), "accounts")

    def user_sessions(self, user_id: str) -> str:
        return self._key("user", _segment("user id", user_id), "sessions")

    def user_deletion(self, user_id: str) -> str:
        return self._key("user_deletion", _segment("user id", user_id))

    def provider_account(self, provider: str, provider_account_id: str) -> str:
        return self._key(
            "provider_account",
            self.account_member(provider, provider_account_id),
        )

    def account_member(self, provider: str, provider_account_id: str) -> str:
        """Set member naming one provider account in a user's account set."""
        return SEPARATOR.join(
            (
                _segment("provider", provider),
                _tail("provider account id", provider_account_id),
            ),
        )

    @staticmethod
    def parse_account_member(member: str) -> tuple[str, str]:
        """Split an account set member back into (provider, provider_account_id)."""
        provider, sep, provider_account_id = member.partition(SEPARATOR)
        if not sep or not provider or not provider_account_id:
            raise InvalidKeySegmentError("account member", member)
        return provider, provider_account_id

    def session(self, session_token: str) -> str:
        return self._key("session", _tail("session token", session_token))

    def verification_token(self, identifier: str) -> str:
        return self._key("verification_token", _tail("identifier", identifier))
