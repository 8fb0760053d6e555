"""Authentication storage adapter over a key-value store.

Maps users, provider accounts, sessions and verification tokens onto hash
records, with set records as reverse lookups:

- ``user:<id>``                       user record (canonical)
- ``user_email:<email>``              email -> user id index
- ``user:<id>:accounts``              set of ``<provider>:<providerAccountId>``
- ``user:<id>:sessions``              set of session tokens
- ``provider_account:<p>:<id>``       provider account record
- ``session:<token>``                 session record
- ``verification_token:<identifier>`` single-use token record
- ``user_deletion:<id>``              marker for an in-progress user deletion

The store offers no multi-key transactions. Each operation is a sequence
of single-key calls ordered so that an interruption leaves, at worst, an
index entry with no backing record. Readers treat such entries as absent.
"""

import logging
from collections.abc import Awaitable
from typing import TypeVar

from kv_auth.codec import EntityCodec
from kv_auth.exceptions import DecodeError, InvalidKeySegmentError
from kv_auth.keys import KeyEncoder
from kv_auth.schemas import (
    AdapterAccount,
    AdapterSession,
    AdapterUser,
    SessionAndUser,
    SessionUpdate,
    UserDeletionMarker,
    VerificationToken,
)
from kv_auth.store import KeyValueStore
from kv_auth.time import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueAuthAdapter:
    """
    Storage adapter implementing the authentication framework's contract.

    Operations return ``None`` for absent records and for records that
    fail to decode (the latter is logged); DecodeError never escapes the
    adapter. Records are encoded before the first write, so invalid input
    raises InvalidKeySegmentError or InvalidRecordError without touching
    the store. Store failures propagate unchanged as StoreUnavailableError;
    nothing is retried.

    Known limitation: ``update_session``, ``update_user`` and
    ``link_account`` read then write without a version check, so
    concurrent writers to the same key can lose updates. Verification
    token consumption is atomic.

    Examples
    --------
    >>> store = RedisKeyValueStore(redis_client)
    >>> adapter = KeyValueAuthAdapter(store)
    >>> user = await adapter.create_user(AdapterUser.create("a@example.com"))
    >>> await adapter.get_user_by_email("a@example.com")
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        keys: KeyEncoder | None = None,
        codec: EntityCodec | None = None,
        cascade_sessions: bool = False,
        enforce_expiry: bool = False,
    ):
        """Initialize the adapter.

        Parameters
        ----------
        store
            Connected key-value store; the adapter does not manage its lifecycle
        keys
            Key encoder (default prefix "authjs")
        codec
            Entity codec
        cascade_sessions
            Delete a user's sessions when the user is deleted
        enforce_expiry
            Let the store expire session and verification token records
            at their ``expires`` time
        """
        self._store = store
        self._keys = keys or KeyEncoder()
        self._codec = codec or EntityCodec()
        self._cascade_sessions = cascade_sessions
        self._enforce_expiry = enforce_expiry

    @property
    def keys(self) -> KeyEncoder:
        return self._keys

    async def _tolerant(self, read: Awaitable[T | None]) -> T | None:
        try:
            return await read
        except DecodeError as e:
            logger.warning("Treating malformed record as absent: %s", e)
            return None

    async def _read_user(self, user_id: str) -> AdapterUser | None:
        key = self._keys.user(user_id)
        return self._codec.decode_user(await self._store.hash_get(key), key)

    async def _read_account(
        self,
        provider: str,
        provider_account_id: str,
    ) -> AdapterAccount | None:
        key = self._keys.provider_account(provider, provider_account_id)
        return self._codec.decode_account(await self._store.hash_get(key), key)

    async def _read_session(self, session_token: str) -> AdapterSession | None:
        key = self._keys.session(session_token)
        return self._codec.decode_session(await self._store.hash_get(key), key)

    async def _read_deletion_marker(self, user_id: str) -> UserDeletionMarker | None:
        key = self._keys.user_deletion(user_id)
        return self._codec.decode_deletion_marker(await self._store.hash_get(key), key)

    # User management

    async def create_user(self, user: AdapterUser) -> AdapterUser:
        """
        Store a new user.

        Both keys are encoded before anything is written. The user record
        goes first, then the email index, so an interrupted create leaves
        an unreachable record rather than an index pointing nowhere.

        Parameters
        ----------
        user
            The user to store

        Returns
        -------
        The stored user

        Raises
        ------
        InvalidKeySegmentError
            If the id or email cannot be encoded into a key
        InvalidRecordError
            If a required field is empty
        """
        user_key = self._keys.user(user.id)
        email_key = self._keys.user_email(user.email)
        record = self._codec.encode_user(user)

        await self._store.hash_replace(user_key, record)
        await self._store.hash_set(email_key, self._codec.encode_email_index(user.id))
        logger.info("Created user: %s", user.id)
        return user

    async def get_user(self, user_id: str) -> AdapterUser | None:
        return await self._tolerant(self._read_user(user_id))

    async def get_user_by_email(self, email: str) -> AdapterUser | None:
        """
        Find a user through the email index.

        An index entry whose user is gone, or whose user now has a
        different email, is stale and yields None.
        """
        index_key = self._keys.user_email(email)
        user_id = await self._tolerant(self._lookup_email_index(index_key))
        if user_id is None:
            return None

        user = await self.get_user(user_id)
        if user is None or user.email != email:
            logger.warning("Stale email index %s -> user %s", index_key, user_id)
            return None
        return user

    async def _lookup_email_index(self, index_key: str) -> str | None:
        return self._codec.decode_email_index(await self._store.hash_get(index_key), index_key)

    async def update_user(self, user: AdapterUser) -> AdapterUser:
        """
        Overwrite a user record and keep the email index in step.

        The stored record is replaced as a whole, so a field set to None
        is removed. When the email changes, the new index entry is written
        before the old one is removed. The old entry is only removed while
        it still points at this user.

        Parameters
        ----------
        user
            The complete user record to store

        Returns
        -------
        The stored user
        """
        user_key = self._keys.user(user.id)
        email_key = self._keys.user_email(user.email)
        record = self._codec.encode_user(user)
        previous = await self.get_user(user.id)

        await self._store.hash_replace(user_key, record)
        await self._store.hash_set(email_key, self._codec.encode_email_index(user.id))
        if previous is not None and previous.email != user.email:
            await self._store.hash_delete_if_field_equals(
                self._keys.user_email(previous.email),
                "userId",
                user.id,
            )
            logger.info("Changed email for user: %s", user.id)

        logger.debug("Updated user: %s", user.id)
        return user

    async def delete_user(self, user_id: str) -> None:
        """
        Delete a user and cascade to its linked accounts.

        A deletion marker is written before the cascade and removed after
        it. Every step is idempotent, so a failed deletion can be finished
        with ``resume_user_deletion`` (or by calling ``delete_user`` again).
        Sessions are only removed when the adapter was built with
        ``cascade_sessions=True``. A malformed user record is deleted too;
        its email index is cleaned up only if the record still names an
        email.

        Parameters
        ----------
        user_id
            The user's identifier

        Raises
        ------
        StoreUnavailableError
            If the store fails mid-sequence; the marker remains
        """
        if await self.resume_user_deletion(user_id):
            return

        user_key = self._keys.user(user_id)
        data = await self._store.hash_get(user_key)
        if not data:
            logger.debug("Delete requested for unknown user: %s", user_id)
            return

        try:
            email = self._codec.decode_user(data, user_key).email
        except DecodeError as e:
            logger.warning("Deleting malformed user record: %s", e)
            email = data.get("email") or None

        marker = UserDeletionMarker(user_id=user_id, email=email, started_at=utc_now())
        await self._store.hash_replace(
            self._keys.user_deletion(user_id),
            self._codec.encode_deletion_marker(marker),
        )
        await self._run_user_deletion(marker)

    async def resume_user_deletion(self, user_id: str) -> bool:
        """
        Finish a user deletion that was interrupted.

        A malformed marker is treated as absent.

        Parameters
        ----------
        user_id
            The user's identifier

        Returns
        -------
        True if a pending deletion was found and completed, False otherwise
        """
        marker = await self._tolerant(self._read_deletion_marker(user_id))
        if marker is None:
            return False

        logger.warning(
            "Resuming deletion of user %s started at %s",
            user_id,
            marker.started_at.isoformat(),
        )
        await self._run_user_deletion(marker)
        return True

    async def _run_user_deletion(self, marker: UserDeletionMarker) -> None:
        user_id = marker.user_id
        try:
            await self._store.delete(self._keys.user(user_id))
            if marker.email is not None:
                await self._store.hash_delete_if_field_equals(
                    self._keys.user_email(marker.email),
                    "userId",
                    user_id,
                )
            await self._delete_user_accounts(user_id)
            if self._cascade_sessions:
                await self._delete_user_sessions(user_id)
        except Exception:
            logger.error(
                "Deletion of user %s interrupted; marker left for resume_user_deletion",
                user_id,
            )
            raise

        await self._store.delete(self._keys.user_deletion(user_id))
        logger.info("Deleted user: %s", user_id)

    async def _delete_user_accounts(self, user_id: str) -> None:
        accounts_key = self._keys.user_accounts(user_id)
        for member in sorted(await self._store.set_members(accounts_key)):
            try:
                provider, provider_account_id = self._keys.parse_account_member(member)
            except InvalidKeySegmentError:
                logger.warning("Skipping malformed account member %r of user %s", member, user_id)
                continue
            # Only remove the record while it still belongs to this user
            await self._store.hash_delete_if_field_equals(
                self._keys.provider_account(provider, provider_account_id),
                "userId",
                user_id,
            )
        await self._store.delete(accounts_key)

    async def _delete_user_sessions(self, user_id: str) -> None:
        sessions_key = self._keys.user_sessions(user_id)
        for session_token in await self._store.set_members(sessions_key):
            await self._store.hash_delete_if_field_equals(
                self._keys.session(session_token),
                "userId",
                user_id,
            )
        await self._store.delete(sessions_key)

    # Account management

    async def link_account(self, account: AdapterAccount) -> AdapterAccount:
        """
        Link a provider account to a user.

        The set membership is added before the record is written. If the
        provider account was linked to another user, that user's set
        entry is removed after the record is rewritten.

        Parameters
        ----------
        account
            The account to link

        Returns
        -------
        The stored account
        """
        member = self._keys.account_member(account.provider, account.provider_account_id)
        accounts_key = self._keys.user_accounts(account.user_id)
        account_key = self._keys.provider_account(account.provider, account.provider_account_id)
        record = self._codec.encode_account(account)
        previous = await self.get_account(account.provider, account.provider_account_id)

        await self._store.set_add(accounts_key, member)
        await self._store.hash_replace(account_key, record)
        if previous is not None and previous.user_id != account.user_id:
            await self._store.set_remove(self._keys.user_accounts(previous.user_id), member)
            logger.warning(
                "Moved %s account from user %s to user %s",
                account.provider,
                previous.user_id,
                account.user_id,
            )

        logger.info("Linked %s account for user %s", account.provider, account.user_id)
        return account

    async def unlink_account(
        self,
        provider: str,
        provider_account_id: str,
    ) -> AdapterAccount | None:
        """
        Unlink a provider account.

        Unlinking an account that is not linked is a no-op. A malformed
        account record is deleted and reported as None; its owner's set
        member is left behind for readers to skip.

        Returns
        -------
        The removed account, or None if there was nothing to unlink
        """
        account_key = self._keys.provider_account(provider, provider_account_id)
        try:
            account = await self._read_account(provider, provider_account_id)
        except DecodeError as e:
            logger.warning("Removing malformed %s account record: %s", provider, e)
            await self._store.delete(account_key)
            return None
        if account is None:
            logger.debug("Unlink requested for unknown %s account", provider)
            return None

        await self._store.set_remove(
            self._keys.user_accounts(account.user_id),
            self._keys.account_member(provider, provider_account_id),
        )
        await self._store.delete(account_key)
        logger.info("Unlinked %s account from user %s", provider, account.user_id)
        return account

    async def get_account(
        self,
        provider: str,
        provider_account_id: str,
    ) -> AdapterAccount | None:
        return await self._tolerant(self._read_account(provider, provider_account_id))

    async def get_accounts_for_user(self, user_id: str) -> list[AdapterAccount]:
        """Return the accounts linked to a user, skipping dangling set members."""
        accounts: list[AdapterAccount] = []
        for member in sorted(await self._store.set_members(self._keys.user_accounts(user_id))):
            try:
                provider, provider_account_id = self._keys.parse_account_member(member)
            except InvalidKeySegmentError:
                logger.warning("Skipping malformed account member %r of user %s", member, user_id)
                continue

            account = await self.get_account(provider, provider_account_id)
            if account is None or account.user_id != user_id:
                logger.warning("Skipping dangling account member %r of user %s", member, user_id)
                continue
            accounts.append(account)
        return accounts

    async def get_user_by_account(
        self,
        provider: str,
        provider_account_id: str,
    ) -> AdapterUser | None:
        account = await self.get_account(provider, provider_account_id)
        if account is None:
            return None
        return await self.get_user(account.user_id)

    # Session management

    async def create_session(self, session: AdapterSession) -> AdapterSession:
        key = self._keys.session(session.session_token)
        sessions_key = self._keys.user_sessions(session.user_id)
        record = self._codec.encode_session(session)

        await self._store.set_add(sessions_key, session.session_token)
        await self._store.hash_replace(key, record)
        if self._enforce_expiry:
            await self._store.expire_at(key, session.expires)

        logger.debug("Created session for user %s", session.user_id)
        return session

    async def get_session_and_user(self, session_token: str) -> SessionAndUser | None:
        """
        Return a session together with its user.

        Expiry is not checked here; a stored session is returned as long
        as both records exist.
        """
        session = await self._tolerant(self._read_session(session_token))
        if session is None:
            return None

        user = await self.get_user(session.user_id)
        if user is None:
            return None
        return SessionAndUser(session=session, user=user)

    async def update_session(self, update: SessionUpdate) -> AdapterSession | None:
        """
        Merge the supplied fields onto an existing session.

        This is a read-modify-write: a concurrent update to the same
        session between the read and the write is lost.

        Parameters
        ----------
        update
            Session token plus the fields to replace

        Returns
        -------
        The merged session, or None if no session exists for the token or
        the stored session is malformed (nothing is written then)
        """
        original = await self._tolerant(self._read_session(update.session_token))
        if original is None:
            return None

        merged = AdapterSession(
            session_token=original.session_token,
            user_id=update.user_id if update.user_id is not None else original.user_id,
            expires=update.expires if update.expires is not None else original.expires,
        )
        key = self._keys.session(merged.session_token)
        record = self._codec.encode_session(merged)

        if merged.user_id != original.user_id:
            await self._store.set_add(self._keys.user_sessions(merged.user_id), merged.session_token)
        await self._store.hash_replace(key, record)
        if self._enforce_expiry:
            await self._store.expire_at(key, merged.expires)
        if merged.user_id != original.user_id:
            await self._store.set_remove(
                self._keys.user_sessions(original.user_id),
                merged.session_token,
            )

        logger.debug("Updated session for user %s", merged.user_id)
        return merged

    async def delete_session(self, session_token: str) -> AdapterSession | None:
        session = await self._tolerant(self._read_session(session_token))
        await self._store.delete(self._keys.session(session_token))
        if session is not None:
            await self._store.set_remove(self._keys.user_sessions(session.user_id), session_token)
            logger.debug("Deleted session for user %s", session.user_id)
        return session

    # Verification tokens

    async def create_verification_token(
        self,
        verification_token: VerificationToken,
    ) -> VerificationToken:
        key = self._keys.verification_token(verification_token.identifier)
        record = self._codec.encode_verification_token(verification_token)
        await self._store.hash_replace(key, record)
        if self._enforce_expiry:
            await self._store.expire_at(key, verification_token.expires)
        return verification_token

    async def use_verification_token(
        self,
        identifier: str,
        token: str,
    ) -> VerificationToken | None:
        """
        Consume a verification token.

        The compare and the delete happen in one atomic store call, so a
        token can be consumed at most once even under concurrent use.

        Returns
        -------
        The consumed token, or None if no token matched (nothing is deleted)
        """
        key = self._keys.verification_token(identifier)
        data = await self._store.hash_delete_if_field_equals(key, "token", token)
        if data is None:
            logger.debug("No matching verification token for %s", identifier)
            return None
        try:
            return self._codec.decode_verification_token(data, key)
        except DecodeError as e:
            logger.warning("Consumed a malformed verification token: %s", e)
            return None
