"""
auth/firebase.py -- AuthProvider backed by an identity service and a realtime database.

This is the adapter that turns backend behaviour into the domain vocabulary:

  Error translation:
      Every BackendError is looked up in ERROR_TABLE by (operation, code).
      A hit becomes an AccountError; a miss returns the BackendError as-is, so
      callers can match on AccountErrorCode or fall back to the raw error.

  Profile location:
      users/<uid of the signed-in user>. The uid always comes from the
      current session, never from the caller, so profile calls without a
      session fail with userNotFound before touching the store.

  Blocking calls:
      Both backends are synchronous (requests / SQLAlchemy). Each call runs in
      a worker thread via asyncio.to_thread so the event loop stays free.

Layer rule: may import from core/ and datastore/. Nothing in core/ or
datastore/ imports from here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from auth.identity import (
    EMAIL_EXISTS,
    EMAIL_NOT_FOUND,
    INVALID_LOGIN_CREDENTIALS,
    INVALID_PASSWORD,
    MISSING_PASSWORD,
    FirebaseIdentityClient,
    IdentityBackend,
)
from auth.provider import AuthProvider
from auth.verification import VerificationWatch, poll_email_verification
from core.config import AccountConfig
from core.errors import AccountError, AccountErrorCode, BackendError, ConfigurationError
from core.models import UserInfo
from core.result import Result
from datastore.base import DataStore, Reference
from datastore.realtime import RealtimeDatabase

logger = logging.getLogger("account.auth.firebase")

USERS_COLLECTION = "users"

# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

# operation -> backend code -> domain error. Codes not listed for an
# operation pass through untranslated.
ERROR_TABLE: dict[str, dict[str, AccountErrorCode]] = {
    "create_account": {
        EMAIL_EXISTS: AccountErrorCode.EMAIL_ALREADY_IN_USE,
    },
    "login": {
        INVALID_PASSWORD: AccountErrorCode.INVALID_CREDENTIALS,
        EMAIL_NOT_FOUND: AccountErrorCode.INVALID_CREDENTIALS,
        # Returned instead of the two above when the backend hides whether
        # the email exists.
        INVALID_LOGIN_CREDENTIALS: AccountErrorCode.INVALID_CREDENTIALS,
        MISSING_PASSWORD: AccountErrorCode.INVALID_CREDENTIALS,
    },
}


def translate_error(operation: str, error: BackendError) -> Exception:
    """Return the domain error for a backend failure, or the failure itself."""
    code = ERROR_TABLE.get(operation, {}).get(error.code or "")
    if code is None:
        return error
    return AccountError(code)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class FirebaseAuthProvider(AuthProvider):
    """
    Usage:
        provider = FirebaseAuthProvider(AccountConfig(database_url=..., api_key=...))
        result = await provider.login("a@b.com", "secret")
        if not result.ok and result.error == AccountError(AccountErrorCode.INVALID_CREDENTIALS):
            ...

    identity and data_store default to the REST clients built from config.
    Pass alternatives (e.g. LocalIdentityBackend, SQLDataStore) to run
    without the hosted services.
    """

    def __init__(
        self,
        config: AccountConfig,
        identity: Optional[IdentityBackend] = None,
        data_store: Optional[DataStore] = None,
    ) -> None:
        if config is None:
            raise ConfigurationError("FirebaseAuthProvider requires an AccountConfig.")
        self.config = config
        self._identity = identity if identity is not None else FirebaseIdentityClient(config)
        self._data_store = (
            data_store
            if data_store is not None
            else RealtimeDatabase(config.database_url, timeout=config.request_timeout)
        )

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def is_user_logged_in(self) -> bool:
        return self._identity.current_user is not None

    @property
    def is_user_email_verified(self) -> bool:
        user = self._identity.current_user
        return user.is_email_verified if user is not None else False

    @property
    def user_email(self) -> Optional[str]:
        user = self._identity.current_user
        return user.email if user is not None else None

    @property
    def user_id(self) -> Optional[str]:
        user = self._identity.current_user
        return user.uid if user is not None else None

    # ------------------------------------------------------------------
    # Account lifecycle
    # ------------------------------------------------------------------

    async def create_account(self, first_name: str, last_name: str, email: str, password: str) -> Result[None]:
        """Create the account, then store an initial profile.

        The profile write is best effort: its failure is logged and does not
        change the result. The account exists either way and the profile
        can be saved again later.
        """
        try:
            await asyncio.to_thread(self._identity.create_user, email, password)
        except BackendError as e:
            logger.error("Error creating user: %s", e.message)
            return Result.failure(translate_error("create_account", e))

        saved = await self.save_user_info(UserInfo(email=email, first_name=first_name, last_name=last_name))
        if not saved.ok:
            # TODO: let callers tell "created, profile lost" apart from full success.
            logger.warning("Account %s created but initial profile was not saved: %s", email, saved.error)
        return Result.success()

    async def delete_account(self) -> Result[bool]:
        if self._identity.current_user is None:
            return Result.success(False)
        try:
            await asyncio.to_thread(self._identity.delete_current_user)
        except BackendError as e:
            logger.error("Error deleting user: %s", e.message)
            return Result.failure(translate_error("delete_account", e))
        logger.info("User account deleted")
        return Result.success(True)

    async def login(self, email: str, password: str) -> Result[bool]:
        try:
            user = await asyncio.to_thread(self._identity.sign_in, email, password)
        except BackendError as e:
            logger.error("Error signing in user: %s", e.message)
            return Result.failure(translate_error("login", e))
        logger.info("Signed in user: %s", user.email or "no email")
        return Result.success(user.is_email_verified)

    def logout(self) -> Result[None]:
        try:
            self._identity.sign_out()
        except BackendError as e:
            logger.error("Error logging out user: %s", e.message)
            return Result.failure(translate_error("logout", e))
        logger.info("User logged out")
        return Result.success()

    async def send_email_verification(self) -> Result[None]:
        try:
            await asyncio.to_thread(self._identity.send_email_verification)
        except BackendError as e:
            logger.error("Error sending email verification: %s", e.message)
            return Result.failure(translate_error("send_email_verification", e))
        logger.info("Email verification sent successfully")
        return Result.success()

    async def reset_password(self, email: str) -> Result[None]:
        try:
            await asyncio.to_thread(self._identity.send_password_reset, email)
        except BackendError as e:
            logger.error("Error sending password reset email: %s", e.message)
            return Result.failure(translate_error("reset_password", e))
        logger.info("Password reset email sent successfully")
        return Result.success()

    def listen_to_email_verification(
        self,
        on_verified: Callable[[], None],
        *,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> VerificationWatch:
        """Start polling on the running event loop and return a handle to it.

        Unset arguments fall back to the config's verification_* values,
        whose defaults poll every second with no bound.

        Raises RuntimeError when called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(
            poll_email_verification(
                self._refresh_email_verified,
                on_verified,
                interval=interval if interval is not None else self.config.verification_poll_interval,
                max_attempts=max_attempts if max_attempts is not None else self.config.verification_max_attempts,
                timeout=timeout if timeout is not None else self.config.verification_timeout,
            )
        )
        return VerificationWatch(task)

    async def _refresh_email_verified(self) -> bool:
        try:
            user = await asyncio.to_thread(self._identity.reload)
        except BackendError as e:
            # Transient; try again next cycle with whatever is cached.
            logger.warning("Could not reload user while waiting for verification: %s", e.message)
            user = self._identity.current_user
        return user is not None and user.is_email_verified

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def _user_reference(self, uid: str) -> Reference:
        return self._data_store.reference().child(USERS_COLLECTION).child(uid)

    async def save_user_info(
        self,
        user_info: UserInfo,
        on_complete: Optional[Callable[[Optional[Exception]], None]] = None,
    ) -> Result[None]:
        error: Optional[Exception] = None
        user = self._identity.current_user
        if user is None:
            error = AccountError(AccountErrorCode.USER_NOT_FOUND)
        else:
            try:
                reference = self._user_reference(user.uid)
                await asyncio.to_thread(reference.set_value, user_info.as_dict(), user.id_token)
            except BackendError as e:
                logger.error("Error saving user info for %s: %s", user.uid, e.message)
                error = AccountError(AccountErrorCode.ERROR_SAVING_DATA)
        if on_complete is not None:
            on_complete(error)
        return Result.failure(error) if error is not None else Result.success()

    async def get_user_info(self) -> Result[UserInfo]:
        user = self._identity.current_user
        if user is None:
            return Result.failure(AccountError(AccountErrorCode.USER_NOT_FOUND))
        try:
            reference = self._user_reference(user.uid)
            data = await asyncio.to_thread(reference.get_data, user.id_token)
        except BackendError as e:
            logger.error("Error fetching user info for %s: %s", user.uid, e.message)
            return Result.failure(e)
        return Result.success(UserInfo.from_data(data))
