"""
auth/provider.py -- The account capability interface.

Application code depends on AuthProvider and nothing else. Each backend pair
(identity + data store) gets an adapter that implements it; FirebaseAuthProvider
is the production one.

Contract for every async operation: backend outcomes come back as a Result.
Nothing here raises for a failed login or a failed write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

from auth.verification import VerificationWatch
from core.models import UserInfo
from core.result import Result


class AuthProvider(ABC):
    # ------------------------------------------------------------------
    # Session state -- cached reads, no backend calls
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def is_user_logged_in(self) -> bool: ...

    @property
    @abstractmethod
    def is_user_email_verified(self) -> bool: ...

    @property
    @abstractmethod
    def user_email(self) -> Optional[str]: ...

    @property
    @abstractmethod
    def user_id(self) -> Optional[str]: ...

    # ------------------------------------------------------------------
    # Account lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_account(self, first_name: str, last_name: str, email: str, password: str) -> Result[None]:
        """Create the account, then best-effort store its initial profile."""

    @abstractmethod
    async def delete_account(self) -> Result[bool]:
        """Delete the signed-in account. The value is whether an account was deleted."""

    @abstractmethod
    async def login(self, email: str, password: str) -> Result[bool]:
        """Sign in. The value is whether the account's email is already verified."""

    @abstractmethod
    def logout(self) -> Result[None]: ...

    @abstractmethod
    async def send_email_verification(self) -> Result[None]: ...

    @abstractmethod
    async def reset_password(self, email: str) -> Result[None]: ...

    @abstractmethod
    def listen_to_email_verification(
        self,
        on_verified: Callable[[], None],
        *,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> VerificationWatch:
        """Poll until the signed-in user's email is verified, then call on_verified once."""

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    @abstractmethod
    async def save_user_info(
        self,
        user_info: UserInfo,
        on_complete: Optional[Callable[[Optional[Exception]], None]] = None,
    ) -> Result[None]:
        """Upsert the signed-in user's profile.

        on_complete, when given, is called exactly once with the error (or None).
        """

    @abstractmethod
    async def get_user_info(self) -> Result[UserInfo]: ...
