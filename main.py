#!/usr/bin/env python3
"""
Account CLI -- Drive the account provider against the hosted backends.

Usage:
  python main.py signup --first-name Ada --last-name Lovelace --email ada@example.com
  python main.py login --email ada@example.com
  python main.py verify --email ada@example.com --timeout 300
  python main.py profile --email ada@example.com
  python main.py reset-password --email ada@example.com
  python main.py delete --email ada@example.com

Passwords are prompted for unless --password is given.

Environment variables:
  ACCOUNT_DATABASE_URL  Data-store base URL (required).
  ACCOUNT_API_KEY       Identity backend web API key (required).
  ACCOUNT_VERIFICATION_POLL_INTERVAL  Seconds between verification checks (default 1).
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from account import Account
from auth.provider import AuthProvider
from auth.verification import VerificationOutcome
from core.errors import AccountError, BackendError, ConfigurationError


def _describe(error: Optional[Exception]) -> str:
    """One-line, user-facing description of a provider error."""
    if isinstance(error, AccountError):
        return error.code.value
    if isinstance(error, BackendError):
        return f"{error.code}: {error.message}" if error.code else error.message
    return str(error)


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


async def _login(provider: AuthProvider, args: argparse.Namespace) -> bool:
    result = await provider.login(args.email, _password(args))
    if not result.ok:
        print(f"  [!] Login failed: {_describe(result.error)}")
        return False
    return True


async def _run(command: str, provider: AuthProvider, args: argparse.Namespace) -> int:
    """Execute one CLI command. Returns the process exit code."""
    if command == "signup":
        result = await provider.create_account(args.first_name, args.last_name, args.email, _password(args))
        if not result.ok:
            print(f"  [!] Could not create account: {_describe(result.error)}")
            return 1
        await provider.send_email_verification()
        print(f"  Account created for {args.email}. Check your inbox to verify the address.")
        return 0

    if command == "reset-password":
        result = await provider.reset_password(args.email)
        if not result.ok:
            print(f"  [!] Could not send reset email: {_describe(result.error)}")
            return 1
        print(f"  Password reset email sent to {args.email}.")
        return 0

    if not await _login(provider, args):
        return 1

    if command == "login":
        state = "verified" if provider.is_user_email_verified else "not verified"
        print(f"  Signed in as {provider.user_email} (uid {provider.user_id}, email {state}).")
        return 0

    if command == "profile":
        result = await provider.get_user_info()
        if not result.ok:
            print(f"  [!] Could not load profile: {_describe(result.error)}")
            return 1
        print(json.dumps(result.value.as_ordered_dict(), indent=2))
        return 0

    if command == "verify":
        if provider.is_user_email_verified:
            print("  Email already verified.")
            return 0
        sent = await provider.send_email_verification()
        if not sent.ok:
            print(f"  [!] Could not send verification email: {_describe(sent.error)}")
            return 1
        print(f"  Verification email sent to {provider.user_email}. Waiting...", flush=True)
        watch = provider.listen_to_email_verification(lambda: print("  Email verified."), timeout=args.timeout)
        outcome = await watch.wait()
        return 0 if outcome is VerificationOutcome.VERIFIED else 1

    if command == "delete":
        result = await provider.delete_account()
        if not result.ok:
            print(f"  [!] Could not delete account: {_describe(result.error)}")
            return 1
        print("  Account deleted.")
        return 0

    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="account",
        description="Create, verify, and manage accounts against the configured backends.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log backend calls to stderr")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    def add(name: str, help_text: str, password: bool = True) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--email", required=True, help="Account email address")
        if password:
            p.add_argument("--password", default=None, help="Account password (prompted if omitted)")
        return p

    signup = add("signup", "Create an account and send a verification email")
    signup.add_argument("--first-name", required=True)
    signup.add_argument("--last-name", required=True)
    add("login", "Sign in and show session state")
    verify = add("verify", "Send a verification email and wait until it is confirmed")
    verify.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Stop waiting after this many seconds (default: wait indefinitely)",
    )
    add("profile", "Sign in and print the stored profile as JSON")
    add("reset-password", "Send a password reset email", password=False)
    add("delete", "Sign in and delete the account")
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        Account.setup()
        provider = Account.auth_provider()
    except (ValidationError, ConfigurationError) as e:
        print(f"  [!] Configuration error: {e}")
        sys.exit(1)

    try:
        code = asyncio.run(_run(args.command, provider, args))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
