# main.py
# CLI entry point

import argparse
import getpass
import os
import sys

import structlog
from pydantic import ValidationError

from schemas.commands import (
    AddCommand,
    DeleteCommand,
    GeneratedPassword,
    GetCommand,
    GetPasswordCommand,
    ListCommand,
    SuppliedPassword,
    UpdateCommand,
)
from vault.config import VaultSettings, ensure_directories
from vault.errors import ErrorKind
from vault.log import configure_logging
from vault.manager import VaultManager
from vault.secret_buffer import SecretBuffer
from vault.session import Cancelled, Failed, Success

logger = structlog.get_logger("passvault.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

MESSAGES = {
    ErrorKind.WRONG_PASSPHRASE: "Wrong master password.",
    ErrorKind.CORRUPT_VAULT: "The vault file is corrupted or not a vault.",
    ErrorKind.DUPLICATE_ACCOUNT: "That account already exists. Use 'update' to change it.",
    ErrorKind.ACCOUNT_NOT_FOUND: "No such account. Use 'list' to see stored accounts.",
    ErrorKind.WEAK_PASSWORD: "Password rejected by the strength policy (length, upper, lower, digit, symbol).",
    ErrorKind.GENERATION_EXHAUSTED: "Could not generate a password that passes the strength policy.",
    ErrorKind.VAULT_BUSY: "The vault is in use by another passvault process.",
    ErrorKind.IO_FAILURE: "Could not read or write the vault file.",
    ErrorKind.INSECURE_SINK: "get-password only writes to a pipe or file, not a terminal.",
}


class PromptError(Exception):
    """Invalid interactive input (e.g. confirmation mismatch)."""
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passvault", description="Encrypted single-file password vault")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("add", "Add a new account"), ("update", "Update an existing account")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("name", help="Account name (case-sensitive)")
        p.add_argument("--username", help="Account username")
        p.add_argument("--url", help="Account URL")
        p.add_argument("--generate", action="store_true", help="Generate a strong password")

    sub.add_parser("list", help="List account names")
    for name, help_text in (
        ("get", "Show username and URL of an account"),
        ("get-password", "Write an account's password to stdout (pipe only)"),
        ("delete", "Delete an account"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("name", help="Account name (case-sensitive)")

    return parser


def _interactive() -> bool:
    return sys.stdin.isatty()


def _ask_optional(prompt: str, value):
    if value is not None or not _interactive():
        return value
    answer = input(prompt).strip()
    return answer or None


def read_secret(prompt: str, confirm: bool = False) -> SecretBuffer:
    first = getpass.getpass(prompt)
    if confirm and first:
        if getpass.getpass("Confirm: ") != first:
            raise PromptError("Entries do not match")
    return SecretBuffer(first)


def read_passphrase(new_vault: bool) -> SecretBuffer:
    """Master password from VAULT_MASTER_PASSWORD, else a hidden prompt."""
    env_value = os.environ.get("VAULT_MASTER_PASSWORD")
    if env_value:
        return SecretBuffer(env_value)

    prompt = "New master password: " if new_vault else "Master password: "
    passphrase = read_secret(prompt, confirm=new_vault)
    if len(passphrase) == 0:
        passphrase.release()
        raise PromptError("Master password cannot be empty")
    return passphrase


def read_password_choice(args, updating: bool):
    """Decide Generated vs user-supplied once, before the session starts."""
    if args.generate:
        return GeneratedPassword()

    if updating:
        secret = read_secret(f"New password for '{args.name}' (blank to keep): ", confirm=True)
        if len(secret) == 0:
            secret.release()
            return None
        return SuppliedPassword(secret=secret)

    answer = input("Generate a password? [y/N] ").strip()
    if answer in ("Y", "y"):
        return GeneratedPassword()
    secret = read_secret(f"Password for '{args.name}': ", confirm=True)
    return SuppliedPassword(secret=secret)


def build_command(args, password=None):
    if args.command == "add":
        return AddCommand(
            name=args.name,
            password=password,
            username=_ask_optional("Username (optional): ", args.username),
            url=_ask_optional("URL (optional): ", args.url),
        )
    if args.command == "update":
        return UpdateCommand(
            name=args.name,
            password=password,
            username=_ask_optional("New username (blank to keep): ", args.username),
            url=_ask_optional("New URL (blank to keep): ", args.url),
        )
    if args.command == "get":
        return GetCommand(name=args.name)
    if args.command == "get-password":
        return GetPasswordCommand(name=args.name)
    if args.command == "delete":
        return DeleteCommand(name=args.name)
    return ListCommand()


def report(outcome) -> int:
    if isinstance(outcome, Success):
        if outcome.output:
            print(outcome.output)
        return EXIT_OK
    if isinstance(outcome, Cancelled):
        print("Cancelled.", file=sys.stderr)
        return EXIT_CANCELLED
    if isinstance(outcome, Failed):
        print(f"Error: {MESSAGES[outcome.kind]}", file=sys.stderr)
        print(f"       {outcome.message}", file=sys.stderr)
        return EXIT_FAILED
    raise TypeError(f"Unexpected outcome: {outcome!r}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = VaultSettings.from_env()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
        )
        parser.error(f"invalid configuration ({problems})")
    ensure_directories(settings)
    manager = VaultManager(settings)

    sink = None
    if args.command == "get-password":
        if sys.stdout.isatty():
            return report(Failed(ErrorKind.INSECURE_SINK, "stdout is a terminal; pipe it instead"))
        sink = getattr(sys.stdout, "buffer", sys.stdout)

    if getattr(args, "name", None) == "":
        parser.error("account name must be non-empty")

    # Prompts happen before the session takes the vault lock
    new_vault = args.command == "add" and not manager.vault_exists()
    passphrase = None
    choice = None
    try:
        passphrase = read_passphrase(new_vault)
        if args.command in ("add", "update"):
            choice = read_password_choice(args, updating=args.command == "update")
        command = build_command(args, choice)
    except (KeyboardInterrupt, EOFError):
        print(file=sys.stderr)
        _discard(passphrase, choice)
        return report(Cancelled())
    except PromptError as e:
        _discard(passphrase, choice)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    logger.info("cli.command", command=args.command, vault=str(manager.vault_file))
    return report(manager.run(command, passphrase, secret_sink=sink))


def _discard(passphrase, choice):
    if passphrase is not None:
        passphrase.release()
    if isinstance(choice, SuppliedPassword):
        choice.secret.release()


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
