"""Pre-deploy check for the mealsync ``.env`` file.

Fitbit only accepts the callback address registered for the app, and stored
tokens only decrypt with the secret they were written with. Both break
silently after an unnoticed edit, so this tool:

* loads the file into ``AppSettings`` and reports every missing Fitbit or
  storage variable in one pass, plus callback addresses Fitbit would reject;
* pins a SHA-256 fingerprint of the file (``record``) and compares later
  copies against it (``verify``).

    python -m scripts.check_env check --env-file /srv/mealsync/.env
    python -m scripts.check_env record --env-file /srv/mealsync/.env --hash-file .env.sha256
    python -m scripts.check_env verify --env-file /srv/mealsync/.env --hash-file .env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import ValidationError

from mealsync.core.config import AppSettings, _load_env_file
from mealsync.core.errors import ConfigurationError
from mealsync.core.logging import mask_secret

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _fingerprint(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _callback_problems(redirect_uri: str) -> list[str]:
    parts = urlsplit(redirect_uri)
    problems = []
    if parts.scheme not in ("http", "https") or not parts.netloc:
        problems.append(f"FITBIT_REDIRECT_URI is not an absolute URL: {redirect_uri!r}")
    elif parts.scheme == "http" and parts.hostname not in ("localhost", "127.0.0.1"):
        problems.append("FITBIT_REDIRECT_URI must use https outside localhost")
    if parts.fragment:
        problems.append("FITBIT_REDIRECT_URI must not contain a fragment")
    return problems


def load_settings(env_file: Path) -> AppSettings:
    """Load ``env_file`` and raise ``ConfigurationError`` for anything Fitbit would reject."""
    _load_env_file(str(env_file))
    settings = AppSettings(_env_file=str(env_file))  # type: ignore[call-arg]
    settings.ensure_complete()
    problems = _callback_problems(settings.fitbit.redirect_uri)
    if problems:
        raise ConfigurationError("; ".join(problems))
    return settings


def _summary(settings: AppSettings) -> str:
    secret_source = (
        "TOKEN_ENCRYPTION_SECRET"
        if settings.security.token_encryption_secret
        else "FITBIT_CLIENT_SECRET (fallback)"
    )
    return (
        f"client id {mask_secret(settings.fitbit.client_id)}, "
        f"callback {settings.fitbit.redirect_uri}, "
        f"store {settings.storage.credential_store_path}, "
        f"token key from {secret_source}"
    )


def _record(env_file: Path, hash_file: Path) -> int:
    fingerprint = _fingerprint(env_file)
    hash_file.write_text(f"{fingerprint}\n", encoding="utf-8")
    print(f"Pinned {env_file} as {fingerprint} in {hash_file}")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"No pinned fingerprint at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    pinned = hash_file.read_text(encoding="utf-8").strip()
    current = _fingerprint(env_file)
    if pinned == current:
        print("Fingerprint matches the pinned .env.")
        return EXIT_OK

    print(
        f"{env_file} changed since it was pinned ({pinned} -> {current}).\n"
        "If FITBIT_REDIRECT_URI changed, update the Fitbit app registration. If "
        "TOKEN_ENCRYPTION_SECRET or FITBIT_CLIENT_SECRET changed, connected users "
        "will have to reconnect.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check_env",
        description="Check the mealsync Fitbit configuration before deploying it.",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    for name, help_text, needs_hash in (
        ("check", "Report missing or rejected Fitbit settings.", False),
        ("record", "Check settings, then pin the file's fingerprint.", True),
        ("verify", "Check settings, then compare with the pinned fingerprint.", True),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--env-file", type=Path, default=Path(".env"))
        if needs_hash:
            command.add_argument("--hash-file", type=Path, required=True)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.is_file():
        print(f"{env_file} not found.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = load_settings(env_file)
    except ConfigurationError as exc:
        print(f"Fitbit configuration rejected: {exc.message}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except ValidationError as exc:
        print(f"Fitbit configuration has invalid values:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    print(f"Configuration OK: {_summary(settings)}")
    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
