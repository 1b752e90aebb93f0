"""
Command-line interface for the repocrypt tool.

This module wires the credential store, filters, rekey orchestrator and
gpg export together and provides the user-facing commands:
- configure / display / flush / uninstall / rekey
- list / status / ciphers
- export-gpg / import-gpg
- clean / smudge / textconv (invoked by git, hidden from help)
"""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from .ciphers import default_registry
from .config import FILTER_NAME, TOOL_VERSION, generate_password
from .credentials import CredentialStore
from .errors import RekeyError, RepocryptError
from .filters import clean, smudge, textconv
from .git import GitRepository
from .gpg import GpgRunner, export_credential, import_credential
from .rekey import rekey
from .settings import Settings
from .utils import ensure_parent_dir


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def print_info(msg: str) -> None:
    print(colored(f"ℹ {msg}", Colors.CYAN))


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="repocrypt %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, path: str, verbose: bool, quiet: bool, assume_yes: bool):
        self.path = path
        self.verbose = verbose
        self.quiet = quiet
        self.assume_yes = assume_yes

        # Lazy-loaded
        self._repo: Optional[GitRepository] = None
        self._store: Optional[CredentialStore] = None
        self._settings: Optional[Settings] = None

    @property
    def repo(self) -> GitRepository:
        if self._repo is None:
            self._repo = GitRepository.discover(self.path)
        return self._repo

    @property
    def store(self) -> CredentialStore:
        if self._store is None:
            self._store = CredentialStore(self.repo)
        return self._store

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = Settings.discover(self.repo.top_level)
        return self._settings

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))

    def confirm(self, question: str) -> bool:
        if self.assume_yes:
            return True
        response = input(colored(f"{question} [y/N] ", Colors.YELLOW))
        return response.strip().lower() in ("y", "yes")


def _reconfigure_command(cipher: str, password: str) -> str:
    return f"repocrypt configure -c {shlex.quote(cipher)} -p {shlex.quote(password)}"


# ---------------------------------------------------------------------------
# Filter roles
# ---------------------------------------------------------------------------


def cmd_clean(ctx: CLIContext, args: argparse.Namespace) -> int:
    data = sys.stdin.buffer.read()
    sys.stdout.buffer.write(clean(args.file, data, ctx.store))
    sys.stdout.buffer.flush()
    return 0


def cmd_smudge(ctx: CLIContext, args: argparse.Namespace) -> int:
    data = sys.stdin.buffer.read()
    sys.stdout.buffer.write(smudge(data, ctx.store, filename=args.file, strict=args.strict))
    sys.stdout.buffer.flush()
    return 0


def cmd_textconv(ctx: CLIContext, args: argparse.Namespace) -> int:
    sys.stdout.buffer.write(textconv(args.file, ctx.store, strict=args.strict))
    sys.stdout.buffer.flush()
    return 0


# ---------------------------------------------------------------------------
# Lifecycle commands
# ---------------------------------------------------------------------------


def cmd_configure(ctx: CLIContext, args: argparse.Namespace) -> int:
    cipher = args.cipher or ctx.settings.default_cipher
    password = args.password or generate_password(ctx.settings.password_length)

    ctx.log(colored(f"Configuring {ctx.repo.top_level}", Colors.BOLD))
    ctx.log(f"  Cipher:   {cipher}")
    if not args.password:
        ctx.log("  Password: (generated)")

    if not ctx.confirm("Proceed?"):
        ctx.log("Aborted")
        return 0

    ctx.store.configure(cipher, password)
    print_success("Repository configured")
    ctx.log("")
    ctx.log("To configure a clone, run:")
    ctx.log(f"  {_reconfigure_command(cipher, password)}")
    ctx.log("")
    ctx.log("Mark files for encryption in .gitattributes, e.g.:")
    ctx.log(f"  secrets/** filter={FILTER_NAME} diff={FILTER_NAME}")
    return 0


def cmd_display(ctx: CLIContext, args: argparse.Namespace) -> int:
    credential = ctx.store.display()

    print(colored("Credential", Colors.BOLD))
    print(f"  Version:  {credential.format_version}")
    print(f"  Cipher:   {credential.cipher}")
    print(f"  Password: {credential.password}")
    print("")
    print("Configure a clone with:")
    print(f"  {_reconfigure_command(credential.cipher, credential.password)}")
    return 0


def cmd_flush(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(colored("⚠️  WARNING: this removes the credential from the repository", Colors.YELLOW))
    ctx.log(colored("   Managed files will be checked out encrypted", Colors.YELLOW))

    if not ctx.confirm("Continue?"):
        ctx.log("Aborted")
        return 0

    ctx.store.flush()
    print_success("Credential flushed, managed files are encrypted")
    return 0


def cmd_uninstall(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(colored("⚠️  WARNING: this removes the credential and the git filters", Colors.YELLOW))
    ctx.log(colored("   Managed files stay decrypted in the working tree", Colors.YELLOW))

    if not ctx.confirm("Continue?"):
        ctx.log("Aborted")
        return 0

    ctx.store.uninstall()
    print_success("Uninstalled")
    print_info(f"Remove the filter={FILTER_NAME} entries from .gitattributes yourself")
    return 0


def cmd_rekey(ctx: CLIContext, args: argparse.Namespace) -> int:
    current = ctx.store.require()
    cipher = args.cipher or current.cipher
    password = args.password or generate_password(ctx.settings.password_length)

    ctx.log(colored("Rekeying repository", Colors.BOLD))
    ctx.log(f"  Cipher: {current.cipher} → {cipher}")
    ctx.log(colored("  Old ciphertext in history stays readable only with the old password", Colors.YELLOW))

    if not ctx.confirm("Continue?"):
        ctx.log("Aborted")
        return 0

    try:
        result = rekey(ctx.store, cipher, password)
    except RekeyError as e:
        print_error(f"Rekey stopped at {e.path}: {e}")
        if e.staged:
            print_warning(f"{len(e.staged)} file(s) were already re-encrypted and staged")
        return 1

    for path in result.staged:
        ctx.log_verbose(f"Staged {path}")
    print_success(f"Re-encrypted and staged {len(result.staged)} file(s)")
    ctx.log("Review and commit the staged changes to finish the rekey.")
    ctx.log("")
    ctx.log("To configure a clone, run:")
    ctx.log(f"  {_reconfigure_command(cipher, password)}")
    return 0


# ---------------------------------------------------------------------------
# Inspection commands
# ---------------------------------------------------------------------------


def cmd_list(ctx: CLIContext, args: argparse.Namespace) -> int:
    for path in ctx.repo.managed_files():
        print(path)
    return 0


def cmd_status(ctx: CLIContext, args: argparse.Namespace) -> int:
    credential = ctx.store.load()
    registered = ctx.store.filters_registered()
    managed = ctx.repo.managed_files()

    if args.json:
        output = {
            "configured": credential is not None,
            "cipher": credential.cipher if credential else None,
            "format_version": credential.format_version if credential else None,
            "filters_registered": registered,
            "managed_files": len(managed),
            "tool_version": TOOL_VERSION,
        }
        print(json.dumps(output, indent=2))
        return 0

    ctx.log(colored("Repository Status", Colors.BOLD))
    ctx.log("")
    ctx.log(f"  Repository:         {ctx.repo.top_level}")
    ctx.log(f"  Configured:         {'yes' if credential else 'no'}")
    if credential:
        ctx.log(f"  Cipher:             {credential.cipher}")
    ctx.log(f"  Filters registered: {'yes' if registered else 'no'}")
    ctx.log(f"  Managed files:      {len(managed)}")
    for path in managed:
        ctx.log_verbose(path)
    ctx.log("")
    return 0


def cmd_ciphers(ctx: CLIContext, args: argparse.Namespace) -> int:
    for name in sorted(default_registry.supported_ciphers()):
        print(name)
    return 0


# ---------------------------------------------------------------------------
# gpg export / import
# ---------------------------------------------------------------------------


def cmd_export_gpg(ctx: CLIContext, args: argparse.Namespace) -> int:
    recipient = args.recipient or ctx.settings.gpg.recipient
    if not recipient:
        print_error("No recipient given and none set in settings")
        return 1

    credential = ctx.store.require()
    output = Path(args.output) if args.output else ctx.repo.git_dir / FILTER_NAME / f"{recipient}.asc"
    ensure_parent_dir(output)

    export_credential(credential, recipient, output, runner=GpgRunner(ctx.settings.gpg.program))
    print_success(f"Credential encrypted for {recipient}: {output}")
    return 0


def cmd_import_gpg(ctx: CLIContext, args: argparse.Namespace) -> int:
    cipher, password = import_credential(
        args.path,
        runner=GpgRunner(ctx.settings.gpg.program),
        attempts=ctx.settings.gpg.import_attempts,
    )
    ctx.store.configure(cipher, password)
    print_success(f"Repository configured from {args.path}")
    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    help_text = f"""
{colored('repocrypt', Colors.BOLD)} — transparent encryption of files in a git repository

{colored('USAGE:', Colors.CYAN)}
  repocrypt [options] <command> [args]

{colored('DESCRIPTION:', Colors.CYAN)}
  Files marked with `filter={FILTER_NAME} diff={FILTER_NAME}` in .gitattributes
  are stored encrypted in git objects and checked out as plaintext.
  Encryption is deterministic per file content, so unchanged files never
  show up as modified.

{colored('COMMANDS:', Colors.CYAN)}
  configure     Set the cipher and password and register the filters
  display       Show the credential (to configure a clone)
  flush         Forget the credential and re-encrypt the working tree
  uninstall     Forget the credential and remove the filters
  rekey         Switch to a new credential and stage re-encrypted files
  list          List managed files
  status        Show repository encryption status
  ciphers       List supported ciphers
  export-gpg    Encrypt the credential for a gpg recipient
  import-gpg    Configure from a gpg-encrypted credential file
  help          Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -C PATH                   Run as if started in PATH
  -y, --yes                 Do not ask for confirmation
  -v, --verbose             Enable debug logging on stderr
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('ENVIRONMENT:', Colors.CYAN)}
  REPOCRYPT_GIT             git executable (default: git)
  REPOCRYPT_GPG             gpg executable (default: gpg)
  REPOCRYPT_SETTINGS        settings file (default: .repocrypt.yml)

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="repocrypt",
        description="Transparent encryption of files in a git repository",
        add_help=False,
    )

    # Global options
    parser.add_argument("-C", dest="path", default=".", help="Repository path")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress non-error output")
    parser.add_argument("-h", "--help", action="store_true", help="Show help message")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    configure_parser = subparsers.add_parser("configure", help="Configure encryption")
    configure_parser.add_argument("-c", "--cipher", help="Cipher name")
    configure_parser.add_argument("-p", "--password", help="Password (generated if omitted)")

    subparsers.add_parser("display", help="Show the credential")
    subparsers.add_parser("flush", help="Forget the credential")
    subparsers.add_parser("uninstall", help="Remove credential and filters")

    rekey_parser = subparsers.add_parser("rekey", help="Switch to a new credential")
    rekey_parser.add_argument("-c", "--cipher", help="New cipher (default: keep current)")
    rekey_parser.add_argument("-p", "--password", help="New password (generated if omitted)")

    subparsers.add_parser("list", help="List managed files")

    status_parser = subparsers.add_parser("status", help="Show repository state")
    status_parser.add_argument("--json", action="store_true", help="Output status as JSON")

    subparsers.add_parser("ciphers", help="List supported ciphers")

    export_parser = subparsers.add_parser("export-gpg", help="Export credential with gpg")
    export_parser.add_argument("recipient", nargs="?", help="gpg recipient")
    export_parser.add_argument("-o", "--output", help="Output file")

    import_parser = subparsers.add_parser("import-gpg", help="Import credential with gpg")
    import_parser.add_argument("path", help="Encrypted credential file")

    # Filter roles, called by git
    clean_parser = subparsers.add_parser("clean")
    clean_parser.add_argument("file", help="Path of the file being staged")

    smudge_parser = subparsers.add_parser("smudge")
    smudge_parser.add_argument("file", nargs="?", help="Path of the file being checked out")
    smudge_parser.add_argument("--strict", action="store_true", help="Fail instead of passing through")

    textconv_parser = subparsers.add_parser("textconv")
    textconv_parser.add_argument("file", help="File to convert")
    textconv_parser.add_argument("--strict", action="store_true", help="Fail instead of passing through")

    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


COMMANDS = {
    "configure": cmd_configure,
    "display": cmd_display,
    "flush": cmd_flush,
    "uninstall": cmd_uninstall,
    "rekey": cmd_rekey,
    "list": cmd_list,
    "status": cmd_status,
    "ciphers": cmd_ciphers,
    "export-gpg": cmd_export_gpg,
    "import-gpg": cmd_import_gpg,
    "clean": cmd_clean,
    "smudge": cmd_smudge,
    "textconv": cmd_textconv,
    "help": cmd_help,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help or not args.command:
        return cmd_help(None, args)

    setup_logging(args.verbose)

    ctx = CLIContext(
        path=args.path,
        verbose=args.verbose,
        quiet=args.quiet,
        assume_yes=args.yes,
    )

    cmd_func = COMMANDS.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except (RepocryptError, ValueError) as e:
        print_error(str(e))
        return 1
