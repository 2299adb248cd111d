# Main Entry Point - AuthorizedKeysCommand
#
# sshd runs:   keyward [--fingerprint %f] <account>
# and reads authorized_keys lines from our stdout. Everything else,
# diagnostics included, goes to stderr.
#
# This is the only place an outcome becomes an exit status.

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .core.config import (
    DEFAULT_CONFIG_PATH,
    AgentConfig,
    ConfigOverrides,
    load_config,
    resolve_config,
)
from .core.logging_setup import configure_logging
from .exceptions import ExitCode, KeywardError
from .install.installer import DEFAULT_SERVICE_USER, InstallOptions, Installer
from .install.sshd import SSHD_CONFIG_PATH
from .keys.formatter import write_authorized_keys
from .query import QueryRequest, run_query
from .version import APP_VERSION

logger = logging.getLogger("keyward.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyward",
        description="Print the authorized SSH keys of an account, as issued by the key authority",
        epilog="Meant to be run by sshd as AuthorizedKeysCommand",
    )

    parser.add_argument(
        "account",
        nargs="?",
        help="Local account being authenticated (sshd's %%u)"
    )

    parser.add_argument(
        "--config-file",
        default=str(DEFAULT_CONFIG_PATH),
        help=f"Config file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument("--url", default="", help="Key authority base URL")
    parser.add_argument("--token", default="", help="Bearer token for the key authority")
    parser.add_argument("--cache-dir", default="", help="Key cache directory")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Only print keys signed by a trusted public key"
    )
    parser.add_argument(
        "--public-key",
        action="append",
        default=[],
        metavar="PATH_OR_PEM",
        help="Trusted public key, a PEM file or an inline PEM block (repeatable)"
    )
    parser.add_argument(
        "--fingerprint",
        default="",
        help="Fingerprint of the key the client offered (sshd's %%f)"
    )
    parser.add_argument(
        "--ssh-connection",
        default=None,
        help="Connection descriptor (default: $SSH_CONNECTION)"
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Authority request timeout in milliseconds (default: 5000)"
    )
    parser.add_argument("--hostname-prefix", default="", help="Prepended to the local hostname")
    parser.add_argument("--hostname-suffix", default="", help="Appended to the local hostname")
    parser.add_argument("--debug", action="store_true", help="Debug diagnostics on stderr")
    parser.add_argument("--version", action="store_true", help="Print version information")

    install = parser.add_argument_group("installation")
    install.add_argument("--install", action="store_true", help="Set up this host")
    install.add_argument(
        "--no-interactive",
        action="store_true",
        help="Do not prompt, take settings from flags and the config file"
    )
    install.add_argument(
        "--user",
        default=DEFAULT_SERVICE_USER,
        help=f"User sshd runs the command as (default: {DEFAULT_SERVICE_USER})"
    )
    install.add_argument(
        "--sshd-config",
        default=SSHD_CONFIG_PATH,
        help=f"sshd config file (default: {SSHD_CONFIG_PATH})"
    )
    install.add_argument(
        "--edit-sshd-config",
        action="store_true",
        help="Update the sshd config file instead of printing the directives"
    )
    return parser


def _overrides(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        url=args.url,
        token=args.token,
        cache_dir=args.cache_dir,
        verify=args.verify,
        public_keys=tuple(args.public_key),
        timeout_ms=args.timeout,
        hostname_prefix=args.hostname_prefix,
        hostname_suffix=args.hostname_suffix,
    )


def _query(args: argparse.Namespace) -> int:
    config = resolve_config(load_config(args.config_file), _overrides(args))
    ssh_connection = args.ssh_connection
    if ssh_connection is None:
        ssh_connection = os.environ.get("SSH_CONNECTION", "")

    result = run_query(
        config,
        QueryRequest(
            account=args.account,
            fingerprint=args.fingerprint,
            ssh_connection=ssh_connection,
        ),
    )
    write_authorized_keys(result.keys)
    return ExitCode.OK


def _install(args: argparse.Namespace) -> int:
    config_path = Path(args.config_file)
    file_config = load_config(config_path) if config_path.exists() else AgentConfig()
    options = InstallOptions(
        config=resolve_config(file_config, _overrides(args)),
        config_path=config_path,
        user=args.user,
        sshd_config=args.sshd_config,
        edit_sshd_config=args.edit_sshd_config,
        interactive=not args.no_interactive,
    )
    Installer(options).run()
    return ExitCode.OK


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        sys.stdout.write(APP_VERSION.extended())
        return ExitCode.OK

    configure_logging(debug=args.debug)

    try:
        if args.install:
            return _install(args)
        if not args.account:
            parser.print_usage(sys.stderr)
            logger.error("No account given")
            return ExitCode.USAGE
        return _query(args)
    except KeywardError as e:
        logger.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
