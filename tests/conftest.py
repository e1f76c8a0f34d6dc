"""
Pytest configuration and shared fixtures for Psalter tests.

Subprocess tests run against a fake ``php``: a POSIX shell script that
answers ``--version``, prints canned ``--help`` text and otherwise sleeps
like a language server waiting on stdin. Every invocation appends its
arguments to ``calls.log`` next to the script.
"""

import os
import stat
from dataclasses import dataclass
from pathlib import Path

import pytest

from psalter.utils.logger import configure_logging


PLAIN_HELP = """Usage: psalm-language-server [options]

Options:
    -h, --help
        Display this help message

    -r, --root
        If running Psalm globally you'll need to specify a project root.

    --language-server
        Run in language server mode

    --verbose-extra
        Not the verbose flag
"""

LANGUAGE_SERVER_HELP = PLAIN_HELP + """
    --use-extended-diagnostic-codes
        Enables sending help uri links with the code in diagnostic messages.

    --verbose
        Will send log messages to the client with information.
"""

_SCRIPT = """#!/bin/sh
printf '%s\\n' "$*" >> "{log}"
if [ "$1" = "--version" ]; then
  printf '%s\\n' "{version_line}"
  exit {version_exit}
fi
case " $* " in
  *" --help "*) ;;
  *) exec sleep 60 ;;
esac
case " $* " in
  *" --language-server "*) cat "{ls_help}" ;;
  *) cat "{plain_help}" ;;
esac
exit {help_exit}
"""


@dataclass
class FakePhp:
    """Handle on a generated fake php executable."""

    path: Path
    log: Path

    @property
    def executable(self) -> str:
        return str(self.path)

    def calls(self) -> list[str]:
        if not self.log.exists():
            return []
        return self.log.read_text().splitlines()

    def help_calls(self) -> list[str]:
        return [call for call in self.calls() if "--help" in call.split()]


@pytest.fixture(autouse=True)
def _stderr_logging():
    """Start every test from a single STDERR sink."""
    configure_logging(debug=True)
    yield


@pytest.fixture
def make_fake_php(tmp_path):
    """Factory for fake php executables."""

    def factory(
        plain_help: str = PLAIN_HELP,
        language_server_help: str = LANGUAGE_SERVER_HELP,
        version_line: str = "PHP 8.2.1 (cli) (built: Jan  1 2024 00:00:00) (NTS)",
        version_exit: int = 0,
        help_exit: int = 0,
        name: str = "php",
    ) -> FakePhp:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        plain = bin_dir / f"{name}.help"
        plain.write_text(plain_help)
        ls_help = bin_dir / f"{name}.ls-help"
        ls_help.write_text(language_server_help)
        log = bin_dir / f"{name}.calls.log"
        script = bin_dir / name
        script.write_text(
            _SCRIPT.format(
                log=log,
                version_line=version_line,
                version_exit=version_exit,
                ls_help=ls_help,
                plain_help=plain,
                help_exit=help_exit,
            )
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakePhp(path=script, log=log)

    return factory


@pytest.fixture
def workspace(tmp_path):
    """A project root with a vendored Psalm script and a psalm.xml."""
    root = tmp_path / "project"
    script = root / "vendor" / "vimeo" / "psalm" / "psalm-language-server"
    script.parent.mkdir(parents=True)
    script.write_text("<?php\n")
    (root / "psalm.xml").write_text("<psalm/>\n")
    return root


@pytest.fixture
def missing_executable(tmp_path):
    """Path to an executable that does not exist."""
    return os.fspath(tmp_path / "no-such-php")
