"""PHP runtime detection.

The language server is a PHP program; before anything else we make sure the
configured interpreter exists and is recent enough.
"""

from __future__ import annotations

import asyncio
import re

from packaging.version import InvalidVersion, Version

from psalter.constants import MINIMUM_PHP_VERSION, RUNTIME_CHECK_TIMEOUT
from psalter.types import (
    ExecutableNotFoundError,
    RuntimeSpawnError,
    RuntimeVersionError,
    UnsupportedRuntimeError,
)
from psalter.utils.logger import logger

_VERSION_LINE = re.compile(r"^PHP ([^\s]+)", re.MULTILINE)


def parse_php_version(output: str) -> Version:
    """Extract the interpreter version from ``php --version`` output.

    Distribution suffixes are discarded (``7.0.8-0ubuntu0.16.04.2`` is
    ``7.0.8``); prereleases such as ``7.0.0rc1`` are kept.

    Raises:
        RuntimeVersionError: If no version can be found.
    """
    match = _VERSION_LINE.search(output)
    if not match:
        raise RuntimeVersionError(output)
    raw = match.group(1).split("-")[0]
    try:
        return Version(raw)
    except InvalidVersion:
        raise RuntimeVersionError(output) from None


async def check_runtime(
    php_executable: str,
    minimum: str = MINIMUM_PHP_VERSION,
    timeout: float = RUNTIME_CHECK_TIMEOUT,
) -> Version:
    """Run ``php --version`` and enforce the minimum supported version.

    An interpreter that does not answer within ``timeout`` seconds is killed.

    Raises:
        ExecutableNotFoundError: The executable does not exist.
        RuntimeSpawnError: It exists but could not be run successfully, or
            it timed out.
        RuntimeVersionError: The version could not be parsed.
        UnsupportedRuntimeError: The version is below ``minimum``.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            php_executable,
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ExecutableNotFoundError(php_executable, original_error=e) from e
    except (OSError, ValueError) as e:
        raise RuntimeSpawnError(php_executable, e) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{php_executable} --version did not answer within {timeout}s")
        proc.kill()
        await proc.wait()
        raise RuntimeSpawnError(
            php_executable,
            TimeoutError(f"no answer to --version within {timeout}s"),
        ) from None

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise RuntimeSpawnError(
            php_executable,
            OSError(f"exit status {proc.returncode}: {detail}"),
        )

    version = parse_php_version(stdout.decode("utf-8", errors="replace"))
    if version < Version(minimum):
        raise UnsupportedRuntimeError(str(version), minimum)
    logger.debug(f"Found PHP {version} at {php_executable}")
    return version
