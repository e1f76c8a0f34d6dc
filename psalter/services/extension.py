"""Workspace session for the Psalm language server.

``PsalmExtension`` is the composition root: it runs the activation pipeline
for one workspace, owns the resulting supervisor and tears everything down
on deactivation. The editor is reached only through ``EditorHost``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol

from psalter.config import Settings
from psalter.lsp.actions import SourceMatcher
from psalter.lsp.client import (
    ClientOptions,
    PsalmCodeActionProvider,
    PsalmMiddleware,
    build_client_options,
)
from psalter.lsp.commands import build_commands
from psalter.lsp.invocation import AnalyzerInvocation, build_invocation
from psalter.lsp.probe import CapabilityProbe, default_probe_plan
from psalter.lsp.runtime import check_runtime
from psalter.lsp.supervisor import ProcessSupervisor
from psalter.types import (
    ActivationOutcome,
    CapabilitySet,
    ExecutableNotFoundError,
    ProcessStartError,
    PsalterError,
    RuntimeSpawnError,
    RuntimeVersionError,
    ScriptNotFoundError,
    UnsupportedRuntimeError,
)
from psalter.utils.logger import logger, session_scope


class Disposable(Protocol):
    def dispose(self) -> None: ...


class EditorHost(Protocol):
    """The slice of the editor API a session needs."""

    def show_error(self, message: str) -> None: ...

    def register_code_action_provider(
        self, selector: list[Any], provider: PsalmCodeActionProvider
    ) -> Disposable: ...

    def register_command(
        self, name: str, handler: Callable[[], Awaitable[None]]
    ) -> Disposable: ...


_RUNTIME_OUTCOMES: list[tuple[type[PsalterError], ActivationOutcome]] = [
    (ExecutableNotFoundError, ActivationOutcome.EXECUTABLE_MISSING),
    (UnsupportedRuntimeError, ActivationOutcome.RUNTIME_UNSUPPORTED),
    (RuntimeVersionError, ActivationOutcome.RUNTIME_ERROR),
    (RuntimeSpawnError, ActivationOutcome.RUNTIME_ERROR),
]


def require_script(settings: Settings, root: str | Path) -> Path:
    """Resolve the language server script, which must be an existing file.

    Raises:
        ScriptNotFoundError: Neither the configured nor the vendored script
            exists.
    """
    script = settings.resolve_script_path(root)
    if not script.is_file():
        raise ScriptNotFoundError(str(script))
    return script


async def discover_capabilities(
    settings: Settings,
    script_path: str | Path,
) -> CapabilitySet:
    """Run the probe chain for ``settings`` against ``script_path``."""
    probe = CapabilityProbe(
        php_executable=settings.php_executable_path,
        script_path=str(script_path),
        php_args=settings.php_executable_args,
    )
    return await probe.probe_all(
        default_probe_plan(debug=settings.enable_debug_log),
        base_args=settings.psalm_script_extra_args,
    )


class PsalmExtension:
    """One workspace's Psalm session.

    Usage:
        extension = PsalmExtension(host, "/path/to/project", settings)
        outcome = await extension.activate()
        ...
        await extension.deactivate()

    ``output_sink`` receives the analyzer's stdout. Without one, the
    protocol transport has to drain ``supervisor.reader``.
    """

    def __init__(
        self,
        host: EditorHost,
        root: str | Path,
        settings: Settings,
        *,
        output_sink: Callable[[bytes], Awaitable[None]] | None = None,
    ) -> None:
        self._host = host
        self._root = Path(root).resolve()
        self._settings = settings
        self._output_sink = output_sink
        self._registrations: list[Disposable] = []

        self.supervisor: ProcessSupervisor | None = None
        self.invocation: AnalyzerInvocation | None = None
        self.capabilities: CapabilitySet | None = None
        self.client_options: ClientOptions | None = None
        self.middleware = PsalmMiddleware(settings)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def is_active(self) -> bool:
        return self.supervisor is not None

    def _notify(self, error: PsalterError) -> None:
        logger.error(error.get_formatted_message())
        self._host.show_error(error.user_message)

    async def activate(self) -> ActivationOutcome:
        """Run the activation pipeline, stopping at the first failed step.

        Failures the user can fix are reported once through the host. A
        workspace without a Psalm config file is not a Psalm project and is
        skipped silently.
        """
        with session_scope():
            return await self._activate()

    async def _activate(self) -> ActivationOutcome:
        settings = self._settings
        if not settings.enable:
            logger.info("Psalm is disabled for this workspace")
            return ActivationOutcome.DISABLED

        try:
            script = require_script(settings, self._root)
        except ScriptNotFoundError as e:
            self._notify(e)
            return ActivationOutcome.SCRIPT_MISSING

        try:
            await check_runtime(settings.php_executable_path)
        except PsalterError as e:
            for error_type, outcome in _RUNTIME_OUTCOMES:
                if isinstance(e, error_type):
                    self._notify(e)
                    return outcome
            raise

        config_file = settings.find_config_file(self._root)
        if config_file is None:
            logger.info(f"No Psalm config found in {self._root}; not starting")
            return ActivationOutcome.NO_CONFIG

        self.capabilities = await discover_capabilities(settings, script)
        self.invocation = build_invocation(
            settings,
            self.capabilities,
            root=self._root,
            script_path=script,
            config_file=config_file,
        )

        supervisor = ProcessSupervisor(
            self.invocation.argv(),
            cwd=self._root,
            debug=settings.enable_debug_log,
            stdout_sink=self._output_sink,
        )
        try:
            await supervisor.start()
        except ProcessStartError as e:
            self._notify(e)
            return ActivationOutcome.SPAWN_FAILED

        self.supervisor = supervisor
        self.client_options = build_client_options(settings, config_file)
        self._register(supervisor)
        logger.info(f"Psalm session active for {self._root}")
        return ActivationOutcome.ACTIVE

    def _register(self, supervisor: ProcessSupervisor) -> None:
        for name, handler in build_commands(supervisor).items():
            self._registrations.append(self._host.register_command(name, handler))
        provider = PsalmCodeActionProvider(SourceMatcher.from_settings(self._settings))
        self._registrations.append(
            self._host.register_code_action_provider(
                list(self._settings.analyzed_file_extensions), provider
            )
        )

    async def deactivate(self) -> None:
        """Stop the analyzer and dispose every registration. Safe to repeat."""
        supervisor, self.supervisor = self.supervisor, None
        if supervisor is not None:
            await supervisor.stop()

        registrations, self._registrations = self._registrations, []
        for registration in registrations:
            try:
                registration.dispose()
            except Exception:
                logger.opt(exception=True).warning("Failed to dispose registration")
