"""Thin asyncio wrapper around the ``pactl`` command-line tool.

Every call spawns one ``pactl`` process and waits for it to exit.  Failures
never raise: a process that cannot be started, or whose pipes break, is
reported as an unsuccessful :class:`CommandResult` with exit status -1.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_PACTL = "pactl"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_status: int = -1

    def details(self, fallback: str = "Unknown error") -> str:
        """Best human-readable explanation of a failure."""
        return self.stderr.strip() or self.stdout.strip() or fallback


CommandRunner = Callable[..., Awaitable[CommandResult]]


async def run_command(
    argv: Sequence[str], env: Mapping[str, str] | None = None
) -> CommandResult:
    """Run *argv* to completion and capture its output."""
    if not argv:
        return CommandResult(success=False, stderr="No command given", exit_status=-1)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
        )
        stdout, stderr = await proc.communicate()
    except (FileNotFoundError, PermissionError, OSError, ValueError, TypeError) as exc:
        # ValueError: embedded NUL byte; TypeError: non-string argument.
        logger.debug("Could not run %r: %s", argv[0], exc)
        return CommandResult(success=False, stderr=str(exc), exit_status=-1)

    status = proc.returncode if proc.returncode is not None else -1
    return CommandResult(
        success=status == 0,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        exit_status=status,
    )


class PactlBackend:
    """The three ``pactl`` subcommands the profile switch relies on."""

    def __init__(self, binary: str = DEFAULT_PACTL, runner: CommandRunner = run_command):
        self._binary = binary
        self._runner = runner
        # Field names in the long listing are translated otherwise.
        self._env = {**os.environ, "LC_ALL": "C"}

    async def _run(self, *args: str) -> CommandResult:
        argv = [self._binary, *args]
        try:
            result = await self._runner(argv, env=self._env)
        except Exception as exc:
            logger.warning("Runner failed for %s: %s", " ".join(argv), exc)
            return CommandResult(success=False, stderr=str(exc), exit_status=-1)
        if not result.success:
            logger.debug(
                "%s exited with %d: %s",
                " ".join(argv), result.exit_status, result.stderr.strip(),
            )
        return result

    async def list_cards_short(self) -> CommandResult:
        return await self._run("list", "cards", "short")

    async def list_cards(self) -> CommandResult:
        return await self._run("list", "cards")

    async def set_card_profile(self, card_name: str, profile: str) -> CommandResult:
        return await self._run("set-card-profile", card_name, profile)
