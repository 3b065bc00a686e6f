"""Stage command execution sandbox port."""

import asyncio
import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from loguru import logger
from pydantic import BaseModel

ProgressCallback = Callable[[int, int], Awaitable[None]]


class CommandOutcome(BaseModel):
    """Result of running a command list."""

    success: bool
    output: str = ""
    error: str | None = None
    exit_code: int | None = None


class CommandSandbox(ABC):
    """Runs a stage's commands and reports success plus captured output."""

    @abstractmethod
    async def run(
        self,
        commands: list[str],
        timeout: float,
        on_progress: ProgressCallback | None = None,
    ) -> CommandOutcome:
        """Run ``commands`` in order within ``timeout`` seconds.

        ``on_progress(done, total)`` is awaited after each completed command.
        """


class ShellSandbox(CommandSandbox):
    """Runs each command through the system shell, stopping at the first failure."""

    def __init__(self, working_directory: str | None = None, env: dict[str, str] | None = None):
        self.working_directory = working_directory
        self.env = {**os.environ, **env} if env else None

    async def run(
        self,
        commands: list[str],
        timeout: float,
        on_progress: ProgressCallback | None = None,
    ) -> CommandOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        transcript: list[str] = []

        for index, command in enumerate(commands, start=1):
            remaining = deadline - loop.time()
            if remaining <= 0:
                return CommandOutcome(success=False, output="".join(transcript), error=f"Timed out after {timeout:g}s")

            logger.debug(f"Sandbox running: {command}")
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.working_directory,
                env=self.env,
            )
            try:
                stdout, _ = await asyncio.wait_for(process.communicate(), timeout=remaining)
            except (TimeoutError, asyncio.CancelledError) as e:
                process.kill()
                await process.wait()
                if isinstance(e, asyncio.CancelledError):
                    raise
                return CommandOutcome(
                    success=False,
                    output="".join(transcript),
                    error=f"Command '{command}' timed out after {timeout:g}s",
                )

            transcript.append(f"$ {command}\n{stdout.decode(errors='replace')}")
            if process.returncode != 0:
                return CommandOutcome(
                    success=False,
                    output="".join(transcript),
                    error=f"Command '{command}' exited with code {process.returncode}",
                    exit_code=process.returncode,
                )
            if on_progress is not None:
                await on_progress(index, len(commands))

        return CommandOutcome(success=True, output="".join(transcript), exit_code=0)
