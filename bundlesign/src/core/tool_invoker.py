import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Set

from bundlesign.logger import log_debug
from bundlesign.src.core.errors import ToolInvocationError


@dataclass(frozen=True)
class ToolOutput:
    """Captured result of an external tool run"""

    command: List[str]
    returncode: int
    stdout: str
    stderr: str


class ProcessScope:
    """Owns every subprocess started by invokers bound to it.

    Use it as an async context manager around a unit of work. Leaving the
    block because of an exception (task cancellation and Ctrl+C included)
    terminates whatever is still running, so no signing or build process
    outlives the operation that started it.
    """

    def __init__(self):
        self._processes: Set[asyncio.subprocess.Process] = set()
        self.cancelled = False

    def track(self, process: asyncio.subprocess.Process) -> None:
        if self.cancelled:
            _terminate(process)
            return
        self._processes.add(process)

    def release(self, process: asyncio.subprocess.Process) -> None:
        self._processes.discard(process)

    @property
    def active(self) -> int:
        return len(self._processes)

    def cancel(self) -> None:
        """Terminate every tracked process that is still alive"""
        self.cancelled = True
        for process in list(self._processes):
            _terminate(process)
        self._processes.clear()

    async def __aenter__(self) -> "ProcessScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.cancel()
        return False


def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.terminate()
        except ProcessLookupError:
            pass


class ToolInvoker:
    """Runs external executables and captures their output"""

    def __init__(self, scope: Optional[ProcessScope] = None):
        self.scope = scope

    async def run(
        self,
        executable: str,
        arguments: Sequence[str],
        cwd: Optional[Path] = None,
        merge_stderr: bool = False,
    ) -> ToolOutput:
        """Run `executable` and wait for it; non-zero exit raises.

        With `merge_stderr` the tool's stderr is folded into stdout, which
        is what callers want when the interesting text may land on either.
        """
        command = [executable, *arguments]
        log_debug(f"Running: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=(
                    asyncio.subprocess.STDOUT
                    if merge_stderr
                    else asyncio.subprocess.PIPE
                ),
                cwd=str(cwd) if cwd else None,
            )
        except OSError as e:
            raise ToolInvocationError(command, None, reason=f"failed to launch: {e}")

        if self.scope is not None:
            self.scope.track(process)
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            _terminate(process)
            raise
        finally:
            if self.scope is not None:
                self.scope.release(process)

        output = ToolOutput(
            command=command,
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
        )
        if output.returncode != 0:
            raise ToolInvocationError(
                command, output.returncode, output.stdout, output.stderr
            )
        return output
