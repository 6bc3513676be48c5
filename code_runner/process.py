"""
Process launching, the timeout guard and output normalization.

Every external invocation (compiler, interpreter, compiled program) goes
through a launcher, which races it against a deadline and returns either a
``ProcessResult`` or the ``TIMED_OUT`` sentinel.
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Awaitable, List, Optional, Sequence, TypeVar, Union

from .errors import LauncherError

logger = logging.getLogger(__name__)

T = TypeVar('T')

TRUNCATION_MARKER = '\n... (output truncated)'


class _TimedOut:
    def __repr__(self):
        return 'TIMED_OUT'


TIMED_OUT = _TimedOut()


@dataclass
class ProcessResult:
    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def combined(self) -> str:
        return self.stdout + self.stderr


async def race_deadline(awaitable: Awaitable[T], timeout_ms: int) -> Union[T, _TimedOut]:
    """
    Await ``awaitable`` unless ``timeout_ms`` elapses first.

    Losing the race only abandons the awaitable; any process behind it keeps
    running until the caller stops it.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout_ms / 1000)
    except asyncio.TimeoutError:
        return TIMED_OUT


def truncate_output(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


READ_CHUNK_SIZE = 64 * 1024


class OutputBuffer:
    """
    Collects a stream of output chunks, keeping only the start of it.

    With ``max_chars`` set, at most ``max_chars + 1`` characters survive,
    enough for ``truncate_output`` to see that the cap was exceeded.
    Chunks past the limit are counted and dropped.
    """

    def __init__(self, max_chars: Optional[int] = None):
        self.max_chars = max_chars
        # a UTF-8 character is at most 4 bytes
        self.max_bytes = None if max_chars is None else 4 * (max_chars + 1)
        self.chunks: List[bytes] = []
        self.kept = 0
        self.dropped = 0

    def feed(self, chunk: bytes) -> None:
        if self.max_bytes is not None and self.kept + len(chunk) > self.max_bytes:
            room = self.max_bytes - self.kept
            self.dropped += len(chunk) - room
            chunk = chunk[:room]
        if chunk:
            self.chunks.append(chunk)
            self.kept += len(chunk)

    @property
    def full(self) -> bool:
        return self.max_bytes is not None and self.kept >= self.max_bytes

    def text(self) -> str:
        decoded = b''.join(self.chunks).decode('utf-8', errors='replace')
        if self.max_chars is not None:
            return decoded[:self.max_chars + 1]
        return decoded


async def _drain(stream: asyncio.StreamReader, buffer: OutputBuffer) -> None:
    # keep reading past the limit so the child never blocks on a full pipe
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return
        buffer.feed(chunk)


class LocalLauncher:
    """Runs commands as host subprocesses inside the workspace directory."""

    def __init__(self, kill_on_timeout: bool = True, max_output_length: Optional[int] = None):
        self.kill_on_timeout = kill_on_timeout
        self.max_output_length = max_output_length

    async def run(self, argv: Sequence[str], cwd: str, timeout_ms: int) -> Union[ProcessResult, _TimedOut]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise LauncherError(f'failed to start {argv[0]}: {e}') from e

        stdout = OutputBuffer(self.max_output_length)
        stderr = OutputBuffer(self.max_output_length)
        outcome = await race_deadline(
            asyncio.gather(_drain(proc.stdout, stdout), _drain(proc.stderr, stderr), proc.wait()),
            timeout_ms,
        )
        if outcome is TIMED_OUT:
            logger.warning('%s exceeded %dms', argv[0], timeout_ms)
            if self.kill_on_timeout:
                await self._kill(proc)
            return TIMED_OUT

        return ProcessResult(exit_code=proc.returncode, stdout=stdout.text(), stderr=stderr.text())

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        # the program may have forked, so take down its whole session
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        await proc.wait()
