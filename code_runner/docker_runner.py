import asyncio
import logging
from typing import Optional, Sequence, Union

try:
    import docker
    from docker.errors import DockerException
except Exception:
    docker = None
    DockerException = Exception

from .errors import DockerUnavailableError
from .process import TIMED_OUT, OutputBuffer, ProcessResult, _TimedOut, race_deadline

logger = logging.getLogger(__name__)

CONTAINER_WORKDIR = '/workspace'


def _read_output(chunks, max_chars: Optional[int]) -> str:
    buffer = OutputBuffer(max_chars)
    for chunk in chunks:
        buffer.feed(chunk)
        # the container has exited, so nothing waits on the rest of the log
        if buffer.full:
            break
    return buffer.text()


class DockerLauncher:
    """Runs commands in a throwaway container with the workspace mounted at /workspace."""

    def __init__(self, image: str, mem_limit: str = '256m', cpus: float = 0.5, max_output_length: Optional[int] = None):
        self.image = image
        self.mem_limit = mem_limit
        self.nano_cpus = int(cpus * 1e9)
        self.max_output_length = max_output_length
        self._client = None

    @property
    def client(self):
        if docker is None:
            raise DockerUnavailableError('Docker SDK is not available')
        if self._client is None:
            try:
                self._client = docker.from_env()
            except DockerException as e:
                raise DockerUnavailableError(str(e))
        return self._client

    def _start(self, argv: Sequence[str], cwd: str):
        try:
            return self.client.containers.run(
                self.image,
                command=list(argv),
                detach=True,
                working_dir=CONTAINER_WORKDIR,
                volumes={cwd: {'bind': CONTAINER_WORKDIR, 'mode': 'rw'}},
                network_mode='none',
                security_opt=['no-new-privileges'],
                cap_drop=['ALL'],
                mem_limit=self.mem_limit,
                nano_cpus=self.nano_cpus,
            )
        except DockerException as e:
            raise DockerUnavailableError(str(e))

    def _collect(self, container, status) -> ProcessResult:
        return ProcessResult(
            exit_code=status.get('StatusCode', -1),
            stdout=_read_output(container.logs(stdout=True, stderr=False, stream=True), self.max_output_length),
            stderr=_read_output(container.logs(stdout=False, stderr=True, stream=True), self.max_output_length),
        )

    def _remove(self, container) -> None:
        try:
            container.remove(force=True)
        except Exception:
            logger.debug('failed to remove container %s', getattr(container, 'id', '?'), exc_info=True)

    async def run(self, argv: Sequence[str], cwd: str, timeout_ms: int) -> Union[ProcessResult, _TimedOut]:
        container = await asyncio.to_thread(self._start, argv, cwd)
        try:
            status = await race_deadline(asyncio.to_thread(container.wait), timeout_ms)
            if status is TIMED_OUT:
                logger.warning('container for %s exceeded %dms', argv[0], timeout_ms)
                return TIMED_OUT
            return await asyncio.to_thread(self._collect, container, status)
        finally:
            await asyncio.to_thread(self._remove, container)
