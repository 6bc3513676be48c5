import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class Workspace:
    """A per-request temporary directory holding source and build files."""

    def __init__(self, path: str):
        self.path = path

    def join(self, name: str) -> str:
        return os.path.join(self.path, name)

    def write(self, name: str, content: str) -> str:
        file_path = self.join(name)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)
        return file_path


def acquire(prefix: str, root: Optional[str] = None) -> Workspace:
    # mkdtemp picks a unique name, so concurrent requests never share a directory
    return Workspace(tempfile.mkdtemp(prefix=prefix, dir=root))


def release(workspace: Workspace) -> None:
    try:
        shutil.rmtree(workspace.path)
    except Exception:
        logger.debug('failed to remove workspace %s', workspace.path, exc_info=True)


@contextmanager
def workspace(prefix: str, root: Optional[str] = None) -> Iterator[Workspace]:
    ws = acquire(prefix, root)
    try:
        yield ws
    finally:
        release(ws)
