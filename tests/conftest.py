import os

import pytest

from code_runner.config import Settings


class FakeLauncher:
    """Returns scripted results in order and records every invocation."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.snapshots = []

    async def run(self, argv, cwd, timeout_ms):
        self.calls.append((tuple(argv), cwd, timeout_ms))
        files = {}
        for name in sorted(os.listdir(cwd)):
            with open(os.path.join(cwd, name), encoding='utf-8') as f:
                files[name] = f.read()
        self.snapshots.append(files)

        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / 'workspaces'
    root.mkdir()
    return root


@pytest.fixture
def settings(workspace_root):
    return Settings(workspace_root=str(workspace_root))
