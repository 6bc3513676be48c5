import logging
from typing import List, Optional

from .config import Settings
from .docker_runner import DockerLauncher
from .errors import LauncherError
from .evaluator import EvaluationStrategy, OutputMatching, SourceInjection
from .languages import Language, LanguageSpec, TestStrategy
from .process import TIMED_OUT, LocalLauncher, truncate_output
from .schemas import ExecutionOutcome, ExecutionRequest, TestCase
from .workspace import Workspace, workspace

logger = logging.getLogger(__name__)


def make_launcher(settings: Settings):
    if settings.backend == 'local':
        return LocalLauncher(
            kill_on_timeout=settings.kill_on_timeout,
            max_output_length=settings.max_output_length,
        )
    if settings.backend == 'docker':
        return DockerLauncher(
            image=settings.runner_image,
            mem_limit=settings.docker_mem_limit,
            cpus=settings.docker_cpus,
            max_output_length=settings.max_output_length,
        )
    raise ValueError(f'unknown execution backend: {settings.backend}')


class CodeExecutor:
    """Compiles and runs one submission per call in its own workspace."""

    def __init__(self, settings: Settings, launcher=None):
        self.settings = settings
        self.launcher = launcher or make_launcher(settings)

    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        language = Language.from_id(request.language)
        test_cases = self._cap_tests(request.test_cases)
        logger.info('executing %s submission (%d tests)', language.id, len(test_cases or []))

        with workspace(f'{language.id}-', self.settings.workspace_root) as ws:
            try:
                return await self._run(language.spec, ws, request.code, test_cases)
            except (LauncherError, OSError, UnicodeError) as e:
                logger.exception('%s execution failed', language.id)
                return ExecutionOutcome(output='', success=False, error=str(e))

    def _cap_tests(self, test_cases: Optional[List[TestCase]]) -> Optional[List[TestCase]]:
        if test_cases is None:
            return None
        limit = self.settings.max_test_cases
        if len(test_cases) > limit:
            logger.warning('received %d test cases, running the first %d', len(test_cases), limit)
            return test_cases[:limit]
        return test_cases

    def _evaluator(self, spec: LanguageSpec) -> EvaluationStrategy:
        if spec.test_strategy is TestStrategy.SOURCE_INJECTION:
            return SourceInjection(
                spec,
                self.launcher,
                timeout_ms=self.settings.test_timeout_ms,
                max_output_length=self.settings.max_output_length,
            )
        return OutputMatching()

    async def _run(self, spec: LanguageSpec, ws: Workspace, code: str, test_cases: Optional[List[TestCase]]) -> ExecutionOutcome:
        limit = self.settings.max_output_length
        ws.write(spec.source_name, code)

        # Compile step (compiled languages only); never run after a failed compile
        if spec.is_compiled:
            timeout_ms = self.settings.execution_timeout_ms * spec.compile_timeout_multiplier
            compiled = await self.launcher.run(spec.compile, ws.path, timeout_ms)
            if compiled is TIMED_OUT:
                return ExecutionOutcome(output='', success=False, error='Compilation timed out')
            if compiled.exit_code != 0:
                return ExecutionOutcome(
                    output=truncate_output(compiled.combined, limit),
                    success=False,
                    error='Compilation error',
                )

        result = await self.launcher.run(spec.run_command(), ws.path, self.settings.execution_timeout_ms)
        if result is TIMED_OUT:
            return ExecutionOutcome(output='', success=False, error='Execution timed out')

        output = truncate_output(result.combined, limit)
        success = result.exit_code == 0

        test_results = None
        if test_cases is not None and success:
            test_results = await self._evaluator(spec).evaluate(ws, code, output, test_cases)

        return ExecutionOutcome(
            output=output,
            success=success,
            error=None if success else spec.run_error,
            test_results=test_results,
        )
