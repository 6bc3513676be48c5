"""
Test evaluation strategies.

``OutputMatching`` checks expected substrings against the output of the
program run that already happened. ``SourceInjection`` appends a statement
printing each assertion to the user's code and runs it again, one file and
one deadline per test.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from .languages import ASSERTION_MARKER, LanguageSpec
from .process import TIMED_OUT, truncate_output
from .schemas import TestCase, TestResult
from .workspace import Workspace

logger = logging.getLogger(__name__)


def match_output(output: str, test: TestCase) -> TestResult:
    if test.expected_output is None:
        return TestResult(description=test.description, passed=False, error='No expected output defined')

    passed = test.expected_output in output
    return TestResult(
        description=test.description,
        passed=passed,
        output=None if passed else output,
    )


class EvaluationStrategy(ABC):

    @abstractmethod
    async def evaluate(self, workspace: Workspace, code: str, output: str, test_cases: List[TestCase]) -> List[TestResult]:
        ...


class OutputMatching(EvaluationStrategy):

    async def evaluate(self, workspace, code, output, test_cases):
        return [match_output(output, test) for test in test_cases]


class SourceInjection(EvaluationStrategy):

    def __init__(self, spec: LanguageSpec, launcher, timeout_ms: int, max_output_length: int):
        self.spec = spec
        self.launcher = launcher
        self.timeout_ms = timeout_ms
        self.max_output_length = max_output_length

    async def evaluate(self, workspace, code, output, test_cases):
        results = []
        for index, test in enumerate(test_cases):
            if not test.assertion:
                if test.expected_output is not None:
                    results.append(match_output(output, test))
                else:
                    results.append(TestResult(description=test.description, passed=False, error='No assertion defined'))
                continue

            try:
                results.append(await self._run_assertion(workspace, code, index, test))
            except Exception as e:
                logger.warning('test %r failed to run: %s', test.description, e)
                results.append(TestResult(description=test.description, passed=False, error=str(e) or type(e).__name__))
        return results

    async def _run_assertion(self, workspace: Workspace, code: str, index: int, test: TestCase) -> TestResult:
        name = f'test_{index}.{self.spec.extension}'
        workspace.write(name, self.spec.inject_assertion(code, test.assertion))

        result = await self.launcher.run(self.spec.run_command(name), workspace.path, self.timeout_ms)
        if result is TIMED_OUT:
            return TestResult(description=test.description, passed=False, error='Test timed out')

        if result.exit_code != 0:
            return TestResult(
                description=test.description,
                passed=False,
                output=truncate_output(result.combined, self.max_output_length),
                error=f'Test exited with code {result.exit_code}',
            )

        actual = _assertion_value(result.stdout)
        passed = actual == self.spec.true_token or (
            test.expected_output is not None and actual == test.expected_output
        )
        return TestResult(
            description=test.description,
            passed=passed,
            output=None if passed else truncate_output(actual, self.max_output_length),
        )


def _assertion_value(stdout: str) -> str:
    # everything after the marker line was printed by the injected statement
    _, found, value = stdout.rpartition(ASSERTION_MARKER + '\n')
    return value.strip() if found else stdout.strip()
