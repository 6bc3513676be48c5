"""
Supported languages and the compile/run template each one uses.

Every language is a member of ``Language``; its ``LanguageSpec`` holds
everything the runners need, so adding a language means adding one member
and picking a shape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import UnsupportedLanguageError

# printed just before the assertion value so it can be told apart from program output
ASSERTION_MARKER = '__code_runner_assertion__'


class RunnerShape(Enum):
    COMPILED_NATIVE = 'compiled-native'
    COMPILED_BYTECODE = 'compiled-bytecode'
    INTERPRETED = 'interpreted-script'


class TestStrategy(Enum):
    OUTPUT_MATCHING = 'output-matching'
    SOURCE_INJECTION = 'source-injection'


@dataclass(frozen=True)
class LanguageSpec:
    shape: RunnerShape
    source_name: str
    run: Tuple[str, ...]
    compile: Optional[Tuple[str, ...]] = None
    compile_timeout_multiplier: int = 1
    test_strategy: TestStrategy = TestStrategy.OUTPUT_MATCHING
    # statement appended to the source for source-injection tests
    assertion_template: str = ''
    true_token: str = 'true'
    run_error: str = 'Runtime error'

    @property
    def extension(self) -> str:
        return self.source_name.rsplit('.', 1)[-1]

    @property
    def is_compiled(self) -> bool:
        return self.compile is not None

    def run_command(self, source_name: Optional[str] = None) -> Tuple[str, ...]:
        """Run argv; interpreted languages take the source file as the last argument."""
        if self.shape is RunnerShape.INTERPRETED:
            return self.run + (source_name or self.source_name,)
        return self.run

    def inject_assertion(self, code: str, assertion: str) -> str:
        return code + '\n\n' + self.assertion_template.format(marker=ASSERTION_MARKER, assertion=assertion) + '\n'


class Language(Enum):
    SWIFT = LanguageSpec(
        shape=RunnerShape.INTERPRETED,
        source_name='main.swift',
        run=('swift',),
        test_strategy=TestStrategy.SOURCE_INJECTION,
        assertion_template='// Test assertion\nprint("{marker}")\nprint({assertion})',
        run_error='Compilation or runtime error',
    )
    TYPESCRIPT = LanguageSpec(
        shape=RunnerShape.INTERPRETED,
        source_name='main.ts',
        run=('bun',),
        test_strategy=TestStrategy.SOURCE_INJECTION,
        assertion_template='// Test assertion\nconsole.log("{marker}");\nconsole.log({assertion});',
    )
    RUST = LanguageSpec(
        shape=RunnerShape.COMPILED_NATIVE,
        source_name='main.rs',
        compile=('rustc', 'main.rs', '-o', 'main'),
        run=('./main',),
    )
    KOTLIN = LanguageSpec(
        shape=RunnerShape.COMPILED_BYTECODE,
        source_name='main.kt',
        compile=('kotlinc', 'main.kt', '-include-runtime', '-d', 'main.jar'),
        run=('java', '-jar', 'main.jar'),
        compile_timeout_multiplier=3,
    )

    @property
    def id(self) -> str:
        return self.name.lower()

    @property
    def spec(self) -> LanguageSpec:
        return self.value

    @classmethod
    def ids(cls):
        return [lang.id for lang in cls]

    @classmethod
    def from_id(cls, language: str) -> 'Language':
        for lang in cls:
            if lang.id == language:
                return lang
        raise UnsupportedLanguageError(language)
