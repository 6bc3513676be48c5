class CodeRunnerError(Exception):
    pass


class UnsupportedLanguageError(CodeRunnerError, ValueError):
    def __init__(self, language: str):
        super().__init__(f'unsupported language: {language}')
        self.language = language


class LauncherError(CodeRunnerError):
    """Raised when a compiler, interpreter or program cannot be started."""
    pass


class DockerUnavailableError(LauncherError):
    pass
