from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='CODE_RUNNER_', env_file='.env', extra='ignore')

    # Limits
    execution_timeout_ms: int = 5000
    test_timeout_ms: int = 3000
    max_output_length: int = 50000
    max_test_cases: int = 20

    kill_on_timeout: bool = True

    # Backend: 'local' spawns toolchains on the host, 'docker' runs them in a container
    backend: str = 'local'
    runner_image: str = 'code-runner/toolchains:latest'
    docker_mem_limit: str = '256m'
    docker_cpus: float = 0.5

    workspace_root: Optional[str] = None

    cors_allowed_origins: str = '*'
    log_level: str = 'INFO'

    @property
    def origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(',') if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
