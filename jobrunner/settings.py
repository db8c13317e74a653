"""Environment settings for jobrunner."""

from typing import List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Settings read from ``JOBRUNNER_*`` environment variables.

    Example:
        JOBRUNNER_DATA_DIR=/var/lib/jobrunner
        JOBRUNNER_MODULES='["myapp.jobs"]'
    """
    model_config = SettingsConfigDict(env_prefix="JOBRUNNER_")

    data_dir: str = ".jobrunner"
    log_level: LogLevel = "INFO"
    log_json: bool = True
    log_file: Optional[str] = None
    modules: List[str] = []

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value
