from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Hosting and stream parameters, read from ``HELLO_GRPC_*`` variables or ``.env``."""

    host: str = "127.0.0.1"
    port: int = 50051
    service_name: str = "Hello"
    proto: str = "hello.proto"
    auto_gen_proto: bool = True
    tick_interval: float = Field(default=1.0, gt=0)
    max_length: int = 21
    log_level: LogLevel = "INFO"
    shutdown_grace: Optional[float] = None

    model_config = SettingsConfigDict(
        env_prefix="HELLO_GRPC_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    return Settings()
