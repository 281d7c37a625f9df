from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # AWS — credentials come from the ambient chain (env, profile, SSO, role)
    aws_region: str = Field(min_length=1)
    aws_profile: str | None = None

    # Server
    server_name: str = "aws-cost-explorer"
    server_version: str = "1.0.0"

    # App
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"

    @property
    def json_logs(self) -> bool:
        return self.log_format.strip().lower() == "json"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    """Load settings once. Raises pydantic.ValidationError when AWS_REGION is unset."""
    return Settings()
