"""
Bootstrap configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppConfig(BaseSettings):
    """
    Common application settings.
    """

    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_CONFIG_PATH: str = Field(
        default="/opt/bootstrap/config/bootstrap_log.yaml", description="Logging YAML path"
    )

    model_config = SettingsConfigDict(
        case_sensitive=True, extra="ignore", populate_by_name=True
    )


class RuntimeConfig(BaseAppConfig):
    """
    Configuration of the runtime bootstrap, as provided by the execution environment.
    """

    # Handler resolution
    HANDLER: str = Field(
        ...,
        validation_alias=AliasChoices("_HANDLER", "HANDLER"),
        description="Handler specifier <module_path>.<member_name>",
    )
    LAMBDA_TASK_ROOT: str = Field(default="/var/task", description="Function code directory")

    # Runtime API
    AWS_LAMBDA_RUNTIME_API: str = Field(..., description="host:port of the Runtime API")
    RUNTIME_API_VERSION: str = Field(default="2018-06-01", description="Runtime API version")

    # Asynchronous errors outside any invocation end the process
    EXIT_ON_STRAY_ERROR: bool = Field(
        default=True, description="Exit before the next poll after an unattributed error"
    )

    # Function metadata surfaced on the context object
    AWS_LAMBDA_FUNCTION_NAME: str = Field(default="", description="Function name")
    AWS_LAMBDA_FUNCTION_VERSION: str = Field(default="$LATEST", description="Function version")
    AWS_LAMBDA_FUNCTION_MEMORY_SIZE: Optional[int] = Field(
        default=None, description="Configured memory (MB)"
    )
    AWS_LAMBDA_LOG_GROUP_NAME: str = Field(default="", description="Log group name")
    AWS_LAMBDA_LOG_STREAM_NAME: str = Field(default="", description="Log stream name")

    @property
    def runtime_api_base_url(self) -> str:
        address = self.AWS_LAMBDA_RUNTIME_API.rstrip("/")
        if "://" not in address:
            address = f"http://{address}"
        return f"{address}/{self.RUNTIME_API_VERSION}"
