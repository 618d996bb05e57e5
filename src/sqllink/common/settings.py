from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env into os.environ
load_dotenv()


class Settings(BaseSettings):
    """Linked table configuration backed by environment variables."""

    default_fetch_size: int = Field(
        default=0,
        ge=0,
        validation_alias="LINK_FETCH_SIZE",
        description="Rows fetched per round trip for new linked tables; 0 uses the remote default."
    )
    share_linked_sessions: bool = Field(
        default=False,
        validation_alias="SHARE_LINKED_SESSIONS",
        description="Share one remote session between links with identical driver, url, user and password."
    )
    pool_pre_ping: bool = Field(
        default=True,
        validation_alias="LINK_POOL_PRE_PING",
        description="Test pooled DBAPI connections for liveness before handing them out."
    )

    breaker_fail_max: int = Field(
        default=5,
        ge=1,
        validation_alias="LINK_BREAKER_FAIL_MAX",
        description="Consecutive session acquisition failures before the breaker opens."
    )
    breaker_reset_timeout: int = Field(
        default=30,
        ge=0,
        validation_alias="LINK_BREAKER_RESET_TIMEOUT",
        description="Seconds an open breaker waits before letting a trial connect through."
    )

    links_config_path: str = Field(
        default="configs/links.yaml",
        validation_alias="LINKS_CONFIG",
        description="Path to the YAML file declaring linked tables."
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def configure_env(self, env: str) -> None:
        """Loads environment-specific variables and reloads settings."""
        if not env:
            return

        load_dotenv(f".env.{env}", override=True)
        new_settings = Settings()
        self.__dict__.update(new_settings.__dict__)


settings = Settings()
