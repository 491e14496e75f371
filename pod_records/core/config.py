"""
Configuration module for the Pod record store.
Uses Pydantic BaseSettings so values come from the environment or a .env file.
"""
import logging

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field has a default so the library imports without a Pod configured;
    operations that need a Pod report NotLoggedIn instead.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pod connection
    pod_server_url: str = Field(default="", description="Root URL of the user's Pod, e.g. https://pods.example.org/alice")
    pod_access_token: str = Field(default="", description="Bearer access token for the Pod")
    pod_request_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")
    pod_verify_ssl: bool = Field(default=True, description="Verify TLS certificates of the Pod server")

    # Client-side encryption
    pod_security_key: str = Field(default="", description="Security key used to encrypt and decrypt blobs")

    # Layout of the record directories
    pod_data_root: str = Field(default="healthpod/data", description="Directory holding one sub-directory per feature")
    pod_file_suffix: str = Field(default=".enc.ttl", description="Suffix of blobs written by this client")
    pod_blob_extension: str = Field(default="ttl", description="Extension appended after .json.enc.")

    # Reads
    pod_read_retries: int = Field(default=1, ge=0, description="Retries for a blob read that hit a transport error")
    pod_read_retry_delay: float = Field(default=0.5, ge=0, description="Seconds to wait before retrying a blob read")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="text", description="'json' or 'text'")

    @model_validator(mode="after")
    def warn_on_partial_pod_config(self) -> "Settings":
        """Warn about combinations that will make every Pod call fail."""
        if self.pod_server_url and not self.pod_access_token:
            logger.warning(
                "POD_SERVER_URL is configured but POD_ACCESS_TOKEN is not set - "
                "all Pod operations will report 'not logged in'"
            )
        if self.pod_server_url and not self.pod_security_key:
            logger.warning(
                "POD_SECURITY_KEY is not set - encrypted writes will be rejected"
            )
        return self


# Global settings instance
settings = Settings()
