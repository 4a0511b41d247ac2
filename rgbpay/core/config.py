"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NetworkName = Literal["mainnet", "testnet", "signet", "regtest"]

_NETWORK_ALIASES = {
    "main": "mainnet",
    "mainnet": "mainnet",
    "test": "testnet",
    "testnet": "testnet",
    "signet": "signet",
    "regtest": "regtest",
}

DEFAULT_NODE_URLS = {
    "mainnet": "https://rgb-node.thunderstack.org",
    "testnet": "https://rgb-node.test.thunderstack.org",
    "regtest": "http://127.0.0.1:8000",
}


class ConfigurationError(Exception):
    """Raised when the settings cannot describe a usable deployment."""


def is_valid_node_url(url: str) -> bool:
    if not url or not url.strip():
        return False
    if ".." in url or "<" in url or ">" in url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


class NodeSettings(BaseModel):
    url: str = ""
    timeout_seconds: float = 60.0


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./rgbpay.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SecuritySettings(BaseModel):
    mnemonic_key: str = Field(default="change-me", min_length=8)


class ReconciliationSettings(BaseModel):
    full_sync_interval_seconds: float = 10.0
    poll_interval_seconds: float = 5.0
    error_backoff_seconds: float = 10.0
    cache_floor_seconds: float = 300.0
    expiry_grace_seconds: float = 60.0


class SignerSettings(BaseModel):
    scan_depth: int = Field(default=100, ge=1)


class PaymentSettings(BaseModel):
    method_id: str = "RGB"
    id_prefix: str = "rgb"
    currency: str = "BTC"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RGBPAY_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "RGB Settlement Service"
    api_prefix: str = "/api"

    network: NetworkName = "regtest"

    node: NodeSettings = NodeSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    reconciliation: ReconciliationSettings = ReconciliationSettings()
    signer: SignerSettings = SignerSettings()
    payment: PaymentSettings = PaymentSettings()

    @field_validator("network", mode="before")
    @classmethod
    def _normalise_network(cls, value: object) -> object:
        if isinstance(value, str):
            return _NETWORK_ALIASES.get(value.strip().lower(), value)
        return value

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def node_url(self) -> str:
        """Remote ledger base URL, falling back to the per-network default."""
        url = self.node.url.strip()
        if url:
            if not is_valid_node_url(url):
                raise ConfigurationError(f"Invalid node URL: {url}. Must be a valid HTTP/HTTPS URL.")
            return url
        default = DEFAULT_NODE_URLS.get(self.network)
        if default is None:
            raise ConfigurationError(f"No default node URL for network {self.network}; set RGBPAY_NODE__URL")
        return default


@lru_cache()
def get_settings() -> Settings:
    return Settings()
