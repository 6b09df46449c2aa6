from typing import Literal

from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    host: str = "127.0.0.1"
    port: int = 3100
    debug: bool = False
    cors_origins: list[str] = []
    access_log: bool = True
    forwarded_allow_ips: str = "127.0.0.1"  # Proxies trusted for X-Forwarded-For in access logs
    store_backend: Literal["mongo", "memory"] = "mongo"
    database_url: str | None = None  # mongodb://host:port/dbname, required for the mongo backend
    pusher_app_id: str
    pusher_key: str
    pusher_secret: str
    pusher_cluster: str = "us2"
    remote_timeout: float = 5.0  # Upper bound in seconds for every store and channel service call
    auth_token_ttl: int = 24 * 60 * 60  # Collaboration auth token lifetime in seconds
    max_write_attempts: int = 5  # Optimistic concurrency attempts per session mutation

    model_config = {
        "env_file": [".env"],
        "env_prefix": "CODECOLLAB_",
        "extra": "ignore",
    }
