from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    LOG_JSON: bool = True
    # Store connection; leaving it unset keeps the sink inactive
    MONGODB_URI: str | None = None
    MONGODB_DATABASE: str = "tcc"
    MONGODB_TIMEOUT_MS: int = 5000
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    # Out-of-range numeric payloads: clamp them or drop the message
    INTEGER_OVERFLOW: Literal["saturate", "error"] = "saturate"
    # Optional Redis Streams transport
    REDIS_URL: str | None = None
    REDIS_STREAM_KEY: str = "topicsink:messages"
    REDIS_BLOCK_MS: int = 1000
    # Optional MQTT transport; MQTT_TOPICS is a comma-separated list of filters
    MQTT_URL: str | None = None
    MQTT_TOPICS: str = "#"
    MQTT_CLIENT_ID: str = "topicsink"
    MQTT_QOS: int = 0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
