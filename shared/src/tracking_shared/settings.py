from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Cameras (one tracker per camera)
    camera_ids: str = Field(default="cam-01")

    # Tracking
    tracking_max_disappeared: int = Field(
        default=50,
        ge=0,
        description="Consecutive missed frames tolerated before an object is dropped",
    )
    tracking_dist_thresh: float = Field(
        default=50.0,
        ge=0.0,
        description="Max centroid distance (detection units) for a match",
    )
    tracking_on_malformed: Literal["skip", "empty"] = Field(
        default="skip",
        description="What to do with a detection payload that fails to decode",
    )
    tracking_stream_maxlen: int = Field(default=1000, gt=0)

    # Logging
    log_format: str = Field(default="console")
    log_level: str = Field(default="INFO")

    @property
    def camera_id_list(self) -> list[str]:
        return [c.strip() for c in self.camera_ids.split(",") if c.strip()]


# Module-level singleton, import and use directly
settings = Settings()
