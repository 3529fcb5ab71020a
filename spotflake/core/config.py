from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    NODE_ID: int = 0
    EPOCH: int = 1514764800000
    NODE_BITS: int = 10
    STEP_BITS: int = 12
    CLOCK_REGRESSION_POLICY: Literal["wait", "reject"] = "wait"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
