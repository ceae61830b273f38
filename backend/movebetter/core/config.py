from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "MoveBetter Clinic"
    VERSION: str = "1.0.0"
    CLINIC_NAME: str = "MoveBetter Fisioterapia"
    SECRET_KEY: str = "change-me-in-production-use-strong-random-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    DATABASE_URL: str = "sqlite:///./movebetter.db"

    LOG_LEVEL: str = "INFO"

    # Patient app session
    PATIENT_SESSION_TTL_MINUTES: int = 60 * 12
    PATIENT_SESSION_FILE: Optional[str] = None

    # Dashboard: each of the four stat queries gets its own budget
    DASHBOARD_QUERY_TIMEOUT_SECONDS: float = 3.0

    # Coalesces bursts of change events that force a full re-fetch
    REALTIME_REFETCH_DEBOUNCE_SECONDS: float = 0.5

    # Postal code lookup
    VIACEP_BASE_URL: str = "https://viacep.com.br/ws"
    VIACEP_TIMEOUT: int = 10

    SEED_DEMO_DATA: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
