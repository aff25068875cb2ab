# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import Optional

class AppSettings(BaseSettings):
    # Remote SM&CR backend
    SMCR_API_BASE_URL: str = "http://localhost:3000"
    SMCR_API_PREFIX: str = "/api/smcr"
    DEFAULT_HTTP_TIMEOUT: float = 10.0

    # External register lookup used by re-verification
    FCA_REGISTER_URL: Optional[str] = None # e.g., http://localhost:3000/api/fca-register
    VERIFICATION_DELAY_SECONDS: float = 0.5
    VERIFICATION_STALE_THRESHOLD_DAYS: int = 30

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "smcr-workspace-api"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
logger.info("Application settings module initialized.")
