from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

from services.gateway.resilience import BackoffPolicy, CircuitBreakerConfig, ResilienceConfig

ORDER_SERVICE = "order-service"
INVENTORY_SERVICE = "inventory-service"

# Settings prefix for each downstream service
SERVICE_PREFIXES = {
    ORDER_SERVICE: "ORDER",
    INVENTORY_SERVICE: "INVENTORY",
}


class Settings(BaseSettings):
    SERVICE_NAME: str = "order-gateway"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Unset means the backend runs in-process
    ORDER_SERVICE_URL: Optional[str] = None
    INVENTORY_SERVICE_URL: Optional[str] = None

    ORDER_CB_FAILURE_THRESHOLD: int = 5
    ORDER_CB_RECOVERY_TIMEOUT: float = 30.0
    ORDER_CB_HALF_OPEN_MAX_CALLS: int = 1
    ORDER_CB_SUCCESS_THRESHOLD: int = 2
    ORDER_RETRY_MAX_ATTEMPTS: int = 3
    ORDER_RETRY_INITIAL_DELAY: float = 0.5
    ORDER_RETRY_MULTIPLIER: float = 2.0
    ORDER_RETRY_MAX_DELAY: float = 5.0
    ORDER_CALL_TIMEOUT: float = 5.0

    INVENTORY_CB_FAILURE_THRESHOLD: int = 5
    INVENTORY_CB_RECOVERY_TIMEOUT: float = 30.0
    INVENTORY_CB_HALF_OPEN_MAX_CALLS: int = 1
    INVENTORY_CB_SUCCESS_THRESHOLD: int = 2
    INVENTORY_RETRY_MAX_ATTEMPTS: int = 3
    INVENTORY_RETRY_INITIAL_DELAY: float = 0.5
    INVENTORY_RETRY_MULTIPLIER: float = 2.0
    INVENTORY_RETRY_MAX_DELAY: float = 5.0
    INVENTORY_CALL_TIMEOUT: float = 5.0

    class Config:
        env_file = ".env"
        extra = "ignore"

    def resilience_for(self, service: str) -> ResilienceConfig:
        prefix = SERVICE_PREFIXES[service]

        def option(name: str):
            return getattr(self, f"{prefix}_{name}")

        return ResilienceConfig(
            circuit_breaker=CircuitBreakerConfig(
                failure_threshold=option("CB_FAILURE_THRESHOLD"),
                recovery_timeout=option("CB_RECOVERY_TIMEOUT"),
                half_open_max_calls=option("CB_HALF_OPEN_MAX_CALLS"),
                success_threshold=option("CB_SUCCESS_THRESHOLD"),
            ),
            max_attempts=option("RETRY_MAX_ATTEMPTS"),
            backoff=BackoffPolicy(
                initial_delay=option("RETRY_INITIAL_DELAY"),
                multiplier=option("RETRY_MULTIPLIER"),
                max_delay=option("RETRY_MAX_DELAY"),
            ),
            call_timeout=option("CALL_TIMEOUT"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
