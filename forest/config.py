from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Contract relay
    GATEWAY_URL: str = "http://127.0.0.1:8545/relay"
    CONTRACT_ADDRESS: str = "0x0000000000000000000000000000000000000000"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Transaction confirmation
    CONFIRMATION_POLL_SECONDS: float = 1.0
    CONFIRMATION_TIMEOUT_SECONDS: float = 120.0

    # Countdown
    COUNTDOWN_INTERVAL_SECONDS: float = 1.0

    # Observability
    SENTRY_DSN: str = ""
    LOG_LEVEL: str = "INFO"

    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
