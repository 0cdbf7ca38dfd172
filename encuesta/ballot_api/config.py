"""Configuration management for the ballot API service."""
from typing import Literal, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    SERVICE_NAME: str = "ballot-api"
    API_VERSION: str = "v1"
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Store backend: "postgres" for deployments, "memory" for local runs
    STORE_BACKEND: Literal["postgres", "memory"] = "postgres"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # PostgreSQL configuration
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "encuesta_db"
    POSTGRES_USER: str = "encuesta_user"
    POSTGRES_PASSWORD: str = "encuesta_pass"
    POSTGRES_POOL_MIN_SIZE: int = 2
    POSTGRES_POOL_MAX_SIZE: int = 10

    # RabbitMQ configuration (voting-link notifications)
    NOTIFIER_ENABLED: bool = True
    NOTIFIER_TIMEOUT_SECONDS: float = 3.0
    RABBITMQ_HOST: str = "rabbitmq"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_EXCHANGE: str = "notifications.exchange"
    RABBITMQ_ROUTING_KEY: str = "participant.registered"
    RABBITMQ_POOL_SIZE: int = 5

    # Voting link sent after registration
    VOTING_LINK_BASE_URL: str = "http://localhost:5173/votar"
    RESEND_LINK_ON_DUPLICATE: bool = True

    # Rate limiting
    RATE_LIMIT: str = "1000/second"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    LOG_LEVEL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def postgres_dsn(self) -> str:
        """Generate PostgreSQL connection string."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def rabbitmq_url(self) -> str:
        """Generate RabbitMQ connection URL."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}/"
        )

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.DEBUG else "INFO"


settings = Settings()
