import logging
import warnings

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"  # development | test | production

    # Server
    dwella_host: str = "0.0.0.0"
    dwella_port: int = 8000

    # Database (sqlite for local dev, postgresql+asyncpg for production)
    database_url: str = "sqlite+aiosqlite:///./data/dwella.db"

    # Auth
    jwt_secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7 days

    # Home verification
    verification_code_secret: str = "dev-verification-secret-change-in-production"
    verification_code_length: int = 6  # clamped to 6..8
    verification_max_attempts: int = 5
    verification_expiry_days: int = 30
    postcard_min_interval_hours: int = 24

    # Lob (postcard delivery); simulated when lob_api_key is empty
    lob_api_key: str = ""
    lob_from_address_id: str = ""
    lob_api_url: str = "https://api.lob.com/v1/postcards"
    lob_timeout_seconds: int = 15

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

# Warn on insecure defaults (logged at startup, not a hard error for dev convenience)
_logger = logging.getLogger("dwella.config")
_INSECURE_SECRETS = {
    "dev-secret-change-in-production",
    "change-me-to-a-random-string",
    "fallback-secret",
    "dev-verification-secret-change-in-production",
}


def validate_security_posture(cfg: Settings) -> None:
    is_prod = cfg.environment.lower() in {"production", "prod"}

    if cfg.jwt_secret_key in _INSECURE_SECRETS:
        if is_prod:
            raise RuntimeError(
                "FATAL: JWT_SECRET_KEY is set to an insecure default. "
                "Set a strong random secret via the JWT_SECRET_KEY environment variable before deploying to production."
            )
        warnings.warn(
            "JWT_SECRET_KEY is set to the default insecure value. "
            "Set a strong random secret via the JWT_SECRET_KEY environment variable for production.",
            stacklevel=1,
        )

    if cfg.cors_origins == "*":
        if is_prod:
            raise RuntimeError(
                "FATAL: CORS_ORIGINS cannot be '*' in production. "
                "Set explicit trusted origins via the CORS_ORIGINS environment variable."
            )
        _logger.warning(
            "CORS_ORIGINS is set to '*' (allow all). "
            "Configure specific origins for production via the CORS_ORIGINS environment variable."
        )

    if cfg.lob_api_key and not cfg.lob_from_address_id:
        if is_prod:
            raise RuntimeError(
                "FATAL: LOB_FROM_ADDRESS_ID must be set when LOB_API_KEY is configured."
            )
        _logger.warning("LOB_API_KEY is set without LOB_FROM_ADDRESS_ID; postcards will fail to send.")

    if is_prod:
        if not cfg.verification_code_secret or cfg.verification_code_secret in _INSECURE_SECRETS:
            raise RuntimeError(
                "FATAL: VERIFICATION_CODE_SECRET must be set to a strong random value in production."
            )
        if cfg.verification_code_secret == cfg.jwt_secret_key:
            raise RuntimeError(
                "FATAL: VERIFICATION_CODE_SECRET must be different from JWT_SECRET_KEY in production."
            )


validate_security_posture(settings)
