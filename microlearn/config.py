import sys
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI-compatible chat completions server (LM Studio by default)
    llm_base_url: str = "http://127.0.0.1:1234/v1"
    llm_model: str = "local-model"
    # Local servers ignore the key but the SDK requires a non-empty value
    llm_api_key: str = "lm-studio"
    llm_temperature: float = 0.7
    llm_timeout: float = 120.0
    # Maximum conversation entries kept per user (user + assistant messages)
    memory_max_size: int = 20
    # Database path - can be overridden via DATABASE_PATH env var for Docker
    database_path: str = "microlearn.db"
    # JWT_SECRET must be set via environment variable - no default
    jwt_secret: str = ""
    # Emails that receive the admin role at registration (comma-separated)
    admin_emails: str = ""
    # Allowed CORS origins (comma-separated)
    cors_origins: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def admin_email_set(self) -> set[str]:
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}


def _load_settings() -> Settings:
    """Load settings and validate critical security requirements."""
    s = Settings()

    # JWT_SECRET is required - no hardcoded fallback
    if not s.jwt_secret:
        print("ERROR: JWT_SECRET environment variable is required but not set.", file=sys.stderr)
        print("Set JWT_SECRET to a secure random string (at least 32 characters).", file=sys.stderr)
        sys.exit(1)

    if len(s.jwt_secret) < 32:
        print("ERROR: JWT_SECRET must be at least 32 characters.", file=sys.stderr)
        sys.exit(1)

    if s.memory_max_size < 2:
        print("ERROR: MEMORY_MAX_SIZE must hold at least one exchange (2 entries).", file=sys.stderr)
        sys.exit(1)

    return s


settings = _load_settings()
