from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://habitcore:habitcore@db:5432/habitcore"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # "Today" is resolved at the HTTP edge in this zone. A day only counts as
    # elapsed once DAY_CUTOVER_GRACE_HOURS have passed after local midnight.
    DEFAULT_TIMEZONE: str = "UTC"
    DAY_CUTOVER_GRACE_HOURS: int = 0

    # JSON lists in env, e.g. STREAK_MILESTONES="[7, 30, 100]"
    STREAK_MILESTONES: list[int] = [7, 14, 21, 30, 60, 90, 100, 180, 365, 500, 1000]
    COMPLETION_MILESTONES: list[int] = [10, 25, 50, 100, 250, 500, 1000]

    CORRELATION_WINDOW_DAYS: int = 30
    CORRELATION_MIN_SAMPLES: int = 7
    CORRELATION_MAX_HABITS: int = 10

    SCORE_WINDOW_DAYS: int = 30
    SCORE_REFERENCE_STREAK: int = 30
    TREND_DEAD_BAND: int = 3

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
