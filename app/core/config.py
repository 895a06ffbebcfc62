from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://pulse:pulse@db:5432/pulse"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://pulse.example.com,https://admin.example.com"
    CORS_ORIGINS: str = "*"

    # Analytics cache lifetimes. Windows that start more than a week ago
    # rarely change, so they live longer.
    ANALYTICS_CACHE_TTL_SECONDS: int = 300
    ANALYTICS_CACHE_STALE_TTL_SECONDS: int = 1800
    ANALYTICS_CACHE_CLEANUP_SECONDS: int = 600

    # Daily rollup reads are opt-in.
    USE_AGGREGATES: bool = False
    AGGREGATE_RECENCY_DAYS: int = 7
    AGGREGATION_BACKFILL_BATCH_SIZE: int = 100
    # Rollup reads also run the raw query and log how the two compare.
    SHADOW_READS: bool = False

    LEADERBOARD_LIMIT: int = 10
    LEADERBOARD_MAX_LIMIT: int = 100

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
