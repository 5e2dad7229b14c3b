from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Gram Panchayat E-Services API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./eservices.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    default_page_size: int = 20
    max_page_size: int = 100
    # Compare-and-set attempts before a contended transition gives up
    transition_retry_limit: int = 5
    system_actor_id: str = "system"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def clamp_limit(self, limit: int | None) -> int:
        if not limit or limit < 1:
            return self.default_page_size
        return min(limit, self.max_page_size)


settings = Settings()
