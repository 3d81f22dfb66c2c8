from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "crudkit"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str = "sqlite+pysqlite:///./crudkit.db"

    DEFAULT_PER_PAGE: int = 40
    EXPORT_PER_PAGE: int = 9_999_999
    TERM_FIELD_NAME: str = "term"
    # Public identifier substituted for `id` at the end of relation filter paths
    EXTERNAL_ID_COLUMN: str = "external_id"
    SERIALIZE_METHOD: str = "to_dict"
    OPTIONS_DEFAULT_VALUE: str = "id"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
