from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Application settings
    SECRET_KEY: str = "your-secret-key-here"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 9000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # JWT settings
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Database settings
    POSTGRES_USER: str = "library"
    POSTGRES_PASSWORD: str = "Passw0rd"
    POSTGRES_DB: str = "library_lending"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    SQLALCHEMY_DATABASE_URI: Optional[str] = None  # Full URL override, e.g. sqlite+aiosqlite:///./lending.db
    SQL_ECHO: bool = False  # Set to True for SQL query debugging

    # Checkout and return run at this level; reads use the server default
    CHECKOUT_ISOLATION_LEVEL: str = "SERIALIZABLE"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:4200"]

    @property
    def DATABASE_URL(self) -> str:
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
