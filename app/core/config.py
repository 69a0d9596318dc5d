## app/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "*"

    # Either a full SQLAlchemy URL or the MySQL connection parts below
    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_database: Optional[str] = None
    db_port: int = 3306

    # Root of the platform file tree, holds /<uid>/files/...
    data_directory: str = "./data"

    # Stable identifier of this deployment, used to scope remote processes
    instance_id: str

    # signd.it integration
    signd_base_url: str = "https://signd.it"
    signd_api_key: str = ""
    signd_timeout: float = 30.0

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def db_url(self) -> str:
        """
        Sync database URL
        """
        if self.database_url:
            return self.database_url
        return f"mysql+pymysql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_database}"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
