# app/signd/config.py

from pydantic import BaseModel, Field

from app.core.config import settings


class SigndConfig(BaseModel):
    """
    Everything the signd.it client and the overview query builder need,
    handed over explicitly instead of being read from the global settings.
    """
    base_url: str = "https://signd.it"
    api_key: str = ""
    instance_id: str = Field(min_length=1)
    timeout: float = 30.0

    @property
    def api_key_set(self) -> bool:
        return bool(self.api_key)


def get_signd_config() -> SigndConfig:
    """Build the signd configuration from the application settings"""
    return SigndConfig(
        base_url=settings.signd_base_url,
        api_key=settings.signd_api_key,
        instance_id=settings.instance_id,
        timeout=settings.signd_timeout,
    )
