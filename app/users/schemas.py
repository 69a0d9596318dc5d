# app/users/schemas.py

from typing import Optional

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """The platform user a request is made on behalf of."""
    uid: str
    display_name: Optional[str] = None
