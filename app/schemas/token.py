"""Token bundle exchanged between the OAuth client, the store and Drive."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TokenBundle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expiry: datetime | None = None

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type or 'Bearer'} {self.access_token}"
