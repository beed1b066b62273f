"""Token endpoint response models (RFC 6749 Section 5.1)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class AccessTokenResponse(BaseModel):
    """Successful access token response issued by a grant."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    id_token: str | None = None  # OpenID Connect
    scope: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of the response, without absent optional fields."""
        return self.model_dump(exclude_none=True, mode="json")
