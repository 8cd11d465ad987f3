from __future__ import annotations

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Endpoint constants
# ---------------------------------------------------------------------------

DEFAULT_API_URL: str = "https://dimoca-backend.onrender.com"

TOKEN_PATH: str = "/token"
USER_INFO_PATH: str = "/users/me"
MEASUREMENTS_PATH: str = "/mediciones"

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TokenData(BaseModel):
    """Token response from ``POST /token``."""

    access_token: str
    token_type: str = "bearer"


class Session(BaseModel):
    """The bearer token currently in use and whether it is still accepted."""

    token: str
    valid: bool = True
