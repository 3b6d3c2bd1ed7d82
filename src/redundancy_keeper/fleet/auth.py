"""Bearer-token injection for outbound orchestration requests."""

from __future__ import annotations

from typing import Optional, Protocol

import requests
from requests.auth import AuthBase

from ..core.exceptions import TokenIssuerError


class TokenIssuer(Protocol):
    """Hands out bearer tokens. Caching and refresh are the issuer's concern."""

    def get_token(self) -> str: ...


class StaticTokenIssuer:
    def __init__(self, token: Optional[str]) -> None:
        self._token = token

    def get_token(self) -> str:
        if not self._token:
            raise TokenIssuerError("no fleet API token configured")
        return self._token


class BearerTokenAuth(AuthBase):
    """Asks the issuer for a token on every request and sets the Authorization header."""

    def __init__(self, issuer: TokenIssuer) -> None:
        self.issuer = issuer

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        token = self.issuer.get_token()
        request.headers["Authorization"] = f"Bearer {token}"
        return request
