"""
Google sign-in.

The client sends the ID token Google issued for this app's OAuth client; the
profile is only trusted after the token's signature, audience and expiry have
been checked against Google's published certificates.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2 import id_token

from backoffice.core.config import Settings, get_settings
from backoffice.services.errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture: Optional[str] = None


class GoogleTokenVerifier:

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def verify(self, token: str) -> GoogleProfile:
        client_id = self.settings.google_client_id
        if not client_id:
            logger.warning("GOOGLE_CLIENT_ID not set - Google sign-in is disabled")
            raise AuthenticationError("Google sign-in is not configured")

        try:
            claims = id_token.verify_oauth2_token(token, Request(), audience=client_id)
        except ValueError as e:
            logger.warning(f"Google ID token rejected: {e}")
            raise AuthenticationError("Invalid Google token")

        if not claims.get("email") or not claims.get("email_verified"):
            raise AuthenticationError("Google account email is not verified")

        return GoogleProfile(
            google_id=claims["sub"],
            email=claims["email"],
            first_name=claims.get("given_name"),
            last_name=claims.get("family_name"),
            picture=claims.get("picture"),
        )
