"""
Supabase access token verification against the project's published JWKS
"""
from typing import Any, Dict, List, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from campfinder.config import REQUEST_TIMEOUT, logger
from campfinder.models.camp import AuthenticatedUser


class TokenVerificationError(Exception):
    """Token missing, malformed, expired or not signed by a published key"""


class MissingConfigurationError(Exception):
    """SUPABASE_URL is not set"""


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer ...`` header value"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


class TokenVerifier:
    """
    Verifies Supabase JWTs. The key set is fetched on first use and refetched
    once when a token names a key id that is not in the cached set.
    """
    def __init__(
        self,
        supabase_url: Optional[str],
        algorithms: List[str],
        audience: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/") if supabase_url else None
        self.algorithms = algorithms
        self.audience = audience
        self.client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=transport)
        self._jwks: Optional[Dict[str, Any]] = None

    @property
    def configured(self) -> bool:
        return bool(self.supabase_url)

    @property
    def jwks_url(self) -> str:
        return f"{self.supabase_url}/auth/v1/.well-known/jwks.json"

    async def close(self):
        await self.client.aclose()

    async def _load_jwks(self, refresh: bool = False) -> Dict[str, Any]:
        if self._jwks is None or refresh:
            response = await self.client.get(self.jwks_url)
            response.raise_for_status()
            self._jwks = response.json()
            logger.debug(f"Loaded {len(self._jwks.get('keys', []))} signing keys")
        return self._jwks

    async def _keys_for(self, kid: Optional[str]) -> List[Dict[str, Any]]:
        keys = (await self._load_jwks()).get("keys", [])
        if kid is None:
            return keys
        matching = [key for key in keys if key.get("kid") == kid]
        if not matching:
            keys = (await self._load_jwks(refresh=True)).get("keys", [])
            matching = [key for key in keys if key.get("kid") == kid]
        return matching

    async def verify(self, token: str) -> AuthenticatedUser:
        """
        Return the token's claims or raise TokenVerificationError
        """
        if not self.configured:
            raise MissingConfigurationError("SUPABASE_URL is not configured")

        try:
            header = jwt.get_unverified_header(token)
            keys = await self._keys_for(header.get("kid"))
            if not keys:
                raise TokenVerificationError("No matching signing key")
            claims = jwt.decode(
                token,
                {"keys": keys},
                algorithms=self.algorithms,
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except (JOSEError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Token verification failed: {e}")
            raise TokenVerificationError(str(e)) from e

        if not claims.get("sub"):
            raise TokenVerificationError("Token has no subject")
        return AuthenticatedUser(sub=claims["sub"], email=claims.get("email"), role=claims.get("role"))

    async def user_or_none(self, token: Optional[str]) -> Optional[AuthenticatedUser]:
        """
        Resolve a session; anything short of a valid token is no session
        """
        if not token or not self.configured:
            return None
        try:
            return await self.verify(token)
        except TokenVerificationError:
            return None
