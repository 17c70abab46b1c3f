from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient

from hackscore.core.supabase_client import get_supabase_client
from hackscore.models.schemas.users import AuthenticatedUser
from hackscore.utils.exception import UnauthorizedException
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class IsAuthenticated:
    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        supabase: AsyncClient = Depends(get_supabase_client),
    ) -> AuthenticatedUser:
        """
        Validates the bearer access token with Supabase auth.

        Raises:
            UnauthorizedException: If the token is missing or Supabase rejects it.

        Returns:
            AuthenticatedUser: The caller's Supabase identity.
        """
        if credentials is None or not credentials.credentials:
            raise UnauthorizedException("Authorization token is missing")

        try:
            auth_response = await supabase.auth.get_user(credentials.credentials)
        except Exception as e:
            logger.warning(f"Token validation failed: {e}")
            raise UnauthorizedException("Could not validate credentials") from e

        supabase_user = auth_response.user if auth_response else None
        if not supabase_user:
            raise UnauthorizedException("Invalid token or user not found")

        user = AuthenticatedUser(id=str(supabase_user.id), email=supabase_user.email)
        request.state.user = user
        return user


get_current_user = IsAuthenticated()
