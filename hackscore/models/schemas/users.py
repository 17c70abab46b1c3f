from typing import Optional

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Caller identity resolved from a Supabase access token."""

    id: str
    email: Optional[str] = None
