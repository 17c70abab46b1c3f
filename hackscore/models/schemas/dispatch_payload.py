"""
Payload handed from the dispatcher to the remote worker.

The worker receives the job description and the identity of the requesting
user, never credentials. It looks secrets up on its own using ``userId``,
which is why every payload is marked ``requiresSecrets``.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from hackscore.models.schemas.queue_message import QueueMessage

_CREDENTIAL_KEY_NAMES = frozenset(
    {
        "secrets",
        "credentials",
        "credential",
        "authorization",
        "auth",
        "cookie",
        "cookies",
    }
)
_CREDENTIAL_KEY_SUFFIXES = ("token", "secret", "password", "apikey", "privatekey", "servicerolekey")


def is_credential_key(key: str) -> bool:
    normalized = key.replace("_", "").replace("-", "").lower()
    return normalized in _CREDENTIAL_KEY_NAMES or normalized.endswith(_CREDENTIAL_KEY_SUFFIXES)


def strip_credentials(value: Any) -> Any:
    """Recursively drop credential-looking keys from dicts (and dicts inside lists)."""
    if isinstance(value, dict):
        return {
            key: strip_credentials(item)
            for key, item in value.items()
            if not (isinstance(key, str) and is_credential_key(key))
        }
    if isinstance(value, list):
        return [strip_credentials(item) for item in value]
    return value


class DispatchPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    job_id: Optional[Union[str, int]] = None
    hackathon_id: Optional[Union[str, int]] = None
    repository: Optional[str] = None
    user_id: Optional[Union[str, int]] = None
    evaluation_criteria: Optional[Any] = None
    is_retry: Optional[bool] = None
    is_addition: Optional[bool] = None
    requires_secrets: bool = True

    @classmethod
    def from_message(cls, message: QueueMessage) -> "DispatchPayload":
        body = strip_credentials(message.message)
        body.pop("requiresSecrets", None)
        return cls.model_validate(body)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorkerAck(BaseModel):
    """The remote worker accepted a request."""

    status_code: int
    body: Optional[Any] = None
