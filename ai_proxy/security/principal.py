"""Principal extraction for proxied requests.

Authentication happens upstream of this service. The authentication layer
forwards the resolved caller in two headers, which are trusted as-is:

    X-Project-Id:     the calling project
    X-Principal-Type: the kind of caller (engine, user, service, worker)
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import Header, HTTPException

from ai_proxy.config.settings import get_settings


class PrincipalType(str, Enum):
    ENGINE = "engine"
    USER = "user"
    SERVICE = "service"
    WORKER = "worker"


@dataclass(frozen=True)
class Principal:
    project_id: str
    type: PrincipalType


async def get_principal(
    x_project_id: str | None = Header(default=None),
    x_principal_type: str | None = Header(default=None),
) -> Principal:
    """FastAPI dependency returning the caller resolved by the auth layer."""
    if not x_project_id:
        raise HTTPException(status_code=401, detail="Missing principal")

    try:
        principal_type = PrincipalType((x_principal_type or "").strip().lower())
    except ValueError:
        raise HTTPException(status_code=403, detail="Unknown principal type")

    if principal_type.value not in get_settings().principal_types_list:
        raise HTTPException(status_code=403, detail="Principal type not allowed")

    return Principal(project_id=x_project_id, type=principal_type)
