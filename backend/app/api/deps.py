"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Header, Request

from ..domain.models import ActorRef
from ..domain.errors import AuthenticationError
from ..services.runtime import EngineRuntime
from ..utils.logger import get_correlation_id, set_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Correlation id of the current request

    Normally bound by CorrelationIdMiddleware; falls back to the header,
    then to a fresh id, when the app is mounted without the middleware.
    """
    correlation_id = get_correlation_id()
    if correlation_id is None:
        correlation_id = x_correlation_id or generate_correlation_id()
        set_correlation_id(correlation_id)
    return correlation_id


async def get_actor_dep(
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    x_actor_name: Optional[str] = Header(None, alias="X-Actor-Name")
) -> ActorRef:
    """
    Actor of the request, as set by the upstream authentication gateway

    Raises:
        AuthenticationError: 401 if X-Actor-Id is missing
    """
    if not x_actor_id or not x_actor_id.strip():
        raise AuthenticationError("X-Actor-Id header is missing")
    return ActorRef(actor_id=x_actor_id.strip(), display_name=x_actor_name)


def get_runtime_dep(request: Request) -> EngineRuntime:
    """Process-wide engine runtime created at startup"""
    return request.app.state.runtime
