from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from factory.database import get_db
from factory.core.context import AuthContext
from factory.core.security import verify_access_token
from factory.models.user import UserRoleType
from factory.services.events import EventPublisher, LoggingEventPublisher


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_context(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthContext:
    """
    Dependency that turns the bearer token into an AuthContext.

    The token is issued by the auth service; role and sections are taken
    from its claims as given.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = verify_access_token(credentials.credentials)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        logger.warning(f"Invalid user_id in token: {payload.get('sub')}")
        raise credentials_exception

    role = payload.get("role")
    if not isinstance(role, str) or role not in {r.value for r in UserRoleType}:
        logger.warning(f"Unknown role in token: {role}")
        raise credentials_exception

    sections = payload.get("sections") or []
    return AuthContext(user_id=user_id, role=role, sections=list(sections))


def require_roles(*roles: UserRoleType):
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles(UserRoleType.ADMIN))])
        async def create_batch(...):
            ...
    """
    allowed = {r.value for r in roles}

    async def role_dependency(
        ctx: Annotated[AuthContext, Depends(get_auth_context)],
    ) -> AuthContext:
        if ctx.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {ctx.role} cannot perform this action. Required: {', '.join(sorted(allowed))}"
            )
        return ctx

    return role_dependency


def get_event_publisher(request: Request) -> EventPublisher:
    """Publisher installed on the app at startup."""
    publisher = getattr(request.app.state, "event_publisher", None)
    if publisher is None:
        publisher = LoggingEventPublisher()
        request.app.state.event_publisher = publisher
    return publisher


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentContext = Annotated[AuthContext, Depends(get_auth_context)]
Publisher = Annotated[EventPublisher, Depends(get_event_publisher)]
AdminContext = Annotated[AuthContext, Depends(require_roles(UserRoleType.ADMIN))]
ManagerContext = Annotated[AuthContext, Depends(require_roles(UserRoleType.MANAGER))]
OperatorContext = Annotated[AuthContext, Depends(require_roles(UserRoleType.OPERATOR))]
ShippingContext = Annotated[AuthContext, Depends(require_roles(UserRoleType.MANAGER, UserRoleType.ADMIN))]
