"""
Session dependencies for FastAPI.

require_session is attached to the protected routers in app.main, so the
gate lives at the composition root and handlers receive the session
explicitly when they need it.
"""
from typing import Annotated, Optional
from datetime import datetime, timezone
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.modules.auth.schemas import SessionContext
from app.modules.auth.utils import verify_token

security = HTTPBearer(auto_error=False)


def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> SessionContext:
    """Reject the request unless it carries a valid session token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials)
    session = SessionContext(
        user_id=payload["sub"],
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
    request.state.session = session
    return session


session_dependency = Annotated[SessionContext, Depends(require_session)]
