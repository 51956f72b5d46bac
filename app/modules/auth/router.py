from fastapi import APIRouter, status
from app.modules.auth import service
from app.modules.auth.schemas import LoginRequest, LoginResponse, SessionContext
from app.modules.auth.dependencies import session_dependency

auth_router = APIRouter(prefix="/api", tags=["Auth"])

@auth_router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(data: LoginRequest):
    """
    Sign in with the shop account.

    Returns a bearer token for the other endpoints; wrong credentials give
    401 {"message": "Invalid credentials"}.
    """
    return service.login_user(data)

@auth_router.get("/session", response_model=SessionContext)
def get_session(session: session_dependency):
    """
    The session of the presented token.
    """
    return session
