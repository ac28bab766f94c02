"""
api/routes/v1/auth.py -- Registration, login and profile REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account; 201 with the public profile
  POST /api/v1/auth/login      -- password login; returns a bearer access token
  GET  /api/v1/auth/me         -- current user's profile (requires bearer token)

Errors are raised as auth.exceptions.AuthError subclasses and rendered by the
handler in api/main.py; routes never build error responses themselves.

Security:
  POST /register and /login are rate-limited per client IP (LOGIN_RATE_LIMIT).
  Per-username lockout happens inside AuthService.login().
  Cache-Control: no-store on login responses.

Handlers are plain def functions: FastAPI runs them in its threadpool, one
worker per request, and AuthService is safe to share across them.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import LoginRequest, LoginResponse, ProfileResponse, RegisterRequest
from auth.dependencies import AuthContext, get_auth_context
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public
# - GET  /api/v1/auth/me:        requires bearer token (get_auth_context)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post("/auth/register", response_model=ProfileResponse, status_code=201)
@limiter.limit(LOGIN_RATE_LIMIT)
def register(request: Request, body: RegisterRequest) -> ProfileResponse:
    """Create a new account. The response never includes the password or its hash."""
    profile = _service(request).register(body.username, body.password, body.full_name)
    return ProfileResponse.from_profile(profile)


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a bearer access token.

    Unknown username and wrong password produce the same invalid_credentials
    error so the endpoint cannot be used to enumerate accounts.
    """
    result = _service(request).login(body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse.from_result(result).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=ProfileResponse)
def me(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> ProfileResponse:
    """Return the profile of the user the bearer token was issued to."""
    return ProfileResponse.from_profile(_service(request).me(ctx.user_id))
