import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sqlalchemy import exc

from .config import Settings, load_settings
from .db import Base, TransactionCoordinator, build_engine, build_session_factory, check_connection
from .errors import (
    CODE_INTERNAL_SERVER,
    CODE_VALIDATION_FAILED,
    MSG_INTERNAL_SERVER,
    MSG_VALIDATION_FAILED,
    AuthServiceError,
    InvalidCredentials,
    Unauthorized,
    UserAlreadyExists,
)
from .repository import UserRepository
from .schemas import (
    ChangePasswordRequest,
    Envelope,
    ErrorDetail,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    SessionClaims,
    UpdateUserRequest,
    UserList,
)
from .usecases import AuthUseCase, UserUseCase
from .utils import PasswordHasher, TokenService

# Configura logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Métricas Prometheus ---
# Registradas una sola vez por proceso, compartidas por todas las apps creadas.
REQUEST_COUNT = Counter(
    "auth_requests_total",
    "Total requests processed by Auth Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "auth_request_latency_seconds",
    "Request latency in seconds for Auth Service",
    ["endpoint"]
)


# --- Respuestas ---

def success_response(message: str, data=None) -> dict:
    return Envelope(success=True, message=message, data=data).model_dump(exclude_none=True)


def error_response(status_code: int, code: str, message: str, details: Optional[str] = None) -> JSONResponse:
    body = Envelope(success=False, error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# --- Dependencias ---

def get_auth_usecase(request: Request) -> AuthUseCase:
    return request.app.state.auth_usecase


def get_user_usecase(request: Request) -> UserUseCase:
    return request.app.state.user_usecase


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_claims(
    authorization: Optional[str] = Header(None),
    token_service: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """Validates the `Authorization: Bearer <token>` header and returns the session claims."""
    if not authorization:
        raise Unauthorized("Authorization header required")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer":
        raise Unauthorized("Invalid authorization header format")

    return token_service.verify(parts[1])


# --- Endpoints de API ---

router = APIRouter(prefix="/api/v1")


@router.post("/auth/register", status_code=status.HTTP_201_CREATED, tags=["Authentication"])
def register(body: RegisterRequest, auth: AuthUseCase = Depends(get_auth_usecase)):
    """Registers a new user. The password is stored only as a bcrypt hash."""
    logger.info(f"Registration attempt for email: {body.email}")
    try:
        user = auth.register(body.username, body.email, body.password)
    except UserAlreadyExists:
        logger.warning(f"Registration failed: {body.email} / {body.username} already exists.")
        raise
    return success_response("User registered successfully", user)


@router.post("/auth/login", tags=["Authentication"])
def login(
    body: LoginRequest,
    auth: AuthUseCase = Depends(get_auth_usecase),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Authenticates a user by email and password.
    Returns a JWT access token upon successful authentication.
    """
    logger.info(f"Login attempt for user: {body.email}")
    try:
        user = auth.login(body.email, body.password)
    except InvalidCredentials:
        logger.warning(f"Login failed for user: {body.email}")
        raise

    token = token_service.issue(user.id, user.username, user.email)
    logger.info(f"Login successful for user_id: {user.id}")
    return success_response("Login successful", LoginResponse(token=token, user=user))


@router.get("/auth/verify", tags=["Internal"])
def verify(token: str, token_service: TokenService = Depends(get_token_service)):
    """
    Valida un token JWT (pasado como query parameter 'token') y devuelve su payload.
    Usado por un API Gateway delante del servicio.
    """
    claims = token_service.verify(token)
    return success_response("Token is valid", claims)


# Las rutas fijas de /users van antes de /users/{user_id}

@router.get("/users/profile", tags=["Users"])
def get_profile(
    claims: SessionClaims = Depends(get_current_claims),
    users: UserUseCase = Depends(get_user_usecase),
):
    return success_response("Profile retrieved successfully", users.get_user(claims.user_id))


@router.put("/users/profile", tags=["Users"])
def update_profile(
    body: UpdateUserRequest,
    claims: SessionClaims = Depends(get_current_claims),
    users: UserUseCase = Depends(get_user_usecase),
):
    user = users.update_user(claims.user_id, username=body.username, email=body.email)
    logger.info(f"Usuario {claims.user_id} actualizado.")
    return success_response("User updated successfully", user)


@router.delete("/users/profile", tags=["Users"])
def delete_profile(
    claims: SessionClaims = Depends(get_current_claims),
    users: UserUseCase = Depends(get_user_usecase),
):
    users.delete_user(claims.user_id)
    return success_response("User deleted successfully")


@router.put("/users/password", tags=["Users"])
def change_password(
    body: ChangePasswordRequest,
    claims: SessionClaims = Depends(get_current_claims),
    users: UserUseCase = Depends(get_user_usecase),
):
    users.change_password(claims.user_id, body.old_password, body.new_password)
    return success_response("Password changed successfully")


@router.get("/users", tags=["Users"])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    claims: SessionClaims = Depends(get_current_claims),
    users: UserUseCase = Depends(get_user_usecase),
):
    result = users.list_users(page=page, limit=limit)
    return success_response("Users retrieved successfully", UserList(users=result, page=page, limit=limit))


@router.get("/users/{user_id}", tags=["Users"])
def get_user_by_id(user_id: int, users: UserUseCase = Depends(get_user_usecase)):
    """Retorna la información pública del usuario por su ID."""
    return success_response("User retrieved successfully", users.get_user(user_id))


# --- Manejo de errores ---

async def service_error_handler(request: Request, error: AuthServiceError):
    if error.expected:
        return error_response(error.status_code, error.code, error.message)

    # Fallos de infraestructura: se registran con contexto, al cliente solo un 500 genérico
    logger.error(
        f"{type(error).__name__} during {request.method} {request.url.path}: {error}",
        exc_info=error,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, CODE_INTERNAL_SERVER, MSG_INTERNAL_SERVER)


async def validation_error_handler(request: Request, error: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in error.errors()
    )
    return error_response(status.HTTP_400_BAD_REQUEST, CODE_VALIDATION_FAILED, MSG_VALIDATION_FAILED, details)


# --- Middleware para Métricas ---

async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    response = None
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.error(f"Unhandled exception during request processing: {e}", exc_info=True)
        response = error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, CODE_INTERNAL_SERVER, MSG_INTERNAL_SERVER)
    finally:
        latency = time.time() - start_time
        # Plantilla de la ruta (/users/{user_id}), no la URL concreta
        route = request.scope.get("route")
        endpoint = route.path if route is not None else request.url.path
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=getattr(response, "status_code", status_code)
        ).inc()

    return response


def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def health_check():
    """Performs a basic health check of the service."""
    return {"status": "ok", "service": "auth_service"}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application and its collaborators once: engine, repository,
    hasher, token service and use cases, all held in `app.state`.

    Run with: uvicorn auth_service.main:create_app --factory
    """
    settings = settings or load_settings()

    engine = build_engine(settings.database_url)
    # Crea tablas si no existen al iniciar
    if check_connection(engine):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables verified/created.")
        except exc.SQLAlchemyError as e:
            logger.error(f"Error initializing database: {e}", exc_info=True)

    session_factory = build_session_factory(engine)
    transactions = TransactionCoordinator(session_factory)
    user_repo = UserRepository(session_factory)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    app = FastAPI(
        title="Auth Service",
        description="Handles user registration, authentication, token verification and user profiles.",
        version="1.0.0"
    )
    app.state.engine = engine
    app.state.token_service = TokenService(settings.jwt_secret_key, settings.jwt_expire_hours)
    app.state.auth_usecase = AuthUseCase(user_repo, hasher, transactions)
    app.state.user_usecase = UserUseCase(user_repo, hasher, transactions)

    app.middleware("http")(metrics_middleware)
    app.add_exception_handler(AuthServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_api_route("/metrics", metrics, methods=["GET"], tags=["Monitoring"])
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Monitoring"])
    app.include_router(router)
    return app
