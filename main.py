import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from config import Settings, configure_logging
from database import get_database
from errors import ServiceError
from gateway import AuthGateway
from identity import FirebaseIdentityGateway, build_firebase_app
from notifications import BrevoNotifier
from profiles import MongoProfileStore
from schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionIdentity,
    SocialLoginRequest,
)
from security import OriginGuard, require_session
from tokens import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gateway(request: Request) -> AuthGateway:
    return request.app.state.gateway

# ---------------------- Routes ----------------------

@router.get("/", response_class=PlainTextResponse)
def read_root():
    return "Backend RealTime funcionando correctamente."

@router.get("/debug")
def debug(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "environment": settings.environment,
        "identityProjectConfigured": settings.identity_configured,
        "emailKeyConfigured": settings.email_configured,
        "port": settings.port,
    }

# -------- Public auth --------

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, gateway: AuthGateway = Depends(get_gateway)):
    return gateway.register(payload)

@router.post("/login")
def login(payload: LoginRequest, gateway: AuthGateway = Depends(get_gateway)):
    return gateway.login(payload)

@router.post("/login-social")
def login_social(payload: SocialLoginRequest, gateway: AuthGateway = Depends(get_gateway)):
    return gateway.login_social(payload)

@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, gateway: AuthGateway = Depends(get_gateway)):
    return gateway.forgot_password(payload)

@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, gateway: AuthGateway = Depends(get_gateway)):
    return gateway.reset_password(payload)

# -------- Protected profile --------

@router.get("/profile")
def get_profile(session: SessionIdentity = Depends(require_session),
                gateway: AuthGateway = Depends(get_gateway)):
    return gateway.get_profile(session)

@router.put("/profile")
def update_profile(payload: ProfileUpdateRequest,
                   session: SessionIdentity = Depends(require_session),
                   gateway: AuthGateway = Depends(get_gateway)):
    return gateway.update_profile(session, payload)

@router.delete("/profile")
def delete_profile(session: SessionIdentity = Depends(require_session),
                   gateway: AuthGateway = Depends(get_gateway)):
    return gateway.delete_me(session)

# ---------------------- Error handlers ----------------------

async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # raw input values may carry passwords
    errors = [{k: e.get(k) for k in ("loc", "type", "msg")} for e in exc.errors()]
    logger.info("Invalid request body on %s: %s", request.url.path, errors)
    return JSONResponse({"error": "Solicitud inválida"}, status_code=400)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Error interno del servidor"}, status_code=500)

# ---------------------- App factory ----------------------

def build_gateway(settings: Settings) -> AuthGateway:
    tokens = TokenService(settings.jwt_secret)
    identity = FirebaseIdentityGateway(build_firebase_app(settings), settings.firebase_api_key)
    profiles = MongoProfileStore(get_database(settings.database_url, settings.database_name))
    notifier = BrevoNotifier(settings.brevo_api_key, settings.email_sender, settings.frontend_url)
    return AuthGateway(identity, profiles, notifier, tokens)


def create_app(settings: Optional[Settings] = None,
               gateway: Optional[AuthGateway] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)
    gateway = gateway or build_gateway(settings)

    app = FastAPI(title="RealTime Auth API")
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.tokens = gateway.tokens

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    # added last so it runs first
    app.add_middleware(OriginGuard, allowed_origins=settings.allowed_origins)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    app.include_router(router, prefix="/api")

    logger.info("App ready (environment=%s, port=%s)", settings.environment, settings.port)
    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
