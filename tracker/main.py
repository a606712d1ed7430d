from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracker.api import applications, auth, dashboard
from tracker.config import settings
from tracker.errors import AuthError, AuthRequiredError, StoreError, ValidationError
from tracker.utils.logger import get_logger, setup_logging

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(title="Internship Tracker API", version="0.1.0")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": exc.message})


@app.exception_handler(AuthRequiredError)
@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.warning("Store error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": exc.message})


# Routers
app.include_router(auth.router)
app.include_router(applications.router)
app.include_router(dashboard.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
