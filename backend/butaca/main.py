from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .core.database import create_db_and_tables
from .core.logging import get_logger
from .core.settings import settings
from .models.User import User # Import models to register them with SQLModel
from .models.SessionToken import SessionToken
from .models.Activity import ActivityLog
from .auth.errors import AuthError

from .auth.router import router as auth_router
from .users.router import router as users_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield



app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(auth_router)
app.include_router(users_router)

@app.exception_handler(AuthError)
async def handle_auth_error(request: Request, exc: AuthError):
    logger.warning(
        "auth_error",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error_code=exc.error_code,
        reason=exc.reason,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
        headers=headers,
    )

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
