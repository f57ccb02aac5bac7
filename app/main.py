from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS, LOG_LEVEL, SERVICE_NAME
from app.core.error_handlers import register_error_handlers
from app.core.security import AuthContext
from app.database import init_db
from app.routers import programs

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{SERVICE_NAME} started")
    yield


app = FastAPI(title="Orion Program Service", lifespan=lifespan)

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def user_context_middleware(request: Request, call_next):
    """Build the caller identity from gateway headers; always torn down"""
    auth = AuthContext()
    request.state.auth = auth
    try:
        auth.populate(request.headers, request.url.path)
        return await call_next(request)
    finally:
        auth.clear()


register_error_handlers(app)

# Include routers
app.include_router(programs.router)


@app.get("/health")
async def health():
    return {"status": "UP", "service": SERVICE_NAME}


@app.get("/")
async def root():
    return {
        "message": "Welcome to the Orion Program Service API",
        "endpoints": {
            "programs": "/service/program",
            "health": "/health"
        }
    }


if __name__ == "__main__":
    import uvicorn
    from app.core.config import HOST, PORT

    uvicorn.run("app.main:app", host=HOST, port=PORT)
