import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from microlearn.config import settings
from microlearn.db.database import init_db
from microlearn.middleware.auth import AuthMiddleware

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS (comma-separated) or local dev defaults.
if settings.cors_origins:
    _allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
else:
    _allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("MicroLearn ready (model server %s, model %s)", settings.llm_base_url, settings.llm_model)
    yield


app = FastAPI(title="MicroLearn", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(AuthMiddleware)

# Import and register routes
from microlearn.routes.auth import router as auth_router
from microlearn.routes.users import router as users_router
from microlearn.routes.knowledge import router as knowledge_router
from microlearn.routes.content import router as content_router
from microlearn.routes.ai import router as ai_router
from microlearn.routes.admin import router as admin_router

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(knowledge_router)
app.include_router(content_router)
app.include_router(ai_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
