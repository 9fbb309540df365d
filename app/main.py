"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어 및 라우터 등록.

FastAPI application entry point — Middleware and router registration.
Configures request logging, health check, optional startup seeding, and the
member router.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.members import router as members_router
from app.config import settings
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.seed import seed


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """기동 시 SEED_ON_STARTUP 이 켜져 있으면 샘플 회원을 생성합니다.

    Seed sample members at startup when ``SEED_ON_STARTUP`` is enabled.
    """
    if settings.SEED_ON_STARTUP:
        await seed()
    yield


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# API 로깅 미들웨어 — Request/response logging (Axiom or stdout JSON)
app.add_middleware(AxiomLoggingMiddleware)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


# 라우터 등록 — Router registration
app.include_router(members_router, tags=["Members"])
