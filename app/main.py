# /app/main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

# --- Core / Config ---
from app.core.config import settings, TokenSettings
from app.db.base import Base
from app.db.session import engine

# --- API Routers ---
from app.api.routes import auth as auth_router
from app.api.routes import users as users_router


logging.basicConfig(
    level=logging.INFO, # INFO 레벨 이상의 로그를 모두 출력하도록 설정
    format="%(asctime)s - %(levelname)s - %(message)s",
    force=True
)

logger = logging.getLogger(__name__)


# --- Lifespan (애플리케이션 시작/종료 이벤트) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # 시크릿이 없으면 요청 단위가 아니라 시작 단계에서 실패시킨다
    TokenSettings.from_settings(settings)
    Base.metadata.create_all(bind=engine)
    logger.info("RealEstate API started")

    yield


# --- FastAPI App Instance ---
app = FastAPI(
    title="RealEstate API",
    lifespan=lifespan
)

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception:
        # 내부 오류 내용은 로그에만 남김
        logger.exception(f"Unhandled error: {request.method} {request.url.path}")
        raise

    process_time = time.time() - start_time

    # 응답 헤더에 처리 시간 추가
    response.headers["X-Process-Time"] = str(process_time)

    logging.info(
        f"Request processed: {request.method} {request.url.path} - Completed in {process_time:.4f} secs"
    )

    return response


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


# --- 라우트 등록 ---
app.include_router(
    auth_router.router,
    prefix="/api/auth",
    tags=["Authentication"]
)

app.include_router(
    users_router.router,
    prefix="/api/users",
    tags=["users"]
)
