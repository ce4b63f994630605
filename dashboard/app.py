#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - FastAPI Application
REST API стены протоколов: авторизация, библиотека, отметки и прогресс

Версия: 2.0.0
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from dashboard.config import settings
from core.database import ProtocolDatabase
from dashboard.dependencies import init_database, shutdown_database, get_database
from dashboard.api import admin, auth, library, protocols, stats
from shared.models import HealthCheck
from utils.logger import setup_logger

logger = logging.getLogger(__name__)

app_start_time = time.time()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    global app_start_time

    # Startup
    setup_logger(settings.LOG_FILE, settings.LOG_LEVEL)
    logger.info(f"🚀 Запуск {settings.APP_NAME} v{settings.VERSION}...")
    app_start_time = time.time()

    database = init_database()
    logger.info(f"📊 Загружено пользователей: {database.get_users_count()}")
    logger.info(f"🕐 Часовой пояс: {settings.TIMEZONE}")
    logger.info(f"🌐 API доступен на: http://{settings.DASHBOARD_HOST}:{settings.DASHBOARD_PORT}")
    logger.info("✅ API готов к работе")

    yield

    # Shutdown
    logger.info("🛑 Остановка API...")
    try:
        shutdown_database()
        logger.info("✅ Ресурсы очищены")
    except Exception as e:
        logger.error(f"❌ Ошибка при остановке: {e}")

# Создание FastAPI приложения
app = FastAPI(
    title=settings.APP_NAME,
    description="Стена протоколов: ежедневные отметки, серии и прогресс",
    version=settings.VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

# ===== MIDDLEWARE =====

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Gzip compression
app.add_middleware(GZipMiddleware, minimum_size=1000)

@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Middleware для логирования запросов"""
    start_time = time.time()
    client_ip = request.headers.get("X-Forwarded-For", request.client.host if request.client else "unknown")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception(f"❌ Ошибка обработки запроса: {e} ({process_time:.3f}s)")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    process_time = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} "
        f"- {response.status_code} "
        f"- {process_time:.3f}s "
        f"- {client_ip}"
    )
    response.headers["X-Process-Time"] = f"{process_time:.6f}"
    return response

# ===== РОУТЕРЫ =====

app.include_router(auth.router)
app.include_router(library.router)
app.include_router(protocols.router)
app.include_router(stats.router)
app.include_router(admin.router)

# ===== СЛУЖЕБНЫЕ МАРШРУТЫ =====

@app.get("/api/health", response_model=HealthCheck)
def health_check(database: ProtocolDatabase = Depends(get_database)):
    """Health check для мониторинга"""
    try:
        status = database.get_health_status()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "service": "protocolwall",
                "error": str(e),
                "timestamp": time.time()
            }
        )

    return HealthCheck(
        status="healthy",
        service="protocolwall",
        version=settings.VERSION,
        timestamp=time.time(),
        database=status
    )

@app.get("/")
async def api_info():
    """Информация об API"""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime": time.time() - app_start_time,
        "endpoints": {
            "health": "/api/health",
            "auth": "/api/auth",
            "library": "/api/library",
            "wall": "/api/user/protocols",
            "progress": "/api/user/progress",
            "preferences": "/api/user/preferences",
            "admin": "/api/admin/users"
        }
    }

# ===== ОБРАБОТЧИКИ ОШИБОК =====

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Обработчик HTTP исключений"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "status_code": exc.status_code
        },
        headers=getattr(exc, "headers", None)
    )

# ===== ЗАПУСК ПРИЛОЖЕНИЯ =====

def run_dashboard(host: str = None, port: int = None, reload: bool = None):
    """Запуск API сервера"""
    host = host or settings.DASHBOARD_HOST
    port = port or settings.DASHBOARD_PORT
    reload = reload if reload is not None else settings.DEBUG

    logger.info(f"🌐 Запуск API на http://{host}:{port}")
    logger.info(f"📁 Данные: {settings.database_path}")
    logger.info(f"🔄 Автоперезагрузка: {reload}")

    try:
        uvicorn.run(
            "dashboard.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level=settings.LOG_LEVEL.lower(),
            server_header=False,
            date_header=False
        )
    except KeyboardInterrupt:
        logger.info("👋 API остановлен")
