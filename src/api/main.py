"""
FastAPI 메인 애플리케이션

모듈 포지의 REST API를 제공합니다.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import Settings, get_settings
from ..exceptions import ForgeSystemException, SourceUnavailableException
from ..forge.orchestrator import ModuleForge
from ..utils.logging import setup_logging
from .endpoints.admin import admin_router
from .endpoints.metrics import metrics_router
from .endpoints.modules import modules_router
from .models import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리"""
    logger = setup_logging(app.state.settings)
    logger.info(f"API 서버 시작: 백엔드 {len(app.state.forge.backends)}개")

    try:
        yield
    finally:
        logger.info("API 서버 종료")
        await app.state.forge.close()


def create_app(settings: Optional[Settings] = None, forge: Optional[ModuleForge] = None) -> FastAPI:
    """FastAPI 애플리케이션 생성"""
    if settings is None:
        settings = get_settings()
    if forge is None:
        forge = ModuleForge(settings)

    app = FastAPI(
        title="모듈 포지 API",
        description="여러 백엔드의 모듈을 하나의 포지 API로 제공",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings
    app.state.forge = forge

    # GZip 압축 미들웨어
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.get("/", tags=["Root"])
    async def root():
        """루트 엔드포인트"""
        return {
            "message": "모듈 포지 API",
            "version": "1.0.0",
            "status": "running",
            "backends": [repr(backend) for backend in app.state.forge.backends],
            "timestamp": datetime.now().isoformat(),
        }

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc: HTTPException):
        """HTTP 예외 핸들러"""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                code=str(exc.status_code)
            ).model_dump()
        )

    @app.exception_handler(SourceUnavailableException)
    async def source_unavailable_handler(request, exc: SourceUnavailableException):
        """원격 저장소 접근 실패 핸들러"""
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=ErrorResponse(error=exc.message, code=exc.error_code).model_dump()
        )

    @app.exception_handler(ForgeSystemException)
    async def forge_exception_handler(request, exc: ForgeSystemException):
        """모듈 포지 예외 핸들러"""
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=exc.message, code=exc.error_code).model_dump()
        )

    app.include_router(metrics_router)
    app.include_router(admin_router)
    app.include_router(modules_router)

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level="info"
    )
