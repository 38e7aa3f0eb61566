import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tuning_lab.api.v1.execute import reject, router as execute_router
from tuning_lab.api.v1.health import router as health_router
from tuning_lab.core.config import settings
from tuning_lab.core.logger import logger
from tuning_lab.services.execution_service import get_execution_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🔥 [Startup] Oracle tuning lab API is warming up...")
    t0 = time.perf_counter()

    # 提前创建共享服务 (限流表在整个进程生命周期内有效)
    service = get_execution_service()
    logger.info(
        f"   🔌 SQL client: container={settings.CONTAINER_NAME} "
        f"timeout={service.timeout_ms}ms max_output={service.max_output_bytes}B"
    )

    elapsed = time.perf_counter() - t0
    logger.info(f"✅ [Startup] Ready! Took {elapsed:.2f}s")

    yield

    logger.info("🛑 [Shutdown] Bye.")


app = FastAPI(title="oracle-tuning-lab-api", lifespan=lifespan)

# 注册路由
app.include_router(execute_router, prefix="/api/v1")
app.include_router(health_router, prefix="/api/v1")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 缺少 sql / 类型不对 / JSON 格式错误，统一按 400 返回
    return reject(400, "No SQL provided")


if __name__ == "__main__":
    import uvicorn
    import os

    is_reload = os.getenv("UVICORN_RELOAD", "False").lower() == "true"
    logger.info(f"🚀 Starting Uvicorn with reload={is_reload}")

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=is_reload,
    )
