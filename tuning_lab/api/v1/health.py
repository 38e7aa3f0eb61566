from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tuning_lab.core.logger import logger
from tuning_lab.schemas.response import HealthResponse
from tuning_lab.services.execution_service import ExecutionService, get_execution_service

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_endpoint(service: ExecutionService = Depends(get_execution_service)):
    """容器是否在跑 + Oracle 是否能响应查询"""
    try:
        status = await service.health()
    except Exception:
        logger.error("Health Check Error", exc_info=True)
        body = HealthResponse(containerRunning=False, oracleReady=False)
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
    return HealthResponse(containerRunning=status.container_running, oracleReady=status.oracle_ready)
