import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tuning_lab.core.errors import InputError, PolicyViolation, RateLimited
from tuning_lab.core.logger import logger
from tuning_lab.schemas.response import ExecuteRequest, ExecuteResponse
from tuning_lab.services.execution_service import BLOCKED_PREFIX, ExecutionService, get_execution_service

router = APIRouter(tags=["SQL Executor"])


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def reject(status_code: int, output: str) -> JSONResponse:
    body = ExecuteResponse(output=output, success=False, executionTime=0)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post("/execute", response_model=ExecuteResponse)
async def execute_endpoint(
        req: ExecuteRequest,
        request: Request,
        service: ExecutionService = Depends(get_execution_service),
):
    """
    执行用户提交的 SQL 脚本 (先过限流和白/黑名单)
    """
    trace_id = str(uuid.uuid4())
    try:
        return await service.run(client_key(request), req.sql, trace_id=trace_id)
    except RateLimited as e:
        return reject(429, str(e))
    except InputError as e:
        return reject(400, str(e))
    except PolicyViolation as e:
        return reject(403, f"{BLOCKED_PREFIX}{e.reason}")
    except Exception:
        # InternalError 以及其它未分类异常
        logger.error("Execute Internal Error", extra={"trace_id": trace_id}, exc_info=True)
        return reject(500, "Internal server error")
