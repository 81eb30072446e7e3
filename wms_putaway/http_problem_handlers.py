# wms_putaway/http_problem_handlers.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wms_putaway.api.problem import Problem, new_trace_id
from wms_putaway.services.errors import PutawayError

logger = logging.getLogger("wms_putaway.http")


def _request_ctx(req: Request) -> Dict[str, Any]:
    return {"path": req.url.path, "method": req.method}


def _respond(problem: Problem) -> JSONResponse:
    return JSONResponse(status_code=problem.http_status, content=problem.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """
    所有错误统一渲染为 Problem：

    - PutawayError            → 异常自带 code / http_status / retryable
    - HTTPException           → detail 已是 Problem 时补齐请求上下文，否则包成 http_error
    - RequestValidationError  → 422 request_validation_error，逐字段 details
    - 其它未捕获异常          → 500 internal_error（logger.exception 带 trace_id）
    """

    @app.exception_handler(PutawayError)
    async def _on_putaway_error(req: Request, exc: PutawayError):
        problem = Problem.from_error(exc, **_request_ctx(req))
        if exc.retryable:
            logger.warning("retryable error [%s] %s: %s", problem.trace_id, exc.code, exc.message)
        return _respond(problem)

    @app.exception_handler(HTTPException)
    async def _on_http_exc(req: Request, exc: HTTPException):
        detail = exc.detail
        if isinstance(detail, dict) and "error_code" in detail:
            body = dict(detail)
            body["http_status"] = int(exc.status_code)
            body["context"] = {**_request_ctx(req), **(body.get("context") or {})}
            body.setdefault("trace_id", new_trace_id())
            return JSONResponse(status_code=int(exc.status_code), content=body)

        return _respond(
            Problem(
                error_code="http_error",
                message=str(detail) if detail else "请求被拒绝",
                http_status=int(exc.status_code),
                context=_request_ctx(req),
            )
        )

    @app.exception_handler(RequestValidationError)
    async def _on_validation_error(req: Request, exc: RequestValidationError):
        details = [
            {
                "type": "validation",
                "loc": ".".join(str(p) for p in err.get("loc", ())),
                "reason": str(err.get("msg") or err.get("type") or "invalid"),
            }
            for err in exc.errors()
            if isinstance(err, dict)
        ]
        return _respond(
            Problem(
                error_code="request_validation_error",
                message="请求参数不合法",
                http_status=422,
                context=_request_ctx(req),
                details=details,
            )
        )

    @app.exception_handler(Exception)
    async def _on_unhandled(req: Request, exc: Exception):
        problem = Problem(
            error_code="internal_error",
            message="系统异常，请稍后重试",
            http_status=500,
            context=_request_ctx(req),
        )
        logger.exception("unhandled error [%s] %s %s", problem.trace_id, req.method, req.url.path)
        return _respond(problem)
