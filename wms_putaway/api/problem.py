# wms_putaway/api/problem.py
"""
统一错误响应体（Problem）：

    {error_code, message, http_status, context?, details?, retryable?, trace_id}

领域异常 / HTTPException / 请求校验错误都渲染成这一个形状，
trace_id 同时写进日志，便于按请求排查。
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import HTTPException

from wms_putaway.services.errors import PutawayError


def new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


@dataclass
class Problem:
    error_code: str
    message: str
    http_status: int
    context: Dict[str, Any] = field(default_factory=dict)
    details: List[Dict[str, Any]] = field(default_factory=list)
    retryable: bool = False
    trace_id: str = field(default_factory=new_trace_id)

    @classmethod
    def from_error(cls, exc: PutawayError, **request_ctx: Any) -> "Problem":
        """领域异常 → Problem；异常自带的 context 覆盖请求上下文同名键。"""
        return cls(
            error_code=exc.code,
            message=exc.message,
            http_status=exc.http_status,
            context={**request_ctx, **exc.context},
            retryable=exc.retryable,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        if self.context:
            out["context"] = self.context
        if self.details:
            out["details"] = self.details
        if self.retryable:
            out["retryable"] = True
        out["trace_id"] = self.trace_id
        return out


def raise_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> NoReturn:
    """HTTP 层（依赖 / 路由）直接拒绝请求时使用；领域错误请抛 PutawayError。"""
    problem = Problem(
        error_code=error_code,
        message=message,
        http_status=status_code,
        context=dict(context or {}),
    )
    raise HTTPException(status_code=int(status_code), detail=problem.to_dict())
