# wms_putaway/core/tenant.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TenantContext:
    """
    租户上下文（显式传参，不走全局状态）：

    - company_id: 当前公司 / 租户，所有查询都按它过滤
    - user_id:    操作人，仅用于 updated_by / 审计
    """

    company_id: int
    user_id: Optional[str] = None

    @property
    def actor(self) -> str:
        return self.user_id or "system"
