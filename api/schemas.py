from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from core.filters import ALL, CHART_LIMIT_TOP, STATUS_BASECAT
from core.normalize import SourceKind


class DashboardFiltersModel(BaseModel):
    year: str = ALL
    month: str = ALL
    employee: str = ALL
    consignee: str = ALL
    account_name: str = ALL
    status: Literal["Beatwise", "BaseCat"] = STATUS_BASECAT
    chart_limit: Literal["10", "all"] = CHART_LIMIT_TOP


class LoginRequest(BaseModel):
    id: str
    password: str


class UserModel(BaseModel):
    role: Literal["admin", "user"]
    name: str
    id: str


class DashboardRequest(BaseModel):
    user: UserModel
    filters: DashboardFiltersModel = Field(default_factory=DashboardFiltersModel)
    source: SourceKind = SourceKind.CANCEL_ORDER
    page: int = 1
