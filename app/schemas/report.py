from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema


class ReportType(str, Enum):
    SHIPMENTS_STATUS = "SHIPMENTS_STATUS"
    ORDERS_SUMMARY = "ORDERS_SUMMARY"
    COD_RECONCILIATION = "COD_RECONCILIATION"
    WAREHOUSE_UTILIZATION = "WAREHOUSE_UTILIZATION"
    USER_ACTIVITY = "USER_ACTIVITY"


class ReportDelivery(str, Enum):
    DOWNLOAD = "download"
    EMAIL = "email"


class ReportFilters(BaseCreateSchema):
    """Optional filters; every list filter is ignored when empty."""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    status: List[str] = Field(default_factory=list)
    warehouse_ids: List[UUID] = Field(default_factory=list)
    vendor_ids: List[UUID] = Field(default_factory=list)
    cities: List[str] = Field(default_factory=list)
    delivery_types: List[str] = Field(default_factory=list)


class ReportExportRequest(BaseCreateSchema):
    # Validated by the endpoint so a missing type yields the API's own message
    type: Optional[str] = None
    filters: ReportFilters = Field(default_factory=ReportFilters)
    delivery: ReportDelivery = ReportDelivery.DOWNLOAD


class ReportExportResponse(BaseResponseSchema):
    success: bool = True
    job_id: str
    message: str = "Report export queued"


class ReportResult(BaseResponseSchema):
    file_path: str
    file_name: str
    rows: int


class ReportStatusResponse(BaseResponseSchema):
    state: str
    progress: int = 0
    result: Optional[Any] = None
    failed_reason: Optional[str] = None
