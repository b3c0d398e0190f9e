"""Report export endpoints: enqueue, poll status, download."""
import os
import logging

from fastapi import APIRouter, status
from fastapi.responses import FileResponse

from app.api.deps import Queues, StaffUser
from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.jobs.report_jobs import REPORT_JOB, REPORT_QUEUE
from app.schemas.report import (
    ReportExportRequest,
    ReportExportResponse,
    ReportStatusResponse,
    ReportType,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reports"])


@router.post("/export", response_model=ReportExportResponse, status_code=status.HTTP_202_ACCEPTED)
async def export_report(data: ReportExportRequest, queues: Queues, current_user: StaffUser):
    """
    Queue a CSV export. Poll ``/reports/{jobId}/status`` until the state is
    ``completed``, then fetch ``/reports/{jobId}/download``.
    Requires: ADMIN or MANAGER
    """
    if not data.type:
        raise ValidationError("Report type is required")
    try:
        report_type = ReportType(data.type)
    except ValueError:
        raise ValidationError(
            "Invalid report type",
            details=[{"field": "type", "message": f"Must be one of {', '.join(t.value for t in ReportType)}"}],
        )

    job = await queues.get(REPORT_QUEUE).add(
        REPORT_JOB,
        {
            "type": report_type.value,
            "filters": data.filters.model_dump(mode="json", exclude_defaults=True),
            "delivery": data.delivery.value,
            "requestedBy": {
                "id": str(current_user.id),
                "email": current_user.email,
                "role": current_user.role,
            },
        },
        attempts=settings.REPORT_JOB_ATTEMPTS,
    )
    logger.info(f"Report {report_type.value} queued as job {job.id} by {current_user.email}")
    return ReportExportResponse(job_id=job.id)


@router.get("/{job_id}/status", response_model=ReportStatusResponse)
async def report_status(job_id: str, queues: Queues, current_user: StaffUser):
    job = await queues.get(REPORT_QUEUE).get_job(job_id)
    if job is None:
        return ReportStatusResponse(state="unknown", progress=0, result=None)
    return ReportStatusResponse(
        state=job.state,
        progress=job.progress,
        result=job.result,
        failed_reason=job.failed_reason,
    )


@router.get("/{job_id}/download")
async def download_report(job_id: str, queues: Queues, current_user: StaffUser):
    job = await queues.get(REPORT_QUEUE).get_job(job_id)
    result = job.result if job is not None else None
    if not result or not result.get("filePath"):
        raise NotFoundError("Report file not ready")

    file_path = os.path.abspath(result["filePath"])
    if not os.path.exists(file_path):
        raise NotFoundError("Report file missing")

    return FileResponse(file_path, media_type="text/csv", filename=result["fileName"])
