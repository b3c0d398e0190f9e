"""Report export jobs."""
import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.jobs.queue import Job
from app.jobs.worker import JobHandler, ProgressReporter
from app.schemas.report import ReportDelivery
from app.services.email_service import EmailService
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)

REPORT_QUEUE = "report"
REPORT_JOB = "report"


def build_report_handlers(
    session_factory: async_sessionmaker,
    reports_dir: Optional[str] = None,
    email_service: Optional[EmailService] = None,
    page_size: Optional[int] = None,
) -> Dict[str, JobHandler]:
    """Handlers for the report queue. Each job opens its own session."""

    async def generate_report(job: Job, progress: ProgressReporter) -> Dict[str, Any]:
        payload = job.payload
        async with session_factory() as session:
            service = ReportService(session, reports_dir=reports_dir, page_size=page_size)
            result = await service.generate(
                payload.get("type"),
                payload.get("requestedBy") or {},
                payload.get("filters") or {},
                progress=progress,
            )

        requester = payload.get("requestedBy") or {}
        if payload.get("delivery") == ReportDelivery.EMAIL.value and email_service and requester.get("email"):
            sent = await asyncio.to_thread(
                email_service.send_report_ready, requester["email"], payload.get("type"), result
            )
            if not sent:
                logger.warning(f"Report {result['fileName']} ready but email to {requester['email']} was not sent")
        return result

    return {REPORT_JOB: generate_report}
