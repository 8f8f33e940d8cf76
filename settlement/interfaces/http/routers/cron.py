"""On-demand triggers for the periodic jobs, guarded by the cron secret."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from settlement.core.container import ApplicationContainer
from settlement.core.security import require_cron_secret
from settlement.interfaces.http.deps import get_container
from settlement.schemas import CleanupResponse, SweepReportResponse

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/update-order-statuses", response_model=SweepReportResponse, summary="Run the pending-order sweep")
async def update_order_statuses(container: ApplicationContainer = Depends(get_container)) -> SweepReportResponse:
    report = await container.reconciliation.sweep_pending()
    return SweepReportResponse.from_domain(report)


@router.post("/cleanup-failed-orders", response_model=CleanupResponse, summary="Flag long-failed orders")
async def cleanup_failed_orders(container: ApplicationContainer = Depends(get_container)) -> CleanupResponse:
    flagged = await container.reconciliation.cleanup_failed()
    return CleanupResponse(flagged=flagged)
