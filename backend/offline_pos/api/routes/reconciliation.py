"""Stock reconciliation discrepancy routes."""

from typing import List

from fastapi import APIRouter, Request

from offline_pos.core.rate_limit import limiter
from offline_pos.schemas.reconciliation import DiscrepancyReportResponse, DiscrepancyRequest
from offline_pos.services.discrepancy_service import (
    ReconciliationLine,
    aggregate,
    ensure_verified,
    unverified_lines,
)

router = APIRouter()


def _report(lines: List[ReconciliationLine]) -> dict:
    summary = aggregate(lines)
    pending = unverified_lines(lines)
    return {
        "items": [
            {
                "product_id": line.product_id,
                "system_count": line.system_count,
                "physical_count": line.physical_count,
                "unit_cost": line.unit_cost,
                "discrepancy": line.discrepancy,
                "estimated_impact": line.estimated_impact,
                "is_verified": line.is_verified,
                "discrepancy_reason": line.discrepancy_reason,
                "notes": line.notes,
            }
            for line in lines
        ],
        "summary": summary.as_dict(),
        "unverified_product_ids": [line.product_id for line in pending],
        "ready_for_submission": not pending,
    }


@router.post("/discrepancies", response_model=DiscrepancyReportResponse)
@limiter.limit("60/minute")
def compute_discrepancies(request: Request, body: DiscrepancyRequest):
    """Per-line discrepancies and the overage/shortage summary for a count.

    Lines whose physical count matches the system count must be verified
    explicitly before the reconciliation is ready for submission.
    """
    lines = [ReconciliationLine(**item.model_dump()) for item in body.items]
    return _report(lines)


@router.post("/finalize", response_model=DiscrepancyReportResponse)
@limiter.limit("20/minute")
def finalize_reconciliation(request: Request, body: DiscrepancyRequest):
    """Accept a count for submission. 409 while any line is unverified."""
    lines = [ReconciliationLine(**item.model_dump()) for item in body.items]
    report = _report(lines)
    ensure_verified(lines)
    return report
