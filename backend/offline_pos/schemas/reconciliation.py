"""Schemas for stock reconciliation discrepancies."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ReconciliationLineRequest(BaseModel):
    """A physical count for one product."""
    product_id: int
    system_count: int = Field(ge=0)
    physical_count: int = Field(ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)
    discrepancy_reason: Optional[str] = None
    notes: Optional[str] = None
    verified: Optional[bool] = None


class DiscrepancyRequest(BaseModel):
    items: List[ReconciliationLineRequest] = Field(min_length=1)


class ReconciliationLineResponse(BaseModel):
    product_id: int
    system_count: int
    physical_count: int
    unit_cost: Decimal
    discrepancy: int
    estimated_impact: Decimal
    is_verified: bool
    discrepancy_reason: Optional[str] = None
    notes: Optional[str] = None


class DiscrepancySummaryResponse(BaseModel):
    """Shortage values are magnitudes; the sign is applied for display."""
    net_units: int
    net_impact: Decimal
    overage_units: int
    overage_impact: Decimal
    shortage_units: int
    shortage_impact: Decimal


class DiscrepancyReportResponse(BaseModel):
    items: List[ReconciliationLineResponse]
    summary: DiscrepancySummaryResponse
    unverified_product_ids: List[int]
    ready_for_submission: bool
