from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    source_type: str | None = None
    is_paid: bool


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    platform_campaign_id: str | None = None
    name: str | None = None
    objective: str | None = None
    funnel_stage: str
    utm_source: str | None = None
    utm_medium: str | None = None
    is_active: bool


class LandingPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    page_url: str
    page_name: str | None = None
    page_type: str | None = None
    offer_name: str | None = None


class LeadOut(BaseModel):
    id: int
    date_key: int
    name_first: str | None = None
    company_name: str | None = None
    job_title: str | None = None

    status: str
    score: int
    deal_value: float | None = None

    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_content: str | None = None
    utm_term: str | None = None

    source_id: int | None = None
    campaign_id: int | None = None
    landing_page_id: int | None = None

    source: SourceOut | None = None
    campaign: CampaignOut | None = None
    landing_page: LandingPageOut | None = None

    created_at: datetime
    contacted_at: datetime | None = None
    qualified_at: datetime | None = None
    converted_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: tuple[Any, Any, Any, Any]) -> "LeadOut":
        lead, source, campaign, page = row
        return cls(
            id=lead.id,
            date_key=lead.date_key,
            name_first=lead.name_first,
            company_name=lead.company_name,
            job_title=lead.job_title,
            status=lead.status.value,
            score=lead.score,
            deal_value=lead.deal_value,
            utm_source=lead.utm_source,
            utm_medium=lead.utm_medium,
            utm_campaign=lead.utm_campaign,
            utm_content=lead.utm_content,
            utm_term=lead.utm_term,
            source_id=lead.source_id,
            campaign_id=lead.campaign_id,
            landing_page_id=lead.landing_page_id,
            source=SourceOut.model_validate(source) if source else None,
            campaign=CampaignOut.model_validate(campaign) if campaign else None,
            landing_page=LandingPageOut.model_validate(page) if page else None,
            created_at=lead.created_at,
            contacted_at=lead.contacted_at,
            qualified_at=lead.qualified_at,
            converted_at=lead.converted_at,
            updated_at=lead.updated_at,
        )


class AttributionOut(BaseModel):
    id: int
    campaign_id: int
    campaign_name: str | None = None
    attribution_model: str
    attribution_weight: float
    attributed_value: float | None = None
    created_at: datetime


class LeadDetailOut(LeadOut):
    fbc: str | None = None
    fbp: str | None = None
    gclid: str | None = None
    attributions: list[AttributionOut] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class LeadListOut(BaseModel):
    leads: list[LeadOut]
    pagination: Pagination
    sources: list[SourceOut]
    campaigns: list[CampaignOut]
    stats: dict[str, int]


class LeadPatch(BaseModel):
    status: str | None = None
    score: int | None = None
    deal_value: float | None = Field(default=None, ge=0)


class BulkUpdateOut(BaseModel):
    success: bool
    updated: int = Field(..., ge=0)
    skipped: list[int]


class WebhookLeadOut(BaseModel):
    success: bool
    leadId: int
    score: int = Field(..., ge=0, le=100)
