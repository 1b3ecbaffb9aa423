# cortex/models.py
from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# Money columns come back as float; sqlite has no native decimal.
Money = Numeric(12, 2, asdecimal=False)

# Largest value an INTEGER primary key can hold (signed 64-bit)
MAX_ROW_ID = 2**63 - 1


def is_row_id(value: int) -> bool:
    return 0 < value <= MAX_ROW_ID


# -----------------------------
# Core enums
# -----------------------------
class LeadStatus(str, enum.Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    converted = "converted"
    unqualified = "unqualified"


class Platform(str, enum.Enum):
    meta = "Meta"
    google = "Google"
    tiktok = "TikTok"


class FunnelStage(str, enum.Enum):
    tof = "tof"
    mof = "mof"
    bof = "bof"


# -----------------------------
# Dimensions
# -----------------------------
class LeadSource(Base):
    __tablename__ = "lead_sources"
    __table_args__ = (UniqueConstraint("name", name="uq_lead_source_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80))
    source_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    platform: Mapped[str] = mapped_column(String(20), index=True)
    platform_campaign_id: Mapped[str | None] = mapped_column(String(80), nullable=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    objective: Mapped[str | None] = mapped_column(String(60), nullable=True)
    funnel_stage: Mapped[str] = mapped_column(String(10), default=FunnelStage.tof.value)

    # attribution keys (matched exactly against incoming utm params)
    utm_source: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)
    utm_medium: Mapped[str | None] = mapped_column(String(80), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class LandingPage(Base):
    __tablename__ = "landing_pages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    page_url: Mapped[str] = mapped_column(String(500))
    page_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    page_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    offer_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


# -----------------------------
# Facts
# -----------------------------
class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date_key: Mapped[int] = mapped_column(Integer, index=True)  # YYYYMMDD (UTC)

    # PII is only ever stored hashed
    email_hash: Mapped[str] = mapped_column(String(64), index=True)
    phone_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    name_first: Mapped[str | None] = mapped_column(String(120), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(120), nullable=True)

    status: Mapped[LeadStatus] = mapped_column(Enum(LeadStatus), default=LeadStatus.new, index=True)
    score: Mapped[int] = mapped_column(Integer, default=0, index=True)
    deal_value: Mapped[float | None] = mapped_column(Money, nullable=True)

    utm_source: Mapped[str | None] = mapped_column(String(120), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(120), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)

    fbc: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fbp: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gclid: Mapped[str | None] = mapped_column(String(255), nullable=True)

    source_id: Mapped[int | None] = mapped_column(ForeignKey("lead_sources.id"), nullable=True, index=True)
    campaign_id: Mapped[int | None] = mapped_column(ForeignKey("campaigns.id"), nullable=True, index=True)
    landing_page_id: Mapped[int | None] = mapped_column(ForeignKey("landing_pages.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    contacted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    qualified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class AdSpend(Base):
    __tablename__ = "ad_spend"
    __table_args__ = (UniqueConstraint("date_key", "campaign_id", name="uq_ad_spend_day_campaign"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    spend_date: Mapped[date] = mapped_column(Date, index=True)
    date_key: Mapped[int] = mapped_column(Integer, index=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"), index=True)

    impressions: Mapped[int] = mapped_column(BigInteger, default=0)
    clicks: Mapped[int] = mapped_column(BigInteger, default=0)
    spend: Mapped[float] = mapped_column(Money, default=0.0)
    leads_platform: Mapped[int] = mapped_column(Integer, default=0)


class LeadAttribution(Base):
    __tablename__ = "lead_attributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id"), index=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"), index=True)

    attribution_model: Mapped[str] = mapped_column(String(40), default="last_click")
    attribution_weight: Mapped[float] = mapped_column(Float, default=1.0)
    attributed_value: Mapped[float | None] = mapped_column(Money, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class RawFormSubmission(Base):
    """
    Audit copy of the webhook payload, exactly as received.
    One row per lead.
    """
    __tablename__ = "raw_form_submissions"
    __table_args__ = (UniqueConstraint("lead_id", name="uq_raw_submission_lead"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id"))

    submission_source: Mapped[str] = mapped_column(String(40), default="landing_page")
    raw_payload_json: Mapped[str] = mapped_column(Text)
    processed_status: Mapped[str] = mapped_column(String(20), default="success")

    received_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
