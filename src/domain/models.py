"""
Resource Models

Pydantic models for the three governed resource families. Each family has
a full model (what stores return and the API serves), an input model for
creation and an update model where every field is optional.

Only the fields the HTTP surface and the cache warmer rely on are modelled;
the relational stores carry more columns.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Metrics
# ============================================================================


class MetricDefinition(BaseModel):
    """A governed metric definition."""

    metric_id: str
    name: str
    description: str = ""
    category: str = Field(description="operational, strategic or tactical")
    tier: str = Field(default="tier2", description="tier1, tier2 or tier3")
    business_domain: str | None = None
    metric_type: str = "operational"
    tags: list[str] = Field(default_factory=list)
    owner_team: str | None = None
    technical_owner: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class MetricInput(BaseModel):
    """Payload for creating a metric; ``metric_id`` is generated when omitted."""

    metric_id: str | None = None
    name: str = Field(min_length=1)
    description: str = ""
    category: str = Field(min_length=1)
    tier: str = "tier2"
    business_domain: str | None = None
    metric_type: str = "operational"
    tags: list[str] = Field(default_factory=list)
    owner_team: str | None = None
    technical_owner: str | None = None


class MetricUpdate(BaseModel):
    """Partial update for a metric."""

    name: str | None = None
    description: str | None = None
    category: str | None = None
    tier: str | None = None
    business_domain: str | None = None
    metric_type: str | None = None
    tags: list[str] | None = None
    owner_team: str | None = None
    technical_owner: str | None = None


class MetricPolicy(BaseModel):
    """
    OPA access policy generated for a metric.

    ``rego`` is the policy source; the other fields summarise it for
    clients that do not evaluate Rego.
    """

    metric_id: str
    package: str
    owner_team: str | None = None
    allowed_roles: list[str] = Field(default_factory=list)
    classification: str = "internal"
    rego: str = ""


# ============================================================================
# Business Domains
# ============================================================================


class BusinessDomain(BaseModel):
    """A business domain grouping metrics and objectives."""

    domain_id: str
    name: str
    description: str = ""
    owner_team: str | None = None
    contact_email: str | None = None
    key_areas: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class BusinessDomainInput(BaseModel):
    domain_id: str | None = None
    name: str = Field(min_length=1)
    description: str = ""
    owner_team: str | None = None
    contact_email: str | None = None
    key_areas: list[str] = Field(default_factory=list)


class BusinessDomainUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    owner_team: str | None = None
    contact_email: str | None = None
    key_areas: list[str] | None = None


# ============================================================================
# Objectives
# ============================================================================


class Objective(BaseModel):
    """A business objective with its key results."""

    objective_id: str
    name: str
    description: str = ""
    owner_team: str | None = None
    status: str = "draft"
    business_domain: str | None = None
    key_results: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ObjectiveInput(BaseModel):
    objective_id: str | None = None
    name: str = Field(min_length=1)
    description: str = ""
    owner_team: str | None = None
    status: str = "draft"
    business_domain: str | None = None
    key_results: list[str] = Field(default_factory=list)


class ObjectiveUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    owner_team: str | None = None
    status: str | None = None
    business_domain: str | None = None
    key_results: list[str] | None = None
