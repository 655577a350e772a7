"""
Sample Data

Seed resources for the development server. They cover every warmed filter
dimension (three categories, three tiers) so a warming pass on a fresh
dev server populates every key.
"""

from datetime import datetime, timedelta, timezone

from src.domain.models import BusinessDomain, MetricDefinition, Objective

_BASE_TIME = datetime(2025, 12, 1, tzinfo=timezone.utc)


def _at(hours: int) -> dict:
    stamp = _BASE_TIME + timedelta(hours=hours)
    return {"created_at": stamp, "updated_at": stamp}


def sample_metrics() -> list[MetricDefinition]:
    return [
        MetricDefinition(
            metric_id="METRIC-monthly-active-users",
            name="Monthly Active Users",
            description="Distinct users with at least one session in the trailing 30 days",
            category="strategic",
            tier="tier1",
            business_domain="DOMAIN-growth",
            metric_type="kpi",
            tags=["engagement", "users"],
            owner_team="growth-analytics",
            technical_owner="data-platform",
            **_at(1),
        ),
        MetricDefinition(
            metric_id="METRIC-order-fulfillment-time",
            name="Order Fulfillment Time",
            description="Median hours from order placement to shipment",
            category="operational",
            tier="tier2",
            business_domain="DOMAIN-operations",
            metric_type="operational",
            tags=["logistics"],
            owner_team="fulfillment",
            **_at(2),
        ),
        MetricDefinition(
            metric_id="METRIC-support-first-response",
            name="Support First Response Time",
            description="Median minutes to first agent response on a ticket",
            category="tactical",
            tier="tier3",
            business_domain="DOMAIN-operations",
            metric_type="operational",
            tags=["support", "sla"],
            owner_team="customer-support",
            **_at(3),
        ),
        MetricDefinition(
            metric_id="METRIC-net-revenue-retention",
            name="Net Revenue Retention",
            description="Recurring revenue retained from existing customers, including expansion",
            category="strategic",
            tier="tier1",
            business_domain="DOMAIN-growth",
            metric_type="kpi",
            tags=["revenue"],
            owner_team="finance",
            **_at(4),
        ),
    ]


def sample_domains() -> list[BusinessDomain]:
    return [
        BusinessDomain(
            domain_id="DOMAIN-growth",
            name="Growth",
            description="Acquisition, activation and retention",
            owner_team="growth-analytics",
            key_areas=["acquisition", "retention"],
            **_at(1),
        ),
        BusinessDomain(
            domain_id="DOMAIN-operations",
            name="Operations",
            description="Fulfillment and customer support",
            owner_team="operations",
            key_areas=["fulfillment", "support"],
            **_at(2),
        ),
    ]


def sample_objectives() -> list[Objective]:
    return [
        Objective(
            objective_id="OBJ-improve-retention",
            name="Improve retention",
            description="Raise net revenue retention above 110%",
            owner_team="growth-analytics",
            status="active",
            business_domain="DOMAIN-growth",
            key_results=["METRIC-net-revenue-retention"],
            **_at(1),
        ),
    ]
