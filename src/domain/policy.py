"""
Metric Access Policies

Builds the Open Policy Agent policy served at
``GET /api/v1/metrics/{id}/policy``.

The generated package denies by default and allows reads of the metric
to the owning team and governance administrators. Tier 1 metrics are
classified confidential and are also readable with the ``tier1-reader``
role.
"""

import re

from src.domain.models import MetricDefinition, MetricPolicy

ADMIN_ROLE = "governance-admin"
TIER1_READER_ROLE = "tier1-reader"


def sanitize_package_name(metric_id: str) -> str:
    """Rego package segments allow lowercase letters, digits and underscores."""
    name = re.sub(r"[^a-z0-9_]", "_", metric_id.lower())
    return name if not name[:1].isdigit() else f"m_{name}"


def build_policy(metric: MetricDefinition) -> MetricPolicy:
    package = f"metrics.{sanitize_package_name(metric.metric_id)}"
    classification = "confidential" if metric.tier == "tier1" else "internal"

    allowed_roles = [ADMIN_ROLE]
    if metric.owner_team:
        allowed_roles.append(metric.owner_team)
    if classification == "confidential":
        allowed_roles.append(TIER1_READER_ROLE)

    roles = ", ".join(f'"{role}"' for role in allowed_roles)
    rego = "\n".join(
        [
            f"# OPA Policy for Metric: {metric.name}",
            f"# Category: {metric.category}",
            f"package {package}",
            "",
            "import future.keywords.if",
            "import future.keywords.in",
            "",
            "default allow = false",
            "",
            f"allowed_roles := {{{roles}}}",
            "",
            "allow if {",
            f'    input.metric_id == "{metric.metric_id}"',
            "    some role in input.user.roles",
            "    role in allowed_roles",
            "}",
            "",
        ]
    )

    return MetricPolicy(
        metric_id=metric.metric_id,
        package=package,
        owner_team=metric.owner_team,
        allowed_roles=allowed_roles,
        classification=classification,
        rego=rego,
    )
