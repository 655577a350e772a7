"""
Domain Module

Resource models and the store interface shared by the HTTP layer and the
cache warmer.
"""

from .models import (
    BusinessDomain,
    BusinessDomainInput,
    BusinessDomainUpdate,
    MetricDefinition,
    MetricInput,
    MetricPolicy,
    MetricUpdate,
    Objective,
    ObjectiveInput,
    ObjectiveUpdate,
)
from .stores import (
    InMemoryResourceStore,
    ResourceStore,
    build_domain_store,
    build_metric_store,
    build_objective_store,
)

__all__ = [
    "BusinessDomain",
    "BusinessDomainInput",
    "BusinessDomainUpdate",
    "MetricDefinition",
    "MetricInput",
    "MetricPolicy",
    "MetricUpdate",
    "Objective",
    "ObjectiveInput",
    "ObjectiveUpdate",
    "InMemoryResourceStore",
    "ResourceStore",
    "build_domain_store",
    "build_metric_store",
    "build_objective_store",
]
