"""Provider-requirement registry: which endpoints need which providers."""

from keyservice.registry.callers import CallerInfo, extract_caller, require_caller
from keyservice.registry.dal import RequirementDAL
from keyservice.registry.registry import (
    ProviderRequirement,
    ProviderRequirementRegistry,
    RequirementQueryResult,
)

__all__ = [
    "CallerInfo",
    "ProviderRequirement",
    "ProviderRequirementRegistry",
    "RequirementDAL",
    "RequirementQueryResult",
    "extract_caller",
    "require_caller",
]
