"""Flash loans — provider registry and bracket orchestration."""

from arbcore.loans.orchestrator import LoanOrchestrator
from arbcore.loans.providers import PROVIDER_SPECS, ProviderSpec

__all__ = [
    "PROVIDER_SPECS",
    "LoanOrchestrator",
    "ProviderSpec",
]
