# ABOUTME: The manual-entry provider: a placeholder source with no remote capabilities.
# ABOUTME: Books typed in by the user are attributed to it; it is always healthy.

from tome.providers.types import ProviderCapabilities, ProviderHealth, ProviderId


class ManualProvider:
    """Provider for user-entered books. Supports no search, fetch, or sync."""

    id = ProviderId.MANUAL
    name = "Manual Entry"
    capabilities = ProviderCapabilities()

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth.HEALTHY
