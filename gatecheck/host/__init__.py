"""Host application access: HTTP API client and credential probes."""

from gatecheck.host.client import HostApiClient
from gatecheck.host.probes import CredentialProbe

__all__ = ["HostApiClient", "CredentialProbe"]
