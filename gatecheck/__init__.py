"""gatecheck: plugin gate verification against a running media-manager host.

Runs ordered verification gates (Schema, Configure, Search, Grab,
ImportList) for each plugin against the host's ``/api/v1`` API and writes
a versioned, redacted run manifest:
  - gate state machine with failure/skip cascade
  - component-resolution provenance (is a discovered id safe to persist?)
  - manifest builder with redaction and schema upgrades
  - text-pattern classifier for host plugin-loading failures
"""

__version__ = "0.3.0"
__description__ = "Plugin gate runner and run-manifest builder for Lidarr-style hosts"

__all__ = ["__version__"]
