"""Provenant: anchor artifact fingerprints to an endorsing identity.

  - SHA-256 fingerprint engine with a configurable size ceiling
  - Append-only SQLite Provenance Registry (one record per fingerprint)
  - Anchoring orchestrator: fingerprint -> endorse -> publish -> commit,
    with bounded publish retries and a degraded no-locator path
  - Ed25519 endorsements via PyNaCl
  - Local content-addressed and Pinata/IPFS publishers
  - Verifier with optional label resolution
"""

__version__ = "0.1.0"
__description__ = "Artifact provenance anchoring and verification"

from provenant.core.orchestrator import AnchoringOrchestrator
from provenant.core.registry import ProvenanceRegistry
from provenant.core.verifier import Verifier
from provenant.cli.app import app as cli

__all__ = ["AnchoringOrchestrator", "ProvenanceRegistry", "Verifier", "cli", "__version__"]
