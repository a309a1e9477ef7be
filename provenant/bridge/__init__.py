"""Boundary layer between the anchoring core and its external collaborators.

Every collaborator is modelled as a Protocol with a small, explicit error
set so that the orchestrator's failure classification stays exhaustive and
testable without a live network.

Modules
-------
crypto_bridge
    Ed25519 key generation, signing and verification via PyNaCl.
credentials
    ``CredentialProvider`` protocol and the Ed25519 implementation.
publishers
    ``Publisher`` protocol, the local content-addressed publisher and the
    IPFS pinning-service publisher.
resolution
    ``NameResolver`` protocol for the verifier's label indirection.
"""
