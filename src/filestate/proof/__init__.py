"""Proof generation and verification."""

from .engine import (
    aggregate_hash,
    find_discrepancies,
    generate_proof,
    verify_proof,
    verify_proof_payload,
)
from .models import (
    PROOF_FORMAT_VERSION,
    PROOF_TYPE,
    SUPPORTED_PROOF_VERSIONS,
    Discrepancy,
    ProofConfig,
    ProofDocument,
    ProofFormatError,
    VerificationResult,
    proof_from_dict,
)

__all__ = [
    "Discrepancy",
    "PROOF_FORMAT_VERSION",
    "PROOF_TYPE",
    "ProofConfig",
    "ProofDocument",
    "ProofFormatError",
    "SUPPORTED_PROOF_VERSIONS",
    "VerificationResult",
    "aggregate_hash",
    "find_discrepancies",
    "generate_proof",
    "proof_from_dict",
    "verify_proof",
    "verify_proof_payload",
]
