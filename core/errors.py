"""
Module 01 - Errors
File: errors.py

Purpose: Standard error taxonomy across the price-protection oracle.
Defines both a Pydantic model for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the oracle and claims."""

    # Lookup Errors
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"

    # State & Persistence Errors
    SNAPSHOT_CORRUPT = "SNAPSHOT_CORRUPT"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    ORACLE_NOT_INITIALIZED = "ORACLE_NOT_INITIALIZED"

    # Arithmetic & Configuration Errors
    FIELD_OVERFLOW = "FIELD_OVERFLOW"
    PRICE_OUT_OF_RANGE = "PRICE_OUT_OF_RANGE"
    INVALID_PRICE = "INVALID_PRICE"
    TIER_TABLE_INVALID = "TIER_TABLE_INVALID"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"

    # Merkle Errors
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    TREE_NOT_BUILT = "TREE_NOT_BUILT"

    # Claim Errors
    COMMITMENT_MISMATCH = "COMMITMENT_MISMATCH"
    WITNESS_INVALID = "WITNESS_INVALID"
    POLICY_ALREADY_CLAIMED = "POLICY_ALREADY_CLAIMED"
    PROOF_REJECTED = "PROOF_REJECTED"

    # External Collaborator Errors
    EXTERNAL_UNAVAILABLE = "EXTERNAL_UNAVAILABLE"

    # Blob Errors
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    BLOB_FORMAT_INVALID = "BLOB_FORMAT_INVALID"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class ErrorModel(BaseModel):
    """
    Base error model for structured error communication.

    Used by the HTTP API and CLI JSON output so that errors serialize
    the same way everywhere.
    """

    model_config = ConfigDict(extra="forbid")

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.PRODUCT_NOT_FOUND],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class ZkppException(Exception):
    """
    Base exception for all oracle and claim errors.

    Carries structured error information and can be converted
    to an ErrorModel.
    """

    def __init__(
        self,
        message: str,
        code: str = "ZKPP_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> ErrorModel:
        """Convert this exception to an ErrorModel."""
        return ErrorModel(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class NotFoundException(ZkppException):
    """Base for unknown product/policy lookups. Never retried."""


class ProductNotFoundException(NotFoundException):
    """Raised when a product id is not in the catalog."""

    def __init__(self, product_id: str, available: list[str] | None = None) -> None:
        details: dict[str, Any] = {"product_id": product_id}
        if available is not None:
            details["available"] = available
        super().__init__(
            message=f"Product {product_id} not found",
            code=ErrorCodes.PRODUCT_NOT_FOUND,
            details=details,
        )
        self.product_id = product_id


class PolicyNotFoundException(NotFoundException):
    """Raised when a policy id is unknown to the settlement layer."""

    def __init__(self, policy_id: int | str) -> None:
        super().__init__(
            message=f"Policy {policy_id} does not exist",
            code=ErrorCodes.POLICY_NOT_FOUND,
            details={"policy_id": policy_id},
        )
        self.policy_id = policy_id


class CorruptionException(ZkppException):
    """Raised when a persisted snapshot fails its self-check."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.SNAPSHOT_CORRUPT,
            details=details,
        )


class PersistenceException(ZkppException):
    """Raised when a snapshot cannot be written."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.PERSISTENCE_FAILED,
            details=details,
        )


class OracleNotInitializedException(ZkppException):
    """Raised when the oracle is used before initialize()."""

    def __init__(self) -> None:
        super().__init__(
            message="Oracle not initialized",
            code=ErrorCodes.ORACLE_NOT_INITIALIZED,
        )


class FieldOverflowException(ZkppException):
    """Raised when a value is not a valid field element."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.FIELD_OVERFLOW,
            details=details,
        )


class PriceOutOfRangeException(ZkppException):
    """Raised when no tier covers a price, or a tier id is unknown."""

    def __init__(self, message: str, price: int | None = None) -> None:
        details: dict[str, Any] = {}
        if price is not None:
            details["price"] = price
        super().__init__(
            message=message,
            code=ErrorCodes.PRICE_OUT_OF_RANGE,
            details=details,
        )


class InvalidPriceException(ZkppException):
    """Raised for a rejected price mutation argument."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_PRICE,
            details=details,
        )


class TierTableException(ZkppException):
    """Raised when a tier table is not an exhaustive, disjoint partition."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.TIER_TABLE_INVALID,
            details=details,
        )


class CanonicalizationException(ZkppException):
    """Raised when canonical serialization fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
        )


class IndexOutOfRangeException(ZkppException, IndexError):
    """Raised when a Merkle proof is requested for an index outside the tree."""

    def __init__(self, index: int, capacity: int) -> None:
        super().__init__(
            message=f"Leaf index {index} out of range for tree capacity {capacity}",
            code=ErrorCodes.INDEX_OUT_OF_RANGE,
            details={"index": index, "capacity": capacity},
        )


class CapacityExceededException(ZkppException):
    """Raised when more leaves are supplied than the tree can hold."""

    def __init__(self, count: int, capacity: int) -> None:
        super().__init__(
            message=f"{count} leaves exceed tree capacity {capacity}",
            code=ErrorCodes.CAPACITY_EXCEEDED,
            details={"count": count, "capacity": capacity},
        )


class TreeNotBuiltException(ZkppException):
    """Raised when a tree is queried before build()."""

    def __init__(self) -> None:
        super().__init__(
            message="Merkle tree has not been built",
            code=ErrorCodes.TREE_NOT_BUILT,
        )


class CommitmentMismatchException(ZkppException):
    """Raised when private purchase fields do not open a commitment."""

    def __init__(self, message: str = "Purchase details do not match commitment") -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.COMMITMENT_MISMATCH,
        )


class WitnessException(ZkppException):
    """Raised when circuit inputs are malformed or inconsistent."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.WITNESS_INVALID,
            details=details,
        )


class PolicyAlreadyClaimedException(ZkppException):
    """Raised on a second claim against the same policy."""

    def __init__(self, policy_id: int) -> None:
        super().__init__(
            message=f"Policy {policy_id} already claimed",
            code=ErrorCodes.POLICY_ALREADY_CLAIMED,
            details={"policy_id": policy_id},
        )


class ProofRejectedException(ZkppException):
    """Raised when the proving backend rejects a claim proof."""

    def __init__(self, message: str = "Claim proof failed verification") -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.PROOF_REJECTED,
        )


class ExternalUnavailableException(ZkppException):
    """Raised when the ledger or a publishing endpoint cannot be reached."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if service:
            full_details["service"] = service
        super().__init__(
            message=message,
            code=ErrorCodes.EXTERNAL_UNAVAILABLE,
            details=full_details,
            retryable=True,
        )


class PayloadTooLargeException(ZkppException):
    """Raised when a payload does not fit in a blob. Retrying cannot help."""

    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(
            message=f"Payload of {size} bytes exceeds blob capacity of {capacity} bytes",
            code=ErrorCodes.PAYLOAD_TOO_LARGE,
            details={"size": size, "capacity": capacity},
        )
        self.size = size
        self.capacity = capacity


class BlobFormatException(ZkppException):
    """Raised when chunks cannot be decoded as a framed blob."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.BLOB_FORMAT_INVALID,
            details=details,
        )
