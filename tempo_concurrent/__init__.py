"""Concurrent Tempo payments on independent nonce keys."""

from .allocator import NonceKeyAllocator, validate_nonce_key
from .chain import ChainClient, Receipt, TempoChainClient
from .chunking import Chunk, ChunkPlanner
from .config import ConfigurationError, TempoConfig, load_config
from .confirmation import ConfirmationWaiter
from .coordinator import BatchCoordinator, validate_batch
from .errors import (
    BlockchainError,
    InternalError,
    NetworkError,
    TempoError,
    ValidationError,
    normalize_error,
)
from .models import (
    BatchResult,
    NonceKeyInfo,
    Operation,
    OutcomeStatus,
    SubmissionOutcome,
)
from .rpc_client import RPCError, RPCTransportError, TempoRPCClient
from .submitter import ParallelSubmitter

__all__ = [
    "BatchCoordinator",
    "BatchResult",
    "BlockchainError",
    "ChainClient",
    "Chunk",
    "ChunkPlanner",
    "ConfigurationError",
    "ConfirmationWaiter",
    "InternalError",
    "NetworkError",
    "NonceKeyAllocator",
    "NonceKeyInfo",
    "Operation",
    "OutcomeStatus",
    "ParallelSubmitter",
    "RPCError",
    "RPCTransportError",
    "Receipt",
    "SubmissionOutcome",
    "TempoChainClient",
    "TempoConfig",
    "TempoError",
    "TempoRPCClient",
    "ValidationError",
    "load_config",
    "normalize_error",
    "validate_batch",
    "validate_nonce_key",
]
