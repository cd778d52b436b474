"""
Socket switchboard limit updates.

Signs and submits setExecutionOverhead updates to Socket switchboards on
EVM chains and reports whether the update was confirmed.
"""

__version__ = "0.1.0"

from .chains import CHAIN_SLUG_TO_ID, ChainId, ChainRegistry, ChainSlug, default_registry
from .config import LimitsUpdaterConfig, get_config, set_config
from .digest import ExecutionOverheadUpdate, execution_overhead_digest
from .errors import (
    ConfigurationError,
    ConfirmationCheckError,
    ConfirmationTimeoutError,
    EncodingError,
    SubmissionError,
    UpdateError,
)
from .signer import DigestSigner, LocalKeySigner, SignerProvider
from .updater import (
    ExecutionOverheadUpdater,
    UpdateErrorKind,
    UpdateResult,
    UpdateState,
    set_execution_overhead,
)

__all__ = [
    "__version__",
    # Chains
    "CHAIN_SLUG_TO_ID",
    "ChainId",
    "ChainRegistry",
    "ChainSlug",
    "default_registry",
    # Config
    "LimitsUpdaterConfig",
    "get_config",
    "set_config",
    # Digest
    "ExecutionOverheadUpdate",
    "execution_overhead_digest",
    # Errors
    "UpdateError",
    "ConfigurationError",
    "EncodingError",
    "SubmissionError",
    "ConfirmationTimeoutError",
    "ConfirmationCheckError",
    # Signing
    "DigestSigner",
    "LocalKeySigner",
    "SignerProvider",
    # Updates
    "ExecutionOverheadUpdater",
    "UpdateErrorKind",
    "UpdateResult",
    "UpdateState",
    "set_execution_overhead",
]
