"""Step-by-step builder for signed NEAR transactions."""

from .config import GlobalContext, NetworkConfig, load_global_context
from .ft_properties import (
    ExactAmount,
    FtMetadata,
    FungibleToken,
    MaxAmount,
    resolve_ft_transfer_amount,
)
from .lifecycle import (
    ActionContext,
    BroadcastError,
    ExecutionFailure,
    LifecycleError,
    TransactionPlan,
    execute_transaction,
)
from .rpc_client import CallResult, NearRPCClient, QueryError
from .signer import SigningError, sign_transaction
from .stages import Stage, ValidationError
from .transaction import PrepopulatedTransaction, SignedTransaction, Transaction
from .tx_builder import build_ft_transfer_actions, get_prepopulated_ft_transaction
from .units import NearGas, NearToken

__all__ = [
    "GlobalContext",
    "NetworkConfig",
    "load_global_context",
    "ExactAmount",
    "FtMetadata",
    "FungibleToken",
    "MaxAmount",
    "resolve_ft_transfer_amount",
    "ActionContext",
    "BroadcastError",
    "ExecutionFailure",
    "LifecycleError",
    "TransactionPlan",
    "execute_transaction",
    "CallResult",
    "NearRPCClient",
    "QueryError",
    "SigningError",
    "sign_transaction",
    "Stage",
    "ValidationError",
    "PrepopulatedTransaction",
    "SignedTransaction",
    "Transaction",
    "build_ft_transfer_actions",
    "get_prepopulated_ft_transaction",
    "NearGas",
    "NearToken",
]
