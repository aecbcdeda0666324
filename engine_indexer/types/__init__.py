# engine_indexer/types/__init__.py

# Engine wire types
from .engine import (
    StreamRequest,
    ContractEvent,
    TransactionLogs,
    Transaction,
    Block,
    BlockchainStatus,
    ContractTable,
    Contract,
    TokenBalance,
    Token,
)

# Operation types
from .operations import (
    Role,
    OperationJson,
    CustomOperation,
    TokensTransferPayload,
    TokensTransferToContractPayload,
    TokensStakePayload,
    TokensUnstakePayload,
    TokensCancelUnstakePayload,
    TokensDelegatePayload,
    TokensUndelegatePayload,
    TokensIssuePayload,
    TokensCreatePayload,
    TokensEnableStakingPayload,
    TokensEnableDelegationPayload,
    TokensUpdatePrecisionPayload,
    TokensTransferOwnershipPayload,
    TokensUpdateUrlPayload,
    TokensUpdateMetadataPayload,
    TypedPayload,
    Payload,
    PAYLOAD_TYPES,
)

