# engine_indexer/types/operations.py

from typing import Any, Dict, Literal, Optional, Tuple, Type, Union

from msgspec import Struct, field


Role = Literal["active", "posting"]


class OperationJson(Struct):
    contractName: str
    contractAction: str
    contractPayload: Dict[str, Any]


class CustomOperation(Struct):
    id: str
    account: str
    role: Role
    json: OperationJson


# Token contract payloads

class TokensTransferPayload(Struct, omit_defaults=True):
    symbol: str
    to: str
    quantity: str
    memo: Optional[str] = None


class TokensTransferToContractPayload(Struct):
    symbol: str
    to: str
    quantity: str


class TokensStakePayload(Struct):
    to: str
    symbol: str
    quantity: str


class TokensUnstakePayload(Struct):
    symbol: str
    quantity: str


class TokensCancelUnstakePayload(Struct):
    txID: str


class TokensDelegatePayload(Struct):
    to: str
    symbol: str
    quantity: str


class TokensUndelegatePayload(Struct):
    from_: str = field(name="from")  # the delegatee being undelegated from
    symbol: str
    quantity: str


class TokensIssuePayload(Struct):
    symbol: str
    to: str
    quantity: str


class TokensCreatePayload(Struct):
    symbol: str
    name: str
    precision: int
    maxSupply: str
    url: Optional[str] = None


class TokensEnableStakingPayload(Struct):
    symbol: str
    unstakingCooldown: int
    numberTransactions: int


class TokensEnableDelegationPayload(Struct):
    symbol: str
    undelegationCooldown: int


class TokensUpdatePrecisionPayload(Struct):
    symbol: str
    precision: int


class TokensTransferOwnershipPayload(Struct):
    symbol: str
    to: str


class TokensUpdateUrlPayload(Struct):
    symbol: str
    url: str


class TokensUpdateMetadataPayload(Struct):
    symbol: str
    metadata: Dict[str, Any]


TypedPayload = Union[
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
]

# Opaque documents fall back to the parsed dict
Payload = Union[TypedPayload, Dict[str, Any]]

PAYLOAD_TYPES: Dict[Tuple[str, str], Type[Struct]] = {
    ("tokens", "transfer"): TokensTransferPayload,
    ("tokens", "transferToContract"): TokensTransferToContractPayload,
    ("tokens", "stake"): TokensStakePayload,
    ("tokens", "unstake"): TokensUnstakePayload,
    ("tokens", "cancelUnstake"): TokensCancelUnstakePayload,
    ("tokens", "delegate"): TokensDelegatePayload,
    ("tokens", "undelegate"): TokensUndelegatePayload,
    ("tokens", "issue"): TokensIssuePayload,
    ("tokens", "create"): TokensCreatePayload,
    ("tokens", "enableStaking"): TokensEnableStakingPayload,
    ("tokens", "enableDelegation"): TokensEnableDelegationPayload,
    ("tokens", "updatePrecision"): TokensUpdatePrecisionPayload,
    ("tokens", "transferOwnership"): TokensTransferOwnershipPayload,
    ("tokens", "updateUrl"): TokensUpdateUrlPayload,
    ("tokens", "updateMetadata"): TokensUpdateMetadataPayload,
}
