# engine_indexer/contracts/tokens.py

import asyncio
from typing import Any, Dict, List, Optional

from .contracts import ContractsApi
from ..types import Contract, Token, TokenBalance


class TokensContractsApi:
    contract = 'tokens'

    def __init__(self, contracts: ContractsApi):
        self.contracts = contracts

    def get_contract(self) -> "asyncio.Task[Optional[Contract]]":
        return self.contracts.get_contract(self.contract)

    def get_account_balance(self, account: str, symbol: str) -> "asyncio.Task[Optional[TokenBalance]]":
        return self.contracts.find_one(self.contract, 'balances',
                                       {'account': account, 'symbol': symbol},
                                       result_type=TokenBalance)

    def get_account_balances(self, account: str, symbols: Optional[List[str]] = None,
                             limit: int = 1000, offset: int = 0) -> "asyncio.Task[List[TokenBalance]]":
        query: Dict[str, Any] = {'account': account}
        if symbols:
            query['symbol'] = {'$in': list(symbols)}
        return self.contracts.find(self.contract, 'balances', query,
                                   limit=limit, offset=offset,
                                   result_type=List[TokenBalance])

    def get_balances(self, query: Optional[Dict[str, Any]] = None,
                     limit: int = 1000, offset: int = 0) -> "asyncio.Task[List[TokenBalance]]":
        return self.contracts.find(self.contract, 'balances', query or {},
                                   limit=limit, offset=offset,
                                   result_type=List[TokenBalance])

    def get_tokens(self, limit: int = 1000, offset: int = 0) -> "asyncio.Task[List[Token]]":
        return self.contracts.find(self.contract, 'tokens', {},
                                   limit=limit, offset=offset,
                                   result_type=List[Token])

    def get_token(self, symbol: str) -> "asyncio.Task[Optional[Token]]":
        return self.contracts.find_one(self.contract, 'tokens', {'symbol': symbol},
                                       result_type=Token)
