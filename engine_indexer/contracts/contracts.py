# engine_indexer/contracts/contracts.py

import asyncio
from typing import Any, Dict, List, Optional

from ..clients.gateway import RemoteCallGateway, Callback
from ..types import Contract, StreamRequest


class ContractsApi:
    """Query builders for the engine's ``contracts`` endpoint."""

    endpoint = 'contracts'

    def __init__(self, gateway: RemoteCallGateway):
        self.gateway = gateway

    def call(self, request: StreamRequest, result_type: Any = None,
             callback: Optional[Callback] = None) -> "asyncio.Task[Any]":
        return self.gateway.send(self.endpoint, request, callback, result_type)

    def get_contract(self, name: str, callback: Optional[Callback] = None) -> "asyncio.Task[Optional[Contract]]":
        """Get the information of a contract (owner, source code, tables)."""
        request = StreamRequest(method='getContract', params={'name': name})
        return self.call(request, Contract, callback)

    def find_one(self, contract: str, table: str, query: Dict[str, Any],
                 callback: Optional[Callback] = None,
                 result_type: Any = None) -> "asyncio.Task[Any]":
        """
        Retrieve a single record from a contract table.

        Args:
            contract: Contract name
            table: Table name
            query: Query to perform on the table
            callback: Called with (error, record) when passed
            result_type: Struct type to decode the record into (optional)
        """
        request = StreamRequest(
            method='findOne',
            params={
                'contract': contract,
                'table': table,
                'query': query,
            },
        )
        return self.call(request, result_type, callback)

    def find(self, contract: str, table: str, query: Dict[str, Any],
             limit: int = 1000,
             offset: int = 0,
             indexes: Optional[List[Dict[str, Any]]] = None,
             callback: Optional[Callback] = None,
             result_type: Any = None) -> "asyncio.Task[Any]":
        """
        Retrieve records from a contract table.

        Args:
            contract: Contract name
            table: Table name
            query: Query to perform on the table
            limit: Maximum number of records
            offset: Number of records to skip
            indexes: Sort indexes, e.g. [{"index": "_id", "descending": False}]
            callback: Called with (error, records) when passed
            result_type: Type to decode the record list into (optional)
        """
        request = StreamRequest(
            method='find',
            params={
                'contract': contract,
                'table': table,
                'query': query,
                'limit': limit,
                'offset': offset,
                'indexes': indexes or [],
            },
        )
        return self.call(request, result_type, callback)
