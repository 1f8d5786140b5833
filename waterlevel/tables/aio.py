"""Async Table Service
asyncio facade over a blocking TableService
"""
from __future__ import annotations

import asyncio
import functools
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, TypeVar

from waterlevel.logger import logger
from waterlevel.tables.base import BatchOperation, Entity, TableService
from waterlevel.utils import get_time

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResponse:
    """What was called and how long it took"""
    operation: str
    table: Optional[str]
    elapsed_s: float


@dataclass(frozen=True)
class ResultResponse(Generic[T]):
    result: T
    response: OperationResponse


@dataclass
class OperationContext:
    operation: str
    table: Optional[str]
    args: tuple = field(default_factory=tuple)


Filter = Callable[[OperationContext, Callable[[], Any]], Any]
"""A filter receives the operation context and a `next` callable; it must call `next()` and return its result."""


def logging_filter(context: OperationContext, next_call: Callable[[], Any]) -> Any:
    """Filter logging every table operation and its failures."""
    logger.bind(table=context.table).debug(f"Table operation {context.operation}")
    try:
        return next_call()
    except Exception:
        logger.bind(table=context.table).warning(f"Table operation {context.operation} failed")
        raise


class AsyncTableService:
    """
    Exposes every TableService operation as a coroutine resolving to a ResultResponse.

    Blocking calls run in `executor` (the loop's default executor when None). Exceptions raised
    by the wrapped service propagate unchanged to the awaiting caller.
    Pass service=None to leave the wrapper uninitialised; set_table_service() must then be called
    before any operation.
    """

    def __init__(self, service: Optional[TableService], executor: Optional[Executor] = None):
        self._svc = service
        self._executor = executor
        self._filters: List[Filter] = []

    @property
    def service(self) -> Optional[TableService]:
        return self._svc

    def set_table_service(self, service: TableService) -> None:
        self._svc = service

    def with_filter(self, new_filter: Filter) -> "AsyncTableService":
        """Registers a filter run around every operation. Filters registered later run outermost."""
        self._filters.append(new_filter)
        return self

    def _chain(self, context: OperationContext, call: Callable[[], T]) -> Callable[[], T]:
        chained = call
        for f in self._filters:
            chained = functools.partial(f, context, chained)
        return chained

    async def _run(self, operation: str, table: Optional[str], *args: Any) -> ResultResponse:
        if self._svc is None:
            raise RuntimeError("AsyncTableService has no TableService, call set_table_service() first")

        fn = getattr(self._svc, operation)
        context = OperationContext(operation=operation, table=table, args=args)
        call = self._chain(context, functools.partial(fn, *args))

        loop = asyncio.get_running_loop()
        start = get_time(seconds_precision=False)
        result = await loop.run_in_executor(self._executor, call)
        return ResultResponse(
            result=result,
            response=OperationResponse(
                operation=operation,
                table=table,
                elapsed_s=get_time(seconds_precision=False) - start,
            ),
        )

    # # Tables # #

    async def list_tables(self, prefix: Optional[str] = None) -> ResultResponse[List[str]]:
        return await self._run("list_tables", None, prefix)

    async def does_table_exist(self, table: str) -> ResultResponse[bool]:
        return await self._run("does_table_exist", table, table)

    async def create_table(self, table: str) -> ResultResponse[dict]:
        """Creates a new table. Fails with TableAlreadyExistsException if present."""
        return await self._run("create_table", table, table)

    async def create_table_if_not_exists(self, table: str) -> ResultResponse[bool]:
        """Creates a new table if it does not exist. Result is True when it was created."""
        return await self._run("create_table_if_not_exists", table, table)

    async def delete_table(self, table: str) -> ResultResponse[None]:
        return await self._run("delete_table", table, table)

    async def delete_table_if_exists(self, table: str) -> ResultResponse[bool]:
        """Deletes a table if it exists. Result is True when it was deleted."""
        return await self._run("delete_table_if_exists", table, table)

    # # Entities # #

    async def query_entities(
        self, table: str, partition_key: Optional[str] = None, top: Optional[int] = None
    ) -> ResultResponse[List[Entity]]:
        return await self._run("query_entities", table, table, partition_key, top)

    async def retrieve_entity(self, table: str, partition_key: str, row_key: str) -> ResultResponse[Entity]:
        return await self._run("retrieve_entity", table, table, partition_key, row_key)

    async def insert_entity(self, table: str, entity: Entity) -> ResultResponse[Entity]:
        return await self._run("insert_entity", table, table, entity)

    async def insert_or_replace_entity(self, table: str, entity: Entity) -> ResultResponse[Entity]:
        return await self._run("insert_or_replace_entity", table, table, entity)

    async def insert_or_merge_entity(self, table: str, entity: Entity) -> ResultResponse[Entity]:
        return await self._run("insert_or_merge_entity", table, table, entity)

    async def replace_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> ResultResponse[Entity]:
        """Replaces an existing entity. To replace conditionally, pass the etag it was read with."""
        return await self._run("replace_entity", table, table, entity, etag)

    async def merge_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> ResultResponse[Entity]:
        """Merges new property values into an existing entity, conditionally on etag when given."""
        return await self._run("merge_entity", table, table, entity, etag)

    async def delete_entity(
        self, table: str, partition_key: str, row_key: str, etag: Optional[str] = None
    ) -> ResultResponse[None]:
        return await self._run("delete_entity", table, table, partition_key, row_key, etag)

    async def execute_batch(
        self, table: str, operations: List[BatchOperation]
    ) -> ResultResponse[List[Optional[Entity]]]:
        """Executes the operations of a batch, one result per operation."""
        return await self._run("execute_batch", table, table, operations)
