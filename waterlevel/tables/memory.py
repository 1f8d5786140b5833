from __future__ import annotations

import copy
import threading
from typing import Dict, List, Optional, Tuple

from waterlevel.exceptions.custom import (
    EntityAlreadyExistsException,
    EntityNotFoundException,
    PreconditionFailedException,
    TableAlreadyExistsException,
    TableNotFoundException,
)
from waterlevel.logger import logger
from waterlevel.tables.base import BatchOperation, Entity, TableService, entity_key
from waterlevel.utils import utc_now

SYSTEM_PROPERTIES = ("PartitionKey", "RowKey", "Timestamp", "etag")


class MemoryTableService(TableService):
    """Dict backed table store. Batches are atomic: a failing operation rolls the table back."""

    def __init__(self):
        self._tables: Dict[str, Dict[Tuple[str, str], Entity]] = {}
        self._lock = threading.RLock()
        self._version = 0

    def _table(self, table: str) -> Dict[Tuple[str, str], Entity]:
        try:
            return self._tables[table]
        except KeyError:
            raise TableNotFoundException(f"Table '{table}' does not exist", status_code=404) from None

    def _stamp(self, entity: Entity) -> Entity:
        self._version += 1
        now = utc_now()
        stored = {k: v for k, v in entity.items() if k not in ("Timestamp", "etag")}
        stored["Timestamp"] = now.isoformat()
        stored["etag"] = f'W/"{self._version}"'
        return stored

    @staticmethod
    def _check_etag(stored: Entity, etag: Optional[str]) -> None:
        if etag not in (None, "*") and stored["etag"] != etag:
            raise PreconditionFailedException(
                f"etag {etag} does not match {stored['etag']}", status_code=412
            )

    def create_table(self, table: str):
        with self._lock:
            if table in self._tables:
                raise TableAlreadyExistsException(f"Table '{table}' already exists", status_code=409)
            self._tables[table] = {}
        logger.debug(f"Created table '{table}'")
        return {"TableName": table}

    def delete_table(self, table: str) -> None:
        with self._lock:
            self._table(table)
            del self._tables[table]
        logger.debug(f"Deleted table '{table}'")

    def list_tables(self, prefix: Optional[str] = None) -> List[str]:
        with self._lock:
            names = sorted(self._tables)
        if prefix:
            names = [name for name in names if name.startswith(prefix)]
        return names

    def insert_entity(self, table: str, entity: Entity) -> Entity:
        key = entity_key(entity)
        with self._lock:
            rows = self._table(table)
            if key in rows:
                raise EntityAlreadyExistsException(f"Entity {key} already exists", status_code=409)
            rows[key] = self._stamp(entity)
            return copy.deepcopy(rows[key])

    def insert_or_replace_entity(self, table: str, entity: Entity) -> Entity:
        key = entity_key(entity)
        with self._lock:
            rows = self._table(table)
            rows[key] = self._stamp(entity)
            return copy.deepcopy(rows[key])

    def insert_or_merge_entity(self, table: str, entity: Entity) -> Entity:
        key = entity_key(entity)
        with self._lock:
            rows = self._table(table)
            merged = {**rows.get(key, {}), **entity}
            rows[key] = self._stamp(merged)
            return copy.deepcopy(rows[key])

    def replace_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        key = entity_key(entity)
        with self._lock:
            rows = self._table(table)
            if key not in rows:
                raise EntityNotFoundException(f"Entity {key} not found", status_code=404)
            self._check_etag(rows[key], etag)
            rows[key] = self._stamp(entity)
            return copy.deepcopy(rows[key])

    def merge_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        key = entity_key(entity)
        with self._lock:
            rows = self._table(table)
            if key not in rows:
                raise EntityNotFoundException(f"Entity {key} not found", status_code=404)
            self._check_etag(rows[key], etag)
            rows[key] = self._stamp({**rows[key], **entity})
            return copy.deepcopy(rows[key])

    def retrieve_entity(self, table: str, partition_key: str, row_key: str) -> Entity:
        with self._lock:
            rows = self._table(table)
            try:
                return copy.deepcopy(rows[(partition_key, row_key)])
            except KeyError:
                raise EntityNotFoundException(
                    f"Entity ({partition_key!r}, {row_key!r}) not found", status_code=404
                ) from None

    def query_entities(
        self, table: str, partition_key: Optional[str] = None, top: Optional[int] = None
    ) -> List[Entity]:
        with self._lock:
            rows = self._table(table)
            keys = sorted(k for k in rows if partition_key is None or k[0] == partition_key)
            if top is not None:
                keys = keys[:top]
            return [copy.deepcopy(rows[k]) for k in keys]

    def delete_entity(self, table: str, partition_key: str, row_key: str, etag: Optional[str] = None) -> None:
        key = (partition_key, row_key)
        with self._lock:
            rows = self._table(table)
            if key not in rows:
                raise EntityNotFoundException(f"Entity {key} not found", status_code=404)
            self._check_etag(rows[key], etag)
            del rows[key]

    def execute_batch(self, table: str, operations: List[BatchOperation]) -> List[Optional[Entity]]:
        with self._lock:
            snapshot = copy.deepcopy(self._table(table))
            try:
                return super().execute_batch(table, operations)
            except Exception:
                self._tables[table] = snapshot
                raise
