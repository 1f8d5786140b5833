from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from waterlevel.exceptions.custom import BatchException, StorageException

Entity = Dict[str, Any]

MAX_BATCH_OPERATIONS = 100
BATCH_OPERATIONS = ("insert", "insert_or_replace", "insert_or_merge", "replace", "merge", "delete")


@dataclass(frozen=True)
class BatchOperation:
    # kind: one of BATCH_OPERATIONS
    kind: str
    entity: Entity
    etag: Optional[str] = None


def entity_key(entity: Entity) -> Tuple[str, str]:
    """(PartitionKey, RowKey) of an entity."""
    try:
        return str(entity["PartitionKey"]), str(entity["RowKey"])
    except KeyError as e:
        raise StorageException(f"Entity is missing {e.args[0]}", status_code=400) from e


class TableService(ABC):
    """
    Synchronous table store interface.
    Entities are plain dicts keyed by PartitionKey and RowKey; stored entities are returned with
    their Timestamp and etag. etag arguments of "*" or None match any stored version.
    """

    @abstractmethod
    def create_table(self, table: str) -> Dict[str, Any]:
        """Creates a table. Raises TableAlreadyExistsException if present."""

    @abstractmethod
    def delete_table(self, table: str) -> None:
        """Deletes a table. Raises TableNotFoundException if missing."""

    @abstractmethod
    def list_tables(self, prefix: Optional[str] = None) -> List[str]:
        """Table names, optionally restricted to those starting with prefix."""

    @abstractmethod
    def insert_entity(self, table: str, entity: Entity) -> Entity:
        """Inserts a new entity. Raises EntityAlreadyExistsException if the key is taken."""

    @abstractmethod
    def insert_or_replace_entity(self, table: str, entity: Entity) -> Entity:
        """Inserts the entity, replacing any entity with the same key."""

    @abstractmethod
    def insert_or_merge_entity(self, table: str, entity: Entity) -> Entity:
        """Inserts the entity, merging its properties into any entity with the same key."""

    @abstractmethod
    def replace_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        """Replaces an existing entity."""

    @abstractmethod
    def merge_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        """Merges properties into an existing entity."""

    @abstractmethod
    def retrieve_entity(self, table: str, partition_key: str, row_key: str) -> Entity:
        """Returns a single entity. Raises EntityNotFoundException if missing."""

    @abstractmethod
    def query_entities(
        self, table: str, partition_key: Optional[str] = None, top: Optional[int] = None
    ) -> List[Entity]:
        """Entities ordered by (PartitionKey, RowKey), optionally restricted to one partition."""

    @abstractmethod
    def delete_entity(self, table: str, partition_key: str, row_key: str, etag: Optional[str] = None) -> None:
        """Deletes an entity. Raises EntityNotFoundException if missing."""

    def does_table_exist(self, table: str) -> bool:
        return table in self.list_tables(prefix=table)

    def create_table_if_not_exists(self, table: str) -> bool:
        """Returns True if the table was created."""
        if self.does_table_exist(table):
            return False
        self.create_table(table)
        return True

    def delete_table_if_exists(self, table: str) -> bool:
        """Returns True if the table was deleted."""
        if not self.does_table_exist(table):
            return False
        self.delete_table(table)
        return True

    @staticmethod
    def validate_batch(operations: List[BatchOperation]) -> None:
        if not operations:
            raise BatchException("Batch is empty", status_code=400)
        if len(operations) > MAX_BATCH_OPERATIONS:
            raise BatchException(
                f"Batch has {len(operations)} operations, at most {MAX_BATCH_OPERATIONS} are allowed",
                status_code=400,
            )
        partitions = {entity_key(op.entity)[0] for op in operations}
        if len(partitions) > 1:
            raise BatchException("All the entities of a batch must share the same PartitionKey", status_code=400)
        unknown = [op.kind for op in operations if op.kind not in BATCH_OPERATIONS]
        if unknown:
            raise BatchException(f"Unknown batch operations: {unknown}", status_code=400)

    def _apply(self, table: str, op: BatchOperation) -> Optional[Entity]:
        if op.kind == "insert":
            return self.insert_entity(table, op.entity)
        if op.kind == "insert_or_replace":
            return self.insert_or_replace_entity(table, op.entity)
        if op.kind == "insert_or_merge":
            return self.insert_or_merge_entity(table, op.entity)
        if op.kind == "replace":
            return self.replace_entity(table, op.entity, etag=op.etag)
        if op.kind == "merge":
            return self.merge_entity(table, op.entity, etag=op.etag)
        partition_key, row_key = entity_key(op.entity)
        self.delete_entity(table, partition_key, row_key, etag=op.etag)
        return None

    def execute_batch(self, table: str, operations: List[BatchOperation]) -> List[Optional[Entity]]:
        """Applies the operations in order, returning one result per operation (None for deletes)."""
        self.validate_batch(operations)
        results: List[Optional[Entity]] = []
        for index, op in enumerate(operations):
            try:
                results.append(self._apply(table, op))
            except StorageException as e:
                raise BatchException(
                    f"Batch operation {index} ({op.kind}) failed: {e.message}", status_code=e.status_code
                ) from e
        return results

    def close(self) -> None:
        """Releases the resources held by the service."""
