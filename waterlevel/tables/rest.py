"""Rest Table Service
Client of an OData table endpoint (Azure Table storage / Azurite REST API)
"""

# # Native # #
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, quote

# # Installed # #
import requests

# # Project # #
from waterlevel.config.models import RestTableConfig
from waterlevel.exceptions.custom import (
    EntityAlreadyExistsException,
    EntityNotFoundException,
    PreconditionFailedException,
    StorageException,
    TableAlreadyExistsException,
    TableNotFoundException,
)
from waterlevel.logger import logger
from waterlevel.tables.base import Entity, TableService, entity_key
from waterlevel.utils import odata_quote

API_VERSION = "2019-02-02"
ACCEPT = "application/json;odata=minimalmetadata"

_NOT_FOUND = {"TableNotFound": TableNotFoundException}
_CONFLICT = {"TableAlreadyExists": TableAlreadyExistsException, "EntityAlreadyExists": EntityAlreadyExistsException}


class RestTableService(TableService):
    """
    Table store client speaking the OData table REST protocol with requests.
    The SAS token, if any, is appended verbatim to every request.
    """

    def __init__(self, cfg: RestTableConfig, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.base_url = cfg.endpoint.rstrip("/")
        self._auth_params = dict(parse_qsl(cfg.sas_token.lstrip("?"))) if cfg.sas_token else {}
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": ACCEPT,
                "x-ms-version": API_VERSION,
                "DataServiceVersion": "3.0;NetFx",
                "MaxDataServiceVersion": "3.0;NetFx",
            }
        )

    # # Transport # #

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}/{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self._session.request(
                method,
                url,
                params={**self._auth_params, **(params or {})},
                json=json,
                headers=headers,
                timeout=self.cfg.timeout_s,
            )
        except requests.exceptions.ConnectionError as e:
            raise StorageException(f"Could not connect to the table service at {self.base_url}") from e
        except requests.exceptions.RequestException as e:
            raise StorageException(f"Table request failed: {str(e)}") from e

        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    @staticmethod
    def _error_code(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return ""
        error = body.get("odata.error") or body.get("error") or {}
        return str(error.get("code", ""))

    def _raise_for_status(self, response: requests.Response) -> None:
        code = self._error_code(response)
        status = response.status_code
        message = f"HTTP {status} {code}: {response.text[:200]}"
        if status == 404:
            raise _NOT_FOUND.get(code, EntityNotFoundException)(message, status_code=status)
        if status == 409:
            raise _CONFLICT.get(code, StorageException)(message, status_code=status)
        if status == 412:
            raise PreconditionFailedException(message, status_code=status)
        raise StorageException(message, status_code=status)

    @staticmethod
    def _entity_path(table: str, partition_key: str, row_key: str) -> str:
        keys = f"PartitionKey={odata_quote(partition_key)},RowKey={odata_quote(row_key)}"
        return f"{table}({quote(keys, safe='=,')})"

    @staticmethod
    def _from_wire(data: Dict[str, Any]) -> Entity:
        entity = {k: v for k, v in data.items() if not k.startswith("odata.") and "@odata." not in k}
        if "odata.etag" in data:
            entity["etag"] = data["odata.etag"]
        return entity

    @staticmethod
    def _to_wire(entity: Entity) -> Dict[str, Any]:
        return {k: v for k, v in entity.items() if k not in ("etag", "Timestamp")}

    # # Tables # #

    def create_table(self, table: str):
        response = self._request("POST", "Tables", json={"TableName": table}, headers={"Prefer": "return-content"})
        logger.info(f"Created table '{table}'")
        return self._from_wire(response.json()) if response.content else {"TableName": table}

    def delete_table(self, table: str) -> None:
        self._request("DELETE", f"Tables({quote(odata_quote(table))})")
        logger.info(f"Deleted table '{table}'")

    def list_tables(self, prefix: Optional[str] = None) -> List[str]:
        names: List[str] = []
        params: Dict[str, Any] = {}
        while True:
            response = self._request("GET", "Tables", params=params)
            names.extend(item["TableName"] for item in response.json().get("value", []))
            next_name = response.headers.get("x-ms-continuation-NextTableName")
            if not next_name:
                break
            params = {"NextTableName": next_name}
        if prefix:
            names = [name for name in names if name.startswith(prefix)]
        return names

    # # Entities # #

    def _written(self, entity: Entity, response: requests.Response) -> Entity:
        """Entity as stored, with the system properties reported by the response headers."""
        result = self._to_wire(entity)
        if response.headers.get("Date"):
            result["Timestamp"] = parsedate_to_datetime(response.headers["Date"]).isoformat()
        if response.headers.get("ETag"):
            result["etag"] = response.headers["ETag"]
        return result

    def _upsert(self, method: str, table: str, entity: Entity, if_match: Optional[str]) -> Entity:
        partition_key, row_key = entity_key(entity)
        headers = {"If-Match": if_match} if if_match else None
        response = self._request(
            method, self._entity_path(table, partition_key, row_key), json=self._to_wire(entity), headers=headers
        )
        return self._written(entity, response)

    def insert_entity(self, table: str, entity: Entity) -> Entity:
        entity_key(entity)
        response = self._request("POST", table, json=self._to_wire(entity), headers={"Prefer": "return-content"})
        if response.content:
            return self._from_wire(response.json())
        return self._written(entity, response)

    def insert_or_replace_entity(self, table: str, entity: Entity) -> Entity:
        return self._upsert("PUT", table, entity, if_match=None)

    def insert_or_merge_entity(self, table: str, entity: Entity) -> Entity:
        return self._upsert("MERGE", table, entity, if_match=None)

    def replace_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        return self._upsert("PUT", table, entity, if_match=etag or "*")

    def merge_entity(self, table: str, entity: Entity, etag: Optional[str] = None) -> Entity:
        return self._upsert("MERGE", table, entity, if_match=etag or "*")

    def retrieve_entity(self, table: str, partition_key: str, row_key: str) -> Entity:
        response = self._request("GET", self._entity_path(table, partition_key, row_key))
        return self._from_wire(response.json())

    def query_entities(
        self, table: str, partition_key: Optional[str] = None, top: Optional[int] = None
    ) -> List[Entity]:
        entities: List[Entity] = []
        params: Dict[str, Any] = {}
        if partition_key is not None:
            params["$filter"] = f"PartitionKey eq {odata_quote(partition_key)}"
        while True:
            if top is not None:
                params["$top"] = top - len(entities)
            response = self._request("GET", f"{table}()", params=params)
            entities.extend(self._from_wire(item) for item in response.json().get("value", []))
            next_pk = response.headers.get("x-ms-continuation-NextPartitionKey")
            if not next_pk or (top is not None and len(entities) >= top):
                break
            params["NextPartitionKey"] = next_pk
            next_rk = response.headers.get("x-ms-continuation-NextRowKey")
            if next_rk:
                params["NextRowKey"] = next_rk
            else:
                params.pop("NextRowKey", None)
        return entities

    def delete_entity(self, table: str, partition_key: str, row_key: str, etag: Optional[str] = None) -> None:
        self._request(
            "DELETE", self._entity_path(table, partition_key, row_key), headers={"If-Match": etag or "*"}
        )

    def close(self) -> None:
        self._session.close()
