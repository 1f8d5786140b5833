from waterlevel.config.models import TableConfig
from waterlevel.exceptions.custom import ConfigurationException
from waterlevel.tables.aio import AsyncTableService, ResultResponse, logging_filter
from waterlevel.tables.base import BatchOperation, TableService
from waterlevel.tables.memory import MemoryTableService
from waterlevel.tables.rest import RestTableService


def table_service_factory(cfg: TableConfig) -> TableService:
    if cfg.kind == "rest" and cfg.rest:
        return RestTableService(cfg.rest)
    if cfg.kind == "memory":
        return MemoryTableService()
    raise ConfigurationException(f"Unsupported table kind '{cfg.kind}'")
