"""
Catalog read queries
Table listing, capped row reads and column metadata. Failures are logged and
degrade to empty results.
"""
import logging
import re
from typing import Any, Dict, List

from sqlalchemy import MetaData, Table, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 1000

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z0-9_]+$")

def is_safe_identifier(name: str) -> bool:
    return bool(name) and bool(_SAFE_IDENTIFIER.match(name))

def get_tables(engine: Engine, source: str) -> List[str]:
    try:
        return list(inspect(engine).get_table_names())
    except SQLAlchemyError as e:
        logger.error("Error getting tables from %s: %s", source, e)
        return []

def table_exists(engine: Engine, table: str) -> bool:
    if not is_safe_identifier(table):
        return False
    try:
        return inspect(engine).has_table(table)
    except SQLAlchemyError as e:
        logger.error("Error checking table %s: %s", table, e)
        return False

def get_table_data(engine: Engine, source: str, table: str, limit: int = DEFAULT_ROW_LIMIT) -> List[Dict[str, Any]]:
    if not is_safe_identifier(table):
        logger.error("Refusing to read %s.%s: invalid table name", source, table)
        return []
    try:
        reflected = Table(table, MetaData(), autoload_with=engine)
        with engine.connect() as connection:
            result = connection.execute(select(reflected).limit(limit))
            return [dict(row._mapping) for row in result]
    except SQLAlchemyError as e:
        logger.error("Error getting data from %s.%s: %s", source, table, e)
        return []

def get_table_structure(engine: Engine, source: str, table: str) -> List[Dict[str, Any]]:
    if not is_safe_identifier(table):
        return []
    try:
        inspector = inspect(engine)
        primary_keys = set(inspector.get_pk_constraint(table).get("constrained_columns") or [])
        return [
            {
                "name": column["name"],
                "type": str(column["type"]),
                "nullable": bool(column.get("nullable", True)),
                "isPrimaryKey": column["name"] in primary_keys,
            }
            for column in inspector.get_columns(table)
        ]
    except SQLAlchemyError as e:
        logger.error("Error getting table structure from %s.%s: %s", source, table, e)
        return []
