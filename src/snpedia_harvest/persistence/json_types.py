# ABOUTME: TypeAdapter-backed JSON column type for the persistence layer
# ABOUTME: Stores Pydantic models in their camelCase JSON form and validates them back on load

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.engine import Dialect


class PydanticJson(TypeDecorator[Any]):
    """
    A SQLAlchemy TypeDecorator that round-trips Pydantic types through a JSON column.

    Values are dumped in JSON mode with aliases, so stored records keep the same
    camelCase shape as the record's public JSON, and loaded with full validation.
    """

    impl = JSON()
    cache_ok = True

    def __init__(self, pydantic_type: type) -> None:
        super().__init__()
        self.pydantic_type = pydantic_type
        self.type_adapter = TypeAdapter(pydantic_type)

    def coerce_compared_value(self, op: Any, value: Any) -> Any:
        return self.impl.coerce_compared_value(op, value)  # type: ignore[misc]

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return self.type_adapter.dump_python(value, mode="json", by_alias=True)

    def process_result_value(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return self.type_adapter.validate_python(value)
