# clinic/schemas/common/common.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    success: bool = False
    data: Optional[Any] = None
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
    database: Dict[str, Any]
