from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises snake_case fields as camelCase, the shape the frontend reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
