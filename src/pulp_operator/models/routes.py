"""Route descriptors contributed by the operator and by pulp plugins."""

import json
import logging
from typing import List

from pydantic import BaseModel, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)


class RouteDescriptor(BaseModel):
    """One unit of external routing intent."""

    name: str = ""
    path: str = ""
    service_name: str = Field(default="", alias="serviceName")
    target_port: str = Field(default="", alias="targetPort")
    rewrite: str = ""

    @field_validator("name", "path", "service_name", "target_port", "rewrite", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return "" if value is None else value

    class Config:
        populate_by_name = True


_descriptor_list = TypeAdapter(List[RouteDescriptor])


def parse_route_descriptors(output):
    """Parse the JSON printed by the route introspection command.

    Anything that is not a JSON array of descriptor objects yields no routes.
    """
    try:
        return _descriptor_list.validate_python(json.loads(output))
    except ValueError as e:
        logger.debug(f"Ignoring unparseable route output: {e}")
        return []
