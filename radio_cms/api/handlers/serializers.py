"""JSON representations of content items."""

from typing import Any, Dict

from pydantic.alias_generators import to_camel


def serialize_item(item: Any, include_lifecycle_fields: bool = True) -> Dict[str, Any]:
    """Content item as a camelCase JSON object."""
    return {
        to_camel(key): value
        for key, value in item.to_dict(
            include_lifecycle_fields=include_lifecycle_fields
        ).items()
    }
