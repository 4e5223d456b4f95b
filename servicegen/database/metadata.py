"""Entity metadata hand-off between schema introspection and repository generation.

The introspector's result is written once to a transient JSON file inside the
generated source tree, read once by the repository generator, and deleted by
the orchestrator straight after.  The file is an array of records::

    [
      {
        "tableName": "tb_order_item",
        "pojoClassName": "OrderItem",
        "pojoPackageName": "com.example.demo.infrastructure.repositories.tables.pojos",
        "primaryKeyType": "Long"
      }
    ]
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from servicegen.errors import CleanupError, MetadataError
from servicegen.utils import load_json_list, print_warning, save_json


class EntityMetadata(BaseModel):
    """What the repository generator needs to know about one table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    table_name: str = Field(..., alias="tableName")
    entity_class_name: str = Field(..., alias="pojoClassName")
    entity_package_name: str = Field(..., alias="pojoPackageName")
    primary_key_type: str = Field(..., alias="primaryKeyType")


EntityMetadataSet = list[EntityMetadata]

_SET_ADAPTER: TypeAdapter[list[EntityMetadata]] = TypeAdapter(list[EntityMetadata])


async def flush(entries: EntityMetadataSet, path: Path) -> Path:
    """Write *entries* to *path* as a JSON array (creating parent dirs)."""
    records = _SET_ADAPTER.dump_python(list(entries), by_alias=True, mode="json")
    await save_json(records, path)
    return path


def load(path: Path) -> EntityMetadataSet:
    """Read an entity metadata file written by :func:`flush`.

    Raises:
        MetadataError: If the file does not exist (schema introspection has
            not run for this working directory) or does not hold a valid
            metadata array.
    """
    if not path.is_file():
        raise MetadataError(
            f"Entity metadata not found at {path}; schema introspection must run first"
        )
    try:
        records = load_json_list(path)
        return _SET_ADAPTER.validate_python(records)
    except (json.JSONDecodeError, ValueError, ValidationError) as exc:
        raise MetadataError(f"Malformed entity metadata in {path}: {exc}") from exc


def discard(path: Path) -> bool:
    """Delete the metadata file, best effort.

    Returns:
        ``True`` if a file was removed, ``False`` if there was nothing to
        remove or removal failed.  Failures are printed, never raised.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        print_warning(f"  {CleanupError(f'Could not remove {path}: {exc}')}")
        return False
    return True
