from typing import Any, Iterable, Mapping

CUSTOM_FIELDS_KEY = "custom_fields"

def merge_custom_values(
    rows: Iterable[Mapping[str, Any]],
    definitions: Iterable[Any],
    values_by_entity: Mapping[str, Mapping[str, Any]],
    id_key: str = "id",
) -> list[dict[str, Any]]:
    """Attach stored custom values to row dicts, keyed by each definition's field_key.

    Every row gets a ``custom_fields`` dict. Values are also copied to the top
    level of the row unless a built-in column already uses that key, so saved
    view filters can address custom fields like any other column.
    """
    key_by_def = {str(d.id): d.field_key for d in definitions}
    merged: list[dict[str, Any]] = []
    for row in rows:
        out = dict(row)
        custom: dict[str, Any] = {}
        for def_id, value in values_by_entity.get(str(row[id_key]), {}).items():
            key = key_by_def.get(str(def_id))
            if key is None:
                continue
            custom[key] = value
            if key not in out:
                out[key] = value
        out[CUSTOM_FIELDS_KEY] = custom
        merged.append(out)
    return merged
