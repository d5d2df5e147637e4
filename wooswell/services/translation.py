"""Lookup tables between source and target identifiers."""

from typing import Any, Dict, Iterable, Mapping


def build_lookup(records: Iterable[Mapping[str, Any]], key: str, value: str) -> Dict[Any, Any]:
    """
    Reduce records into a ``{record[key]: record[value]}`` dict.

    Records without ``key`` are left out; on duplicate keys the last record
    wins.
    """
    lookup = {}
    for record in records:
        if record.get(key) is None:
            continue
        lookup[record[key]] = record.get(value)
    return lookup


def build_translation_map(
    source: Iterable[Mapping[str, Any]],
    target: Iterable[Mapping[str, Any]],
    join_field: str,
    source_key: str = "id",
    target_value: str = "id"
) -> Dict[Any, Any]:
    """
    Map every source identifier to the matching target identifier.

    Source and target records correspond when their ``join_field`` values
    are equal. Source records without a counterpart are absent from the
    result; callers treat a missing key as an unresolved reference.

    Args:
        source: Source records
        target: Target records
        join_field: Field compared across platforms (``slug``, ``email``)
        source_key: Source field used as the map key
        target_value: Target field used as the map value

    Returns:
        ``{source[source_key]: target[target_value]}``
    """
    target_by_join = build_lookup(target, join_field, target_value)

    translation = {}
    for record in source:
        join_value = record.get(join_field)
        if join_value is None or join_value not in target_by_join:
            continue
        translation[record.get(source_key)] = target_by_join[join_value]
    return translation
