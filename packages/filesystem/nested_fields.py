"""
Bracket-notation field names for multipart payloads.

A field such as ``posts[0][tags][1]`` encodes a path into a nested
structure. ``parse_nested_field`` turns one field name plus its value into a
single-key fragment; the uploader deep-merges the fragments of every field
into one tree with ``deep_merge``.

Usage:
    parse_nested_field("a[0][b]", "x")   # {"a": [{"b": "x"}]}
    parse_nested_field("a[b][0]", "x")   # {"a": {"b": ["x"]}}
"""

from dataclasses import dataclass
from typing import Any

from packages.filesystem.exceptions import InvalidPayloadFormatError

OPEN_BRACKET = "["
CLOSE_BRACKET = "]"


@dataclass
class SubField:
    """One ``[...]`` segment of a bracket-notation field name."""

    name: str
    open_bracket_index: int
    close_bracket_index: int

    @property
    def is_index(self) -> bool:
        return self.name.isascii() and self.name.isdigit()


def is_nested_field(field_name: str) -> bool:
    """Return True when the name holds a ``[`` followed later by a ``]``."""
    open_bracket_index = field_name.find(OPEN_BRACKET)
    if open_bracket_index < 0:
        return False
    return field_name.find(CLOSE_BRACKET, open_bracket_index) > -1


def split_nested_field(field_name: str) -> tuple[str, list[SubField]]:
    """
    Split a bracket-notation name into its base name and segments.

    Raises:
        InvalidPayloadFormatError: If the name is malformed.
    """
    if not field_name.endswith(CLOSE_BRACKET):
        raise InvalidPayloadFormatError(field_name)

    base_name = field_name[: field_name.find(OPEN_BRACKET)]
    if not base_name:
        # Names starting with a bracket describe an array-rooted payload
        raise InvalidPayloadFormatError(field_name)
    if CLOSE_BRACKET in base_name:
        raise InvalidPayloadFormatError(field_name)

    sub_fields: list[SubField] = []
    open_bracket_index = -1
    # Text outside brackets after the base name (the "c" of "a[b]c[d]") is skipped
    for index in range(len(base_name), len(field_name)):
        char = field_name[index]
        if char == OPEN_BRACKET:
            if open_bracket_index > -1:
                raise InvalidPayloadFormatError(field_name)
            open_bracket_index = index
        elif char == CLOSE_BRACKET:
            if open_bracket_index < 0:
                raise InvalidPayloadFormatError(field_name)
            name = field_name[open_bracket_index + 1 : index]
            if not name:
                raise InvalidPayloadFormatError(field_name)
            sub_fields.append(SubField(name, open_bracket_index, index))
            open_bracket_index = -1

    return base_name, sub_fields


def parse_nested_field(
    field_name: str,
    field_value: Any,
    max_sequence_index: int | None = None,
) -> dict[str, Any]:
    """
    Decode a field name into a single-key nested fragment.

    Segments are applied innermost first. A numeric segment wraps the value
    in a list at that index (other slots stay ``None``); any other segment
    wraps it in a dict under that key.

    Args:
        field_name: Name as sent by the client, e.g. ``user[addresses][0][city]``
        field_value: String, UploadedFile or list of UploadedFile
        max_sequence_index: Largest list index accepted; unbounded when None

    Returns:
        ``{base_name: nested_value}``, or ``{field_name: field_value}`` when
        the name uses no bracket notation.

    Raises:
        InvalidPayloadFormatError: If the bracket notation is malformed or a
            list index exceeds ``max_sequence_index``.
    """
    if not is_nested_field(field_name):
        return {field_name: field_value}

    base_name, sub_fields = split_nested_field(field_name)

    result: Any = field_value
    for sub_field in reversed(sub_fields):
        if sub_field.is_index:
            index = int(sub_field.name)
            if max_sequence_index is not None and index > max_sequence_index:
                raise InvalidPayloadFormatError(field_name)
            sequence: list[Any] = [None] * (index + 1)
            sequence[index] = result
            result = sequence
        else:
            result = {sub_field.name: result}

    return {base_name: result}


def build_nested_field_name(fragment: dict[str, Any]) -> str:
    """
    Re-derive the bracket-notation name of a single-branch fragment.

    Walks dicts with exactly one key and lists with exactly one populated
    slot; stops at the first value that is neither.
    """
    if len(fragment) != 1:
        raise ValueError("Fragment must have exactly one top-level key")

    (base_name, value), = fragment.items()
    parts = [base_name]
    while True:
        if isinstance(value, dict) and len(value) == 1:
            (key, value), = value.items()
            parts.append(f"[{key}]")
        elif isinstance(value, list):
            populated = [i for i, item in enumerate(value) if item is not None]
            if len(populated) != 1:
                break
            parts.append(f"[{populated[0]}]")
            value = value[populated[0]]
        else:
            break
    return "".join(parts)


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge ``source`` into ``target`` and return ``target``.

    Dicts merge key by key and lists merge index by index. ``None`` in the
    source marks an unset slot and never overwrites; any other source value
    replaces the target value at the exact same position.
    """
    for key, value in source.items():
        if key in target:
            target[key] = _merge_values(target[key], value)
        else:
            target[key] = value
    return target


def _merge_values(target: Any, source: Any) -> Any:
    if source is None:
        return target
    if isinstance(target, dict) and isinstance(source, dict):
        return deep_merge(target, source)
    if isinstance(target, list) and isinstance(source, list):
        if len(target) < len(source):
            target.extend([None] * (len(source) - len(target)))
        for index, item in enumerate(source):
            target[index] = _merge_values(target[index], item)
        return target
    return source
