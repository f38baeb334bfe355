"""Name-keyed structural diff of extracted record collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .models import (
    ComparisonResult,
    KindDiff,
    ModifiedEntry,
    ParsedDocument,
)


def scalar_equal(old: Any, new: Any) -> bool:
    return old == new


def sequence_equal(old: Sequence, new: Sequence) -> bool:
    """Ordered elementwise equality of two member lists."""
    if len(old) != len(new):
        return False
    return all(a == b for a, b in zip(old, new))


@dataclass(frozen=True)
class FieldDescriptor:
    """A compared field: report name, accessor and equality rule."""
    name: str
    get: Callable[[Any], Any]
    equal: Callable[[Any, Any], bool] = scalar_equal

    def differs(self, old: Any, new: Any) -> bool:
        return not self.equal(self.get(old), self.get(new))


MESSAGE_FIELDS = (
    FieldDescriptor("frameName", lambda m: m.frame_name),
    FieldDescriptor("canIdHex", lambda m: m.can_id_hex),
    FieldDescriptor("canId", lambda m: m.can_id),
    FieldDescriptor("pduType", lambda m: m.pdu_type),
    FieldDescriptor("direction", lambda m: m.direction),
    FieldDescriptor("canAddressingMode", lambda m: m.can_addressing_mode),
    FieldDescriptor("addressingFormat", lambda m: m.addressing_format),
    FieldDescriptor("type", lambda m: m.type),
    FieldDescriptor("cycleTime", lambda m: m.cycle_time),
    FieldDescriptor("length", lambda m: m.length),
    FieldDescriptor("description", lambda m: m.description),
)

SIGNAL_FIELDS = (
    FieldDescriptor("pduName", lambda s: s.pdu_name),
    FieldDescriptor("startPosition", lambda s: s.start_position),
    FieldDescriptor("length", lambda s: s.length),
    FieldDescriptor("byteOrder", lambda s: s.byte_order),
    FieldDescriptor("dataType", lambda s: s.data_type),
    FieldDescriptor("initValue", lambda s: s.init_value),
    FieldDescriptor("minValue", lambda s: s.min_value),
    FieldDescriptor("maxValue", lambda s: s.max_value),
    FieldDescriptor("description", lambda s: s.description),
)

SIGNAL_GROUP_FIELDS = (
    FieldDescriptor("signals", lambda g: g.signals, sequence_equal),
    FieldDescriptor("description", lambda g: g.description),
)

MESSAGE_GROUP_FIELDS = (
    FieldDescriptor("messages", lambda g: g.messages, sequence_equal),
    FieldDescriptor("description", lambda g: g.description),
)


def diff_collections(
    base: Sequence[Any],
    new: Sequence[Any],
    compare_fields: Sequence[FieldDescriptor]
) -> KindDiff:
    """
    Classify every named entity of two collections.

    Args:
        base: Entities of the baseline document
        new: Entities of the document being checked
        compare_fields: Fields whose inequality marks an entity modified

    Returns:
        KindDiff with added (new order), deleted and modified (base order)
    """
    base_map = {item.name: item for item in base}
    new_map = {item.name: item for item in new}

    added = tuple(item for item in new if item.name not in base_map)
    deleted = tuple(item for item in base if item.name not in new_map)

    modified = []
    for old_item in base:
        new_item = new_map.get(old_item.name)
        if new_item is None:
            continue
        changed = tuple(f.name for f in compare_fields if f.differs(old_item, new_item))
        if changed:
            modified.append(ModifiedEntry(old=old_item, new=new_item, changed_fields=changed))

    return KindDiff(added=added, deleted=deleted, modified=tuple(modified))


def compare_documents(base: ParsedDocument, new: ParsedDocument) -> ComparisonResult:
    """Diff all four entity kinds of two parsed documents."""
    return ComparisonResult(
        messages=diff_collections(base.messages, new.messages, MESSAGE_FIELDS),
        signals=diff_collections(base.signals, new.signals, SIGNAL_FIELDS),
        signal_groups=diff_collections(base.signal_groups, new.signal_groups, SIGNAL_GROUP_FIELDS),
        message_groups=diff_collections(base.message_groups, new.message_groups, MESSAGE_GROUP_FIELDS),
    )
