"""Data models for the arxmldiff engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from .exceptions import ConfigError


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class ByteOrder(Enum):
    BIG_ENDIAN = "BigEndian"
    LITTLE_ENDIAN = "LittleEndian"


class MessageType(Enum):
    PERIODIC = "Periodic"
    SPONTANEOUS = "Spontaneous"


class Direction(Enum):
    TX = "Tx"
    RX = "Rx"


class PduType(Enum):
    I_SIGNAL_I_PDU = "I-SIGNAL-I-PDU"
    DCM_I_PDU = "DCM-I-PDU"
    NM_PDU = "NM-PDU"
    N_PDU = "N-PDU"
    CONTAINER_I_PDU = "CONTAINER-I-PDU"
    MULTIPLEXED_I_PDU = "MULTIPLEXED-I-PDU"
    GENERAL_PURPOSE_I_PDU = "GENERAL-PURPOSE-I-PDU"


DEFAULT_PDU_TAGS = tuple(t.value for t in PduType)


def _enum_value(value: Optional[Enum]) -> Optional[str]:
    return value.value if value is not None else None


@dataclass
class EngineConfig:
    """Global configuration for parsing and comparison."""
    pdu_tags: tuple[str, ...] = DEFAULT_PDU_TAGS
    transmission_attributes_gid: str = "XDISTransmissionAttributes"
    collect_statistics: bool = True
    log_level: LogLevel = LogLevel.INFO

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'EngineConfig':
        """Build a config from a loaded YAML/JSON mapping."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration must be a mapping",
                {"type": type(data).__name__}
            )

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys", {"keys": unknown})

        kwargs: dict[str, Any] = {}

        if 'pdu_tags' in data:
            tags = data['pdu_tags']
            if not isinstance(tags, list) or not tags:
                raise ConfigError("pdu_tags must be a non-empty list")
            invalid = [t for t in tags if t not in DEFAULT_PDU_TAGS]
            if invalid:
                raise ConfigError("Unsupported PDU tags", {"tags": invalid})
            kwargs['pdu_tags'] = tuple(tags)

        if 'transmission_attributes_gid' in data:
            kwargs['transmission_attributes_gid'] = str(data['transmission_attributes_gid'])

        if 'collect_statistics' in data:
            kwargs['collect_statistics'] = bool(data['collect_statistics'])

        if 'log_level' in data:
            try:
                kwargs['log_level'] = LogLevel(str(data['log_level']).upper())
            except ValueError:
                raise ConfigError(
                    f"Invalid log level: {data['log_level']}",
                    {"allowed": [level.value for level in LogLevel]}
                )

        return cls(**kwargs)


# --------------------------
# Extracted records
# --------------------------

@dataclass(frozen=True)
class SignalRecord:
    """An elementary signal (I-SIGNAL) placed inside a PDU."""
    name: str
    pdu_name: str = ""
    start_position: int = 0
    length: int = 0
    byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN
    data_type: str = ""
    init_value: Optional[str] = None
    description: str = ""
    min_value: str = "0"
    max_value: str = "0"
    factor: Optional[str] = None
    offset: Optional[str] = None
    port_interface: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "pduName": self.pdu_name,
            "startPosition": self.start_position,
            "length": self.length,
            "byteOrder": self.byte_order.value,
            "dataType": self.data_type,
            "initValue": self.init_value,
            "description": self.description,
            "minValue": self.min_value,
            "maxValue": self.max_value,
            "factor": self.factor,
            "offset": self.offset,
            "portInterface": self.port_interface,
        }


@dataclass(frozen=True)
class MessageRecord:
    """A PDU of any recognized kind, with its frame and CAN addressing."""
    name: str
    pdu_type: PduType
    type: MessageType = MessageType.SPONTANEOUS
    length: int = 0
    signals: tuple[str, ...] = ()
    description: str = ""
    frame_name: Optional[str] = None
    cycle_time: Optional[float] = None
    direction: Optional[Direction] = None
    addressing_format: Optional[str] = None
    can_id: Optional[int] = None
    can_id_hex: Optional[str] = None
    can_addressing_mode: Optional[str] = None
    can_frame_behavior: Optional[str] = None

    @property
    def is_periodic(self) -> bool:
        return self.type == MessageType.PERIODIC

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "frameName": self.frame_name,
            "type": self.type.value,
            "cycleTime": self.cycle_time,
            "length": self.length,
            "signals": list(self.signals),
            "description": self.description,
            "pduType": self.pdu_type.value,
            "direction": _enum_value(self.direction),
            "addressingFormat": self.addressing_format,
            "canId": self.can_id,
            "canIdHex": self.can_id_hex,
            "canAddressingMode": self.can_addressing_mode,
            "canFrameBehavior": self.can_frame_behavior,
        }


@dataclass(frozen=True)
class SignalGroupRecord:
    """An I-SIGNAL-GROUP and its member signal names."""
    name: str
    signals: tuple[str, ...] = ()
    description: str = ""
    port_interface: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "signals": list(self.signals),
            "description": self.description,
            "portInterface": self.port_interface,
        }


@dataclass(frozen=True)
class MessageGroupRecord:
    """An I-SIGNAL-I-PDU-GROUP and its member PDU names."""
    name: str
    messages: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "messages": list(self.messages),
            "description": self.description,
        }


# Report keys per entity kind, in report order.
KINDS = ("messages", "signals", "signalGroups", "messageGroups")


@dataclass(frozen=True)
class ParsedDocument:
    """The four record collections extracted from one ECU extract."""
    signals: tuple[SignalRecord, ...] = ()
    messages: tuple[MessageRecord, ...] = ()
    signal_groups: tuple[SignalGroupRecord, ...] = ()
    message_groups: tuple[MessageGroupRecord, ...] = ()

    def counts(self) -> dict:
        return {
            "messages": len(self.messages),
            "signals": len(self.signals),
            "signalGroups": len(self.signal_groups),
            "messageGroups": len(self.message_groups),
        }

    def to_dict(self) -> dict:
        return {
            "signals": [s.to_dict() for s in self.signals],
            "messages": [m.to_dict() for m in self.messages],
            "signalGroups": [g.to_dict() for g in self.signal_groups],
            "messageGroups": [g.to_dict() for g in self.message_groups],
        }


# --------------------------
# Comparison results
# --------------------------

@dataclass(frozen=True)
class ModifiedEntry:
    """An entity present on both sides whose compared fields differ."""
    old: Any
    new: Any
    changed_fields: tuple[str, ...]

    @property
    def name(self) -> str:
        return self.old.name

    def to_dict(self) -> dict:
        return {
            "old": self.old.to_dict(),
            "new": self.new.to_dict(),
            "changedFields": list(self.changed_fields),
        }


@dataclass(frozen=True)
class KindDiff:
    """Added, deleted and modified entities of one kind."""
    added: tuple = ()
    deleted: tuple = ()
    modified: tuple[ModifiedEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.modified)

    def counts(self) -> dict:
        return {
            "added": len(self.added),
            "deleted": len(self.deleted),
            "modified": len(self.modified),
        }


@dataclass(frozen=True)
class ComparisonResult:
    """Per-kind differences between a base and a new document."""
    messages: KindDiff = field(default_factory=KindDiff)
    signals: KindDiff = field(default_factory=KindDiff)
    signal_groups: KindDiff = field(default_factory=KindDiff)
    message_groups: KindDiff = field(default_factory=KindDiff)

    def by_kind(self) -> dict[str, KindDiff]:
        return {
            "messages": self.messages,
            "signals": self.signals,
            "signalGroups": self.signal_groups,
            "messageGroups": self.message_groups,
        }

    @property
    def added(self) -> dict[str, tuple]:
        return {kind: d.added for kind, d in self.by_kind().items()}

    @property
    def deleted(self) -> dict[str, tuple]:
        return {kind: d.deleted for kind, d in self.by_kind().items()}

    @property
    def modified(self) -> dict[str, tuple]:
        return {kind: d.modified for kind, d in self.by_kind().items()}

    @property
    def is_empty(self) -> bool:
        return all(d.is_empty for d in self.by_kind().values())

    def to_dict(self) -> dict:
        kinds = self.by_kind()
        return {
            "added": {k: [r.to_dict() for r in d.added] for k, d in kinds.items()},
            "deleted": {k: [r.to_dict() for r in d.deleted] for k, d in kinds.items()},
            "modified": {k: [m.to_dict() for m in d.modified] for k, d in kinds.items()},
        }


@dataclass
class ExecutionInfo:
    """Execution metadata."""
    duration_ms: int
    timestamp: str
    engine_version: str = "1.0.0"

    def to_dict(self) -> dict:
        return {
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "engine_version": self.engine_version,
        }


@dataclass
class Summary:
    """Summary statistics of a comparison."""
    base_counts: dict = field(default_factory=dict)
    new_counts: dict = field(default_factory=dict)
    changes: dict = field(default_factory=dict)
    added_total: int = 0
    deleted_total: int = 0
    modified_total: int = 0

    @classmethod
    def from_result(
        cls,
        base: ParsedDocument,
        new: ParsedDocument,
        result: ComparisonResult
    ) -> 'Summary':
        changes = {kind: d.counts() for kind, d in result.by_kind().items()}
        return cls(
            base_counts=base.counts(),
            new_counts=new.counts(),
            changes=changes,
            added_total=sum(c["added"] for c in changes.values()),
            deleted_total=sum(c["deleted"] for c in changes.values()),
            modified_total=sum(c["modified"] for c in changes.values()),
        )

    def to_dict(self) -> dict:
        return {
            "base_counts": self.base_counts,
            "new_counts": self.new_counts,
            "changes": self.changes,
            "added_total": self.added_total,
            "deleted_total": self.deleted_total,
            "modified_total": self.modified_total,
        }


@dataclass
class DiffReport:
    """Complete comparison report."""
    is_match: bool
    execution: ExecutionInfo
    result: ComparisonResult
    summary: Optional[Summary] = None

    def to_dict(self) -> dict:
        report = {
            "is_match": self.is_match,
            "execution": self.execution.to_dict(),
        }
        if self.summary:
            report["summary"] = self.summary.to_dict()
        report.update(self.result.to_dict())
        return report

    def print_summary(self):
        status = "MATCH" if self.is_match else "DIFFERENT"
        print(f"\nComparison: {status} ({self.execution.duration_ms}ms)")
        for kind, diff in self.result.by_kind().items():
            counts = diff.counts()
            if not any(counts.values()):
                continue
            print(
                f"  {kind}: +{counts['added']} -{counts['deleted']} "
                f"~{counts['modified']}"
            )
            for entry in diff.modified:
                print(f"    {entry.name}: {', '.join(entry.changed_fields)}")
