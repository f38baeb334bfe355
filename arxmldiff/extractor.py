"""Entity extraction: turns an ARXML tree plus its reference index into records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from lxml import etree

from .document import (
    all_descendants,
    first_child_text,
    last_segment,
    ref_name,
    short_name,
    text_content,
)
from .models import (
    DEFAULT_PDU_TAGS,
    ByteOrder,
    MessageGroupRecord,
    MessageRecord,
    MessageType,
    ParsedDocument,
    PduType,
    SignalGroupRecord,
    SignalRecord,
)
from .references import ReferenceIndex
from .utils import parse_float, parse_int, seconds_to_ms

logger = logging.getLogger(__name__)

BIG_ENDIAN_MARKER = "MOST-SIGNIFICANT-BYTE-FIRST"
CYCLIC_LAUNCH_TYPE = "Cyclic"
DEFAULT_BOUND = "0"


@dataclass(frozen=True)
class SignalContext:
    """What the scaling resolvers know about the signal being extracted."""
    name: str
    system_signal: str
    index: ReferenceIndex


@dataclass(frozen=True)
class PduContext:
    """What the periodicity resolvers know about the PDU being extracted."""
    name: str
    pdu_type: PduType
    signals: tuple[str, ...]
    index: ReferenceIndex


@dataclass(frozen=True)
class Timing:
    """A resolved periodic timing; cycle_time may still be unknown."""
    cycle_time: Optional[float] = None


ScalingResolver = Callable[[etree._Element, SignalContext], Optional[str]]
PeriodicityResolver = Callable[[etree._Element, PduContext], Optional[Timing]]


def resolve_first(resolvers: Sequence[Callable], element: etree._Element, context):
    """Run resolvers in order and return the first non-empty result."""
    for resolver in resolvers:
        value = resolver(element, context)
        if value:
            return value
    return None


# --------------------------
# Scaling method resolvers
# --------------------------

def scaling_via_system_signal(signal: etree._Element, ctx: SignalContext) -> Optional[str]:
    if not ctx.system_signal:
        return None
    return ctx.index.system_signal_scaling.get(ctx.system_signal)


def scaling_via_direct_reference(signal: etree._Element, ctx: SignalContext) -> Optional[str]:
    return ref_name(signal, 'COMPU-METHOD-REF') or None


def scaling_via_network_representation(signal: etree._Element, ctx: SignalContext) -> Optional[str]:
    return ref_name(
        signal,
        'NETWORK-REPRESENTATION-PROPS',
        'SW-DATA-DEF-PROPS-VARIANTS',
        'SW-DATA-DEF-PROPS-CONDITIONAL',
        'COMPU-METHOD-REF',
    ) or None


def scaling_via_signal_name(signal: etree._Element, ctx: SignalContext) -> Optional[str]:
    if ctx.name in ctx.index.scaling:
        return ctx.name
    return None


SCALING_RESOLVERS: tuple[ScalingResolver, ...] = (
    scaling_via_system_signal,
    scaling_via_direct_reference,
    scaling_via_network_representation,
    scaling_via_signal_name,
)


# --------------------------
# Periodicity resolvers
# --------------------------

def timing_from_cyclic_signal(pdu: etree._Element, ctx: PduContext) -> Optional[Timing]:
    """The first member signal triggered Cyclic makes the PDU periodic."""
    for signal_name in ctx.signals:
        trigger = ctx.index.signal_triggers.get(signal_name)
        if trigger and trigger.launch_type == CYCLIC_LAUNCH_TYPE:
            return Timing(trigger.cycle_time)
    return None


def timing_from_repeating_time(pdu: etree._Element, ctx: PduContext) -> Optional[Timing]:
    """CYCLIC-TIMING/REPEATING-TIME/VALUE on the PDU, in seconds."""
    value = first_child_text(pdu, 'CYCLIC-TIMING', 'REPEATING-TIME', 'VALUE')
    if value is None:
        return None
    seconds = parse_float(value or "0")
    return Timing(seconds_to_ms(seconds) if seconds is not None else None)


def timing_from_nm_cluster(pdu: etree._Element, ctx: PduContext) -> Optional[Timing]:
    if ctx.pdu_type != PduType.NM_PDU:
        return None
    cycle_time = ctx.index.nm_pdu_cycle_time.get(ctx.name)
    if cycle_time is None:
        return None
    return Timing(cycle_time)


PERIODICITY_RESOLVERS: tuple[PeriodicityResolver, ...] = (
    timing_from_cyclic_signal,
    timing_from_repeating_time,
    timing_from_nm_cluster,
)


def normalize_byte_order(value: Optional[str]) -> ByteOrder:
    if value == BIG_ENDIAN_MARKER:
        return ByteOrder.BIG_ENDIAN
    return ByteOrder.LITTLE_ENDIAN


def _description(element: etree._Element) -> str:
    return first_child_text(element, 'DESC', 'L-2') or ""


def _member_names(element: etree._Element, tag: str) -> tuple[str, ...]:
    names = (last_segment(text_content(ref)) for ref in all_descendants(element, tag))
    return tuple(name for name in names if name)


class EntityExtractor:
    """
    Materializes the four record collections of one document.

    Signals are extracted first because message membership and
    periodicity are derived from the extracted signals.
    """

    def __init__(
        self,
        root: etree._Element,
        index: ReferenceIndex,
        pdu_tags: Sequence[str] = DEFAULT_PDU_TAGS
    ):
        self.root = root
        self.index = index
        self.pdu_tags = tuple(pdu_tags)

    def extract(self) -> ParsedDocument:
        signals = self.extract_signals()
        messages = self.extract_messages(signals)
        document = ParsedDocument(
            signals=signals,
            messages=messages,
            signal_groups=self.extract_signal_groups(),
            message_groups=self.extract_message_groups(),
        )
        logger.debug("Extracted %s", document.counts())
        return document

    def extract_signals(self) -> tuple[SignalRecord, ...]:
        return tuple(
            self._signal_record(signal)
            for signal in all_descendants(self.root, 'I-SIGNAL')
        )

    def _signal_record(self, signal: etree._Element) -> SignalRecord:
        index = self.index
        name = self._name(signal, 'I-SIGNAL')
        system_signal = ref_name(signal, 'SYSTEM-SIGNAL-REF')

        method = resolve_first(
            SCALING_RESOLVERS,
            signal,
            SignalContext(name=name, system_signal=system_signal, index=index)
        )
        scaling = index.scaling.get(method) if method else None

        length = parse_int(first_child_text(signal, 'LENGTH') or "0")

        return SignalRecord(
            name=name,
            pdu_name=index.signal_pdu.get(name) or "",
            start_position=index.signal_start_position.get(name) or 0,
            length=length if length is not None else 0,
            byte_order=normalize_byte_order(index.signal_byte_order.get(name)),
            data_type=ref_name(signal, 'BASE-TYPE-REF'),
            init_value=first_child_text(signal, 'INIT-VALUE', 'VALUE') or "",
            description=_description(signal),
            min_value=(scaling.min if scaling else None) or DEFAULT_BOUND,
            max_value=(scaling.max if scaling else None) or DEFAULT_BOUND,
            factor=scaling.factor if scaling else None,
            offset=scaling.offset if scaling else None,
            port_interface=index.system_signal_port_interface.get(system_signal) if system_signal else None,
        )

    def extract_messages(self, signals: Sequence[SignalRecord]) -> tuple[MessageRecord, ...]:
        members: dict[str, list[str]] = {}
        for signal in signals:
            members.setdefault(signal.pdu_name, []).append(signal.name)

        messages = []
        for tag in self.pdu_tags:
            pdu_type = PduType(tag)
            for pdu in all_descendants(self.root, tag):
                messages.append(self._message_record(pdu, pdu_type, members))
        return tuple(messages)

    def _message_record(
        self,
        pdu: etree._Element,
        pdu_type: PduType,
        members: dict[str, list[str]]
    ) -> MessageRecord:
        index = self.index
        name = self._name(pdu, pdu_type.value)
        pdu_signals = tuple(members.get(name, ()))

        timing = resolve_first(
            PERIODICITY_RESOLVERS,
            pdu,
            PduContext(name=name, pdu_type=pdu_type, signals=pdu_signals, index=index)
        )

        frame_name = index.pdu_frame.get(name)
        can_data = index.can_frames.get(frame_name) if frame_name else None
        length = parse_int(first_child_text(pdu, 'LENGTH') or "0")

        return MessageRecord(
            name=name,
            pdu_type=pdu_type,
            type=MessageType.PERIODIC if timing else MessageType.SPONTANEOUS,
            cycle_time=timing.cycle_time if timing else None,
            length=length if length is not None else 0,
            signals=pdu_signals,
            description=_description(pdu),
            frame_name=frame_name,
            direction=index.pdu_direction.get(name),
            addressing_format=index.pdu_addressing_format.get(name),
            can_id=can_data.can_id if can_data else None,
            can_id_hex=can_data.can_id_hex if can_data else None,
            can_addressing_mode=can_data.addressing_mode if can_data else None,
            can_frame_behavior=can_data.frame_behavior if can_data else None,
        )

    def extract_signal_groups(self) -> tuple[SignalGroupRecord, ...]:
        groups = []
        for group in all_descendants(self.root, 'I-SIGNAL-GROUP'):
            system_group = ref_name(group, 'SYSTEM-SIGNAL-GROUP-REF')
            groups.append(SignalGroupRecord(
                name=self._name(group, 'I-SIGNAL-GROUP'),
                signals=_member_names(group, 'I-SIGNAL-REF'),
                description=_description(group),
                port_interface=self.index.signal_group_port_interface.get(system_group) if system_group else None,
            ))
        return tuple(groups)

    def extract_message_groups(self) -> tuple[MessageGroupRecord, ...]:
        return tuple(
            MessageGroupRecord(
                name=self._name(group, 'I-SIGNAL-I-PDU-GROUP'),
                messages=_member_names(group, 'I-PDU-REF'),
                description=_description(group),
            )
            for group in all_descendants(self.root, 'I-SIGNAL-I-PDU-GROUP')
        )

    def _name(self, element: etree._Element, tag: str) -> str:
        name = short_name(element)
        if not name:
            logger.warning("%s at line %s has no SHORT-NAME", tag, element.sourceline)
        return name
