"""Reference index construction for ARXML extraction.

An ECU extract spreads the facts about one signal or PDU across many
elements that point at each other by path. Each ``build_*`` function
below resolves one kind of reference into a flat name-keyed table; the
tables are bundled into a read-only ``ReferenceIndex`` that the entity
extractor consumes. Tables are independent of each other and keyed by
short name, so a later element with a duplicate name overwrites an
earlier one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from lxml import etree

from .document import (
    all_descendants,
    attribute,
    direct_child_text,
    first_child_text,
    first_descendant,
    last_segment,
    path_segments,
    ref_name,
    short_name,
    text_content,
)
from .models import Direction
from .utils import as_number, format_number, parse_float, parse_int, seconds_to_ms, to_hex_id

logger = logging.getLogger(__name__)

DEFAULT_ADDRESSING_MODE = "STANDARD"
DEFAULT_FRAME_BEHAVIOR = "CAN"
DEFAULT_LAUNCH_TYPE = "Spontaneous"
DEFAULT_BYTE_ORDER = "MOST-SIGNIFICANT-BYTE-LAST"

_SW_DATA_DEF_CHAIN = (
    'SW-DATA-DEF-PROPS-VARIANTS',
    'SW-DATA-DEF-PROPS-CONDITIONAL',
    'COMPU-METHOD-REF',
)


@dataclass(frozen=True)
class ScalingData:
    """Physical bounds and linear coefficients of one COMPU-METHOD."""
    min: Optional[str] = None
    max: Optional[str] = None
    factor: Optional[str] = None
    offset: Optional[str] = None


@dataclass(frozen=True)
class CanFrameData:
    """CAN addressing of one frame, from its CAN-FRAME-TRIGGERING."""
    can_id: int
    can_id_hex: str
    addressing_mode: str = DEFAULT_ADDRESSING_MODE
    frame_behavior: str = DEFAULT_FRAME_BEHAVIOR


@dataclass(frozen=True)
class SignalTrigger:
    """Transmission attributes of one signal, from its I-SIGNAL-TRIGGERING."""
    launch_type: str = DEFAULT_LAUNCH_TYPE
    cycle_time: Optional[float] = None


def _frozen(mapping: Optional[dict] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ReferenceIndex:
    """Read-only bundle of every name-keyed lookup table of one document."""
    scaling: Mapping[str, ScalingData] = field(default_factory=_frozen)
    system_signal_scaling: Mapping[str, str] = field(default_factory=_frozen)
    system_signal_port_interface: Mapping[str, str] = field(default_factory=_frozen)
    signal_group_port_interface: Mapping[str, str] = field(default_factory=_frozen)
    signal_pdu: Mapping[str, str] = field(default_factory=_frozen)
    signal_start_position: Mapping[str, Optional[int]] = field(default_factory=_frozen)
    signal_byte_order: Mapping[str, str] = field(default_factory=_frozen)
    can_frames: Mapping[str, CanFrameData] = field(default_factory=_frozen)
    pdu_frame: Mapping[str, str] = field(default_factory=_frozen)
    pdu_direction: Mapping[str, Direction] = field(default_factory=_frozen)
    pdu_addressing_format: Mapping[str, str] = field(default_factory=_frozen)
    nm_pdu_cycle_time: Mapping[str, float] = field(default_factory=_frozen)
    signal_triggers: Mapping[str, SignalTrigger] = field(default_factory=_frozen)

    def sizes(self) -> dict[str, int]:
        return {name: len(table) for name, table in self.__dict__.items()}


# --------------------------
# Scaling (COMPU-METHOD)
# --------------------------

def _scale_bounds(
    scales: list[etree._Element],
    low: Optional[float] = None,
    high: Optional[float] = None
) -> tuple[Optional[float], Optional[float]]:
    """Widen (low, high) by the LOWER-LIMIT/UPPER-LIMIT of each scale."""
    for scale in scales:
        lower = parse_float(first_child_text(scale, 'LOWER-LIMIT'))
        if lower is not None and (low is None or lower < low):
            low = lower

        upper = parse_float(first_child_text(scale, 'UPPER-LIMIT'))
        if upper is not None and (high is None or upper > high):
            high = upper
    return low, high


def _rational_coefficients(coeffs: etree._Element) -> Optional[tuple[float, float]]:
    """
    Factor and offset of a COMPU-RATIONAL-COEFFS block.

    physical = (raw * num[1] + num[0]) / den[0], so
    factor = num[1] / den[0] and offset = num[0] / den[0].
    """
    numerators = all_descendants(coeffs, 'COMPU-NUMERATOR', 'V')
    denominators = all_descendants(coeffs, 'COMPU-DENOMINATOR', 'V')
    if len(numerators) < 2 or len(denominators) < 1:
        return None

    num0 = parse_float(text_content(numerators[0]) or "0")
    num1 = parse_float(text_content(numerators[1]) or "1")
    denom = parse_float(text_content(denominators[0]) or "1")
    if num0 is None or num1 is None or denom is None or denom == 0:
        return None
    return num1 / denom, num0 / denom


def scaling_for_method(method: etree._Element) -> Optional[ScalingData]:
    """
    Resolve bounds, factor and offset of one COMPU-METHOD.

    Bounds come from linear scales (those with COMPU-RATIONAL-COEFFS).
    Without any linear bound, a TEXTTABLE takes bounds from all of its
    scales; any other category takes them from scales without a
    COMPU-CONST. Returns None when nothing could be determined.
    """
    category = first_child_text(method, 'CATEGORY') or ""
    scales = all_descendants(method, 'COMPU-INTERNAL-TO-PHYS', 'COMPU-SCALES', 'COMPU-SCALE')

    low = high = None
    factor = offset = None

    for scale in scales:
        coeffs = first_descendant(scale, 'COMPU-RATIONAL-COEFFS')
        if coeffs is None:
            continue
        low, high = _scale_bounds([scale], low, high)
        if factor is None and offset is None:
            coefficients = _rational_coefficients(coeffs)
            if coefficients:
                factor, offset = coefficients

    if low is None and high is None and category == "TEXTTABLE":
        low, high = _scale_bounds(scales)

    if low is None and high is None:
        numeric = [s for s in scales if first_descendant(s, 'COMPU-CONST') is None]
        low, high = _scale_bounds(numeric)

    if low is None and high is None and factor is None and offset is None:
        return None

    return ScalingData(
        min=format_number(low) if low is not None else None,
        max=format_number(high) if high is not None else None,
        factor=format_number(factor) if factor is not None else None,
        offset=format_number(offset) if offset is not None else None,
    )


def build_scaling_table(root: etree._Element) -> dict[str, ScalingData]:
    table = {}
    for method in all_descendants(root, 'COMPU-METHOD'):
        name = short_name(method)
        if not name:
            continue
        data = scaling_for_method(method)
        if data is not None:
            table[name] = data
    return table


def build_system_signal_scaling(root: etree._Element) -> dict[str, str]:
    """SYSTEM-SIGNAL name -> COMPU-METHOD name via its PHYSICAL-PROPS."""
    table = {}
    for system_signal in all_descendants(root, 'SYSTEM-SIGNAL'):
        name = short_name(system_signal)
        method = ref_name(system_signal, 'PHYSICAL-PROPS', *_SW_DATA_DEF_CHAIN)
        if name and method:
            table[name] = method
    return table


# --------------------------
# Port interfaces
# --------------------------

def _port_interface_table(root: etree._Element, mapping_tag: str, ref_tag: str) -> dict[str, str]:
    """
    Source name -> port interface from sender/receiver mappings.

    The port interface is the second-to-last segment of the mapping's
    TARGET-DATA-PROTOTYPE-REF (/Pkg/<Interface>/<DataElement>).
    """
    table = {}
    for mapping in all_descendants(root, mapping_tag):
        source_ref = first_child_text(mapping, ref_tag) or ""
        target_ref = first_child_text(mapping, 'TARGET-DATA-PROTOTYPE-REF') or ""
        if not source_ref or not target_ref:
            continue

        source = last_segment(source_ref)
        parts = path_segments(target_ref)
        interface = parts[-2] if len(parts) >= 2 else ""
        if source and interface:
            table[source] = interface
    return table


def build_system_signal_port_interfaces(root: etree._Element) -> dict[str, str]:
    return _port_interface_table(root, 'SENDER-RECEIVER-TO-SIGNAL-MAPPING', 'SYSTEM-SIGNAL-REF')


def build_signal_group_port_interfaces(root: etree._Element) -> dict[str, str]:
    return _port_interface_table(root, 'SENDER-RECEIVER-TO-SIGNAL-GROUP-MAPPING', 'SIGNAL-GROUP-REF')


# --------------------------
# Signal placement inside PDUs
# --------------------------

def build_signal_placement(
    root: etree._Element
) -> tuple[dict[str, str], dict[str, Optional[int]], dict[str, str]]:
    """
    Signal name -> PDU name, start bit and packing byte order.

    Walks the I-SIGNAL-TO-I-PDU-MAPPINGs of every I-SIGNAL-I-PDU. The PDU
    name is the PDU's own SHORT-NAME child, never a nested element's.
    """
    signal_pdu: dict[str, str] = {}
    start_positions: dict[str, Optional[int]] = {}
    byte_orders: dict[str, str] = {}

    for pdu in all_descendants(root, 'I-SIGNAL-I-PDU'):
        pdu_name = direct_child_text(pdu, 'SHORT-NAME') or ""

        for mapping in all_descendants(pdu, 'I-SIGNAL-TO-I-PDU-MAPPING'):
            signal_ref = first_descendant(mapping, 'I-SIGNAL-REF')
            if signal_ref is None:
                continue

            signal_name = last_segment(text_content(signal_ref))
            signal_pdu[signal_name] = pdu_name

            start = first_descendant(mapping, 'START-POSITION')
            if start is not None:
                start_positions[signal_name] = parse_int(text_content(start) or "0")

            byte_order = first_descendant(mapping, 'PACKING-BYTE-ORDER')
            if byte_order is not None:
                byte_orders[signal_name] = text_content(byte_order) or DEFAULT_BYTE_ORDER

    return signal_pdu, start_positions, byte_orders


# --------------------------
# Frames, directions, addressing
# --------------------------

def build_can_frames(root: etree._Element) -> dict[str, CanFrameData]:
    """Frame name -> CAN identifier, addressing mode and frame behavior."""
    table = {}
    for triggering in all_descendants(root, 'CAN-FRAME-TRIGGERING'):
        frame_ref = first_child_text(triggering, 'FRAME-REF')
        identifier = first_child_text(triggering, 'IDENTIFIER')
        if frame_ref is None or identifier is None:
            continue

        can_id = parse_int(identifier or "0")
        if can_id is None or can_id < 0:
            logger.warning("Skipping frame %s: identifier %r is not a valid CAN id",
                           last_segment(frame_ref), identifier)
            continue

        behavior = (
            first_child_text(triggering, 'CAN-FRAME-TX-BEHAVIOR')
            or first_child_text(triggering, 'CAN-FRAME-RX-BEHAVIOR')
            or DEFAULT_FRAME_BEHAVIOR
        )
        table[last_segment(frame_ref)] = CanFrameData(
            can_id=can_id,
            can_id_hex=to_hex_id(can_id),
            addressing_mode=first_child_text(triggering, 'CAN-ADDRESSING-MODE') or DEFAULT_ADDRESSING_MODE,
            frame_behavior=behavior,
        )
    return table


def build_port_directions(root: etree._Element) -> dict[str, Direction]:
    """I-PDU-PORT name -> Tx for OUT ports, Rx for anything else."""
    table = {}
    for port in all_descendants(root, 'I-PDU-PORT'):
        name = short_name(port)
        direction = first_child_text(port, 'COMMUNICATION-DIRECTION') or ""
        if name and direction:
            table[name] = Direction.TX if direction == "OUT" else Direction.RX
    return table


def build_pdu_links(
    root: etree._Element,
    port_directions: Mapping[str, Direction]
) -> tuple[dict[str, str], dict[str, Direction]]:
    """
    PDU name -> frame name and PDU name -> direction, via PDU-TRIGGERINGs.

    A frame is linked when its CAN-FRAME-TRIGGERING's PDU-TRIGGERING-REF
    text contains the PDU-TRIGGERING's short name. This is a substring
    test, not path equality; the last matching frame wins.
    """
    pdu_frame: dict[str, str] = {}
    pdu_direction: dict[str, Direction] = {}
    frame_triggerings = all_descendants(root, 'CAN-FRAME-TRIGGERING')

    for pdu_triggering in all_descendants(root, 'PDU-TRIGGERING'):
        pdu_ref = first_child_text(pdu_triggering, 'I-PDU-REF')
        if pdu_ref is None:
            continue
        pdu_name = last_segment(pdu_ref)
        triggering_name = short_name(pdu_triggering)

        for port_ref in all_descendants(pdu_triggering, 'I-PDU-PORT-REFS', 'I-PDU-PORT-REF'):
            direction = port_directions.get(last_segment(text_content(port_ref)))
            if direction and pdu_name:
                pdu_direction[pdu_name] = direction

        for frame_triggering in frame_triggerings:
            triggering_ref = first_child_text(frame_triggering, 'PDU-TRIGGERING-REF')
            if triggering_ref is None or triggering_name not in triggering_ref:
                continue
            frame_ref = first_child_text(frame_triggering, 'FRAME-REF')
            if frame_ref is not None:
                pdu_frame[pdu_name] = last_segment(frame_ref)

    return pdu_frame, pdu_direction


def build_addressing_formats(root: etree._Element) -> dict[str, str]:
    """PDU name -> ADDRESSING-FORMAT of the CAN-TP-CONNECTION carrying it."""
    table = {}
    for connection in all_descendants(root, 'CAN-TP-CONNECTION'):
        addressing_format = first_child_text(connection, 'ADDRESSING-FORMAT') or ""
        if not addressing_format:
            continue
        data_pdu = ref_name(connection, 'DATA-PDU-REF')
        tp_sdu = ref_name(connection, 'TP-SDU-REF')
        if data_pdu:
            table[data_pdu] = addressing_format
        if tp_sdu:
            table[tp_sdu] = addressing_format
    return table


def build_nm_cycle_times(root: etree._Element) -> dict[str, float]:
    """NM-PDU name -> cluster NM-MSG-CYCLE-TIME in milliseconds."""
    table = {}
    for cluster in all_descendants(root, 'CAN-NM-CLUSTER'):
        seconds = parse_float(first_child_text(cluster, 'NM-MSG-CYCLE-TIME') or "0")
        if not seconds:
            continue
        cycle_time = seconds_to_ms(seconds)

        for node in all_descendants(cluster, 'CAN-NM-NODE'):
            refs = (
                all_descendants(node, 'TX-NM-PDU-REFS', 'TX-NM-PDU-REF')
                + all_descendants(node, 'RX-NM-PDU-REFS', 'RX-NM-PDU-REF')
            )
            for ref in refs:
                pdu_name = last_segment(text_content(ref))
                if pdu_name:
                    table[pdu_name] = cycle_time
    return table


def build_signal_triggers(
    root: etree._Element,
    group_gid: str = "XDISTransmissionAttributes"
) -> dict[str, SignalTrigger]:
    """
    Signal name -> launch type and cycle time from I-SIGNAL-TRIGGERING
    admin data (SDG with the transmission attributes GID). The cycle time
    there is already in milliseconds.
    """
    table = {}
    for triggering in all_descendants(root, 'I-SIGNAL-TRIGGERING'):
        signal_ref = first_child_text(triggering, 'I-SIGNAL-REF')
        admin_data = first_descendant(triggering, 'ADMIN-DATA')
        if signal_ref is None or admin_data is None:
            continue

        sdgs = first_descendant(admin_data, 'SDGS')
        if sdgs is None:
            continue
        group = next(
            (sdg for sdg in all_descendants(sdgs, 'SDG') if attribute(sdg, 'GID') == group_gid),
            None
        )
        if group is None:
            continue

        items = {}
        for sd in all_descendants(group, 'SD'):
            items.setdefault(attribute(sd, 'GID'), sd)

        launch_type = items.get('LaunchType')
        cycle_time = items.get('CycleTime')
        parsed_cycle = None
        if cycle_time is not None:
            parsed_cycle = parse_float(text_content(cycle_time) or "0")

        table[last_segment(signal_ref)] = SignalTrigger(
            launch_type=(text_content(launch_type) if launch_type is not None else "") or DEFAULT_LAUNCH_TYPE,
            cycle_time=as_number(parsed_cycle) if parsed_cycle is not None else None,
        )
    return table


# --------------------------
# Bundle
# --------------------------

def build_reference_index(
    root: etree._Element,
    transmission_attributes_gid: str = "XDISTransmissionAttributes"
) -> ReferenceIndex:
    """Build every lookup table of a document in one pass."""
    signal_pdu, start_positions, byte_orders = build_signal_placement(root)
    pdu_frame, pdu_direction = build_pdu_links(root, build_port_directions(root))

    index = ReferenceIndex(
        scaling=_frozen(build_scaling_table(root)),
        system_signal_scaling=_frozen(build_system_signal_scaling(root)),
        system_signal_port_interface=_frozen(build_system_signal_port_interfaces(root)),
        signal_group_port_interface=_frozen(build_signal_group_port_interfaces(root)),
        signal_pdu=_frozen(signal_pdu),
        signal_start_position=_frozen(start_positions),
        signal_byte_order=_frozen(byte_orders),
        can_frames=_frozen(build_can_frames(root)),
        pdu_frame=_frozen(pdu_frame),
        pdu_direction=_frozen(pdu_direction),
        pdu_addressing_format=_frozen(build_addressing_formats(root)),
        nm_pdu_cycle_time=_frozen(build_nm_cycle_times(root)),
        signal_triggers=_frozen(build_signal_triggers(root, transmission_attributes_gid)),
    )
    logger.debug("Reference index built: %s", index.sizes())
    return index
