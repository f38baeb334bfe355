"""Tests for arxmldiff extraction and comparison engine."""

from pathlib import Path

import pytest
from arxmldiff import (
    ArxmlDiffEngine,
    ByteOrder,
    ConfigError,
    Direction,
    EngineConfig,
    LogLevel,
    MessageGroupRecord,
    MessageType,
    ParsedDocument,
    ParseError,
    PduType,
    SignalGroupRecord,
    SignalRecord,
    build_reference_index,
    compare,
    parse,
)
from arxmldiff.document import (
    all_descendants,
    direct_child_text,
    direct_children,
    first_child_text,
    last_segment,
    load_document,
)
from arxmldiff.extractor import normalize_byte_order
from arxmldiff.models import DEFAULT_PDU_TAGS, KINDS
from arxmldiff.references import (
    CanFrameData,
    ScalingData,
    SignalTrigger,
    build_can_frames,
    build_scaling_table,
    build_pdu_links,
    build_signal_triggers,
    scaling_for_method,
)
from arxmldiff.utils import format_number, parse_float, parse_int, seconds_to_ms, to_hex_id

DATASETS = Path(__file__).parent / "datasets"


def arxml(elements: str) -> str:
    """Wrap elements into a minimal namespaced AUTOSAR document."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<AUTOSAR xmlns="http://autosar.org/schema/r4.0">'
        '<AR-PACKAGES><AR-PACKAGE><SHORT-NAME>Pkg</SHORT-NAME><ELEMENTS>'
        f'{elements}'
        '</ELEMENTS></AR-PACKAGE></AR-PACKAGES></AUTOSAR>'
    )


def linear_method(name, low, high, num0="0", num1="1", den="1", category="LINEAR"):
    return (
        f'<COMPU-METHOD><SHORT-NAME>{name}</SHORT-NAME><CATEGORY>{category}</CATEGORY>'
        '<COMPU-INTERNAL-TO-PHYS><COMPU-SCALES><COMPU-SCALE>'
        f'<LOWER-LIMIT>{low}</LOWER-LIMIT><UPPER-LIMIT>{high}</UPPER-LIMIT>'
        '<COMPU-RATIONAL-COEFFS>'
        f'<COMPU-NUMERATOR><V>{num0}</V><V>{num1}</V></COMPU-NUMERATOR>'
        f'<COMPU-DENOMINATOR><V>{den}</V></COMPU-DENOMINATOR>'
        '</COMPU-RATIONAL-COEFFS>'
        '</COMPU-SCALE></COMPU-SCALES></COMPU-INTERNAL-TO-PHYS></COMPU-METHOD>'
    )


def compu_ref(method):
    return (
        '<SW-DATA-DEF-PROPS-VARIANTS><SW-DATA-DEF-PROPS-CONDITIONAL>'
        f'<COMPU-METHOD-REF DEST="COMPU-METHOD">/Pkg/{method}</COMPU-METHOD-REF>'
        '</SW-DATA-DEF-PROPS-CONDITIONAL></SW-DATA-DEF-PROPS-VARIANTS>'
    )


def signal_triggering(signal, launch_type, cycle_time=None, gid="XDISTransmissionAttributes"):
    cycle = f'<SD GID="CycleTime">{cycle_time}</SD>' if cycle_time is not None else ''
    return (
        f'<I-SIGNAL-TRIGGERING><SHORT-NAME>ST_{signal}</SHORT-NAME>'
        f'<ADMIN-DATA><SDGS><SDG GID="{gid}">'
        f'<SD GID="LaunchType">{launch_type}</SD>{cycle}'
        '</SDG></SDGS></ADMIN-DATA>'
        f'<I-SIGNAL-REF DEST="I-SIGNAL">/Pkg/{signal}</I-SIGNAL-REF>'
        '</I-SIGNAL-TRIGGERING>'
    )


def by_name(records):
    return {r.name: r for r in records}


class TestDocumentLoading:
    """Test XML loading and lookup helpers."""

    def test_namespaces_are_stripped(self):
        """Test that namespaced tags are queried by their plain names."""
        root = load_document(arxml('<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME></I-SIGNAL>'))
        assert root.tag == "AUTOSAR"
        assert len(all_descendants(root, 'I-SIGNAL')) == 1

    def test_malformed_document(self):
        """Test that malformed XML raises ParseError with a position."""
        with pytest.raises(ParseError) as exc_info:
            load_document("<AUTOSAR><I-SIGNAL></AUTOSAR>")

        assert exc_info.value.message == "Invalid XML format"
        assert exc_info.value.line is not None
        assert exc_info.value.to_dict()["reason"]

    def test_empty_document(self):
        """Test that an empty input is rejected."""
        with pytest.raises(ParseError):
            load_document("")

    def test_str_ignores_encoding_declaration(self):
        """Test that decoded text is not decoded again per its declaration."""
        text = (
            '<?xml version="1.0" encoding="ISO-8859-1"?>'
            '<AUTOSAR><I-SIGNAL><SHORT-NAME>OilTemp</SHORT-NAME>'
            '<DESC><L-2 L="DE">Öltemperatur</L-2></DESC></I-SIGNAL></AUTOSAR>'
        )
        assert parse(text).signals[0].description == "Öltemperatur"
        assert parse(text.encode('latin-1')).signals[0].description == "Öltemperatur"

    def test_bytes_input(self):
        """Test that UTF-8 bytes are accepted."""
        root = load_document(arxml('<I-SIGNAL><SHORT-NAME>Geschwindigkeit</SHORT-NAME></I-SIGNAL>').encode('utf-8'))
        assert first_child_text(root, 'I-SIGNAL', 'SHORT-NAME') == "Geschwindigkeit"

    def test_missing_and_empty_text(self):
        """Test that a missing element gives None and an empty one gives ''."""
        root = load_document(arxml('<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME><DESC/></I-SIGNAL>'))
        assert first_child_text(root, 'LENGTH') is None
        assert first_child_text(root, 'DESC') == ""

    def test_direct_children_skip_nested(self):
        """Test that direct lookups ignore elements of nested PDUs."""
        root = load_document(arxml(
            '<I-SIGNAL-I-PDU><LENGTH>8</LENGTH>'
            '<CONTAINED><SHORT-NAME>Inner</SHORT-NAME></CONTAINED>'
            '<SHORT-NAME>Outer</SHORT-NAME></I-SIGNAL-I-PDU>'
        ))
        pdu = all_descendants(root, 'I-SIGNAL-I-PDU')[0]
        assert [c.tag for c in direct_children(pdu, 'SHORT-NAME')] == ['SHORT-NAME']
        assert direct_child_text(pdu, 'SHORT-NAME') == "Outer"
        assert first_child_text(pdu, 'SHORT-NAME') == "Inner"
        assert direct_child_text(pdu, 'DESC') is None

    def test_last_segment(self):
        assert last_segment("/Signals/VehicleSpeed") == "VehicleSpeed"
        assert last_segment("") == ""
        assert last_segment(None) == ""


class TestNumberHandling:
    """Test lenient number parsing and rendering."""

    def test_parse_float_prefix(self):
        """Test that trailing text after a number is ignored."""
        assert parse_float("12.5ms") == 12.5
        assert parse_float(" 0.25 ") == 0.25
        assert parse_float("abc") is None
        assert parse_float(None) is None

    def test_parse_int_prefix(self):
        assert parse_int("2024") == 2024
        assert parse_int("16 bits") == 16
        assert parse_int("x16") is None

    def test_format_number(self):
        """Test shortest decimal rendering of numbers."""
        assert format_number(255.0) == "255"
        assert format_number(0.0) == "0"
        assert format_number(0.01) == "0.01"
        assert format_number(-40.0) == "-40"
        assert format_number(1e-7) == "1e-7"

    def test_format_large_integral_number(self):
        """Test that integral floats beyond 2**53 keep their shortest digits."""
        assert format_number(1.2345678901234568e20) == "123456789012345680000"
        assert format_number(2.0 ** 53) == "9007199254740992"
        assert format_number(1e21) == "1e+21"

    def test_can_id_hex(self):
        """Test uppercase hex rendering of CAN identifiers."""
        assert to_hex_id(2024) == "0x7E8"
        assert to_hex_id(256) == "0x100"

    def test_seconds_to_ms(self):
        assert seconds_to_ms(0.5) == 500
        assert isinstance(seconds_to_ms(0.5), int)
        assert seconds_to_ms(0.0125) == 12.5


class TestScaling:
    """Test COMPU-METHOD bounds and coefficient resolution."""

    def _method(self, xml):
        root = load_document(arxml(xml))
        return all_descendants(root, 'COMPU-METHOD')[0]

    def test_linear_scale(self):
        """Test the bounds and coefficients of a simple linear scale."""
        method = self._method(linear_method("CM", 0, 255))
        assert scaling_for_method(method) == ScalingData(min="0", max="255", factor="1", offset="0")

    def test_linear_scale_with_denominator(self):
        """Test that factor and offset are divided by the denominator."""
        method = self._method(linear_method("CM", 0, 1000, num0="-100", num1="1", den="10"))
        data = scaling_for_method(method)
        assert data.factor == "0.1"
        assert data.offset == "-10"

    def test_texttable_bounds(self):
        """Test that a TEXTTABLE takes bounds from every scale."""
        method = self._method(
            '<COMPU-METHOD><SHORT-NAME>CM</SHORT-NAME><CATEGORY>TEXTTABLE</CATEGORY>'
            '<COMPU-INTERNAL-TO-PHYS><COMPU-SCALES>'
            '<COMPU-SCALE><LOWER-LIMIT>0</LOWER-LIMIT><UPPER-LIMIT>0</UPPER-LIMIT>'
            '<COMPU-CONST><VT>Off</VT></COMPU-CONST></COMPU-SCALE>'
            '<COMPU-SCALE><LOWER-LIMIT>3</LOWER-LIMIT><UPPER-LIMIT>3</UPPER-LIMIT>'
            '<COMPU-CONST><VT>Error</VT></COMPU-CONST></COMPU-SCALE>'
            '</COMPU-SCALES></COMPU-INTERNAL-TO-PHYS></COMPU-METHOD>'
        )
        assert scaling_for_method(method) == ScalingData(min="0", max="3")

    def test_non_texttable_skips_constant_scales(self):
        """Test that other categories ignore scales carrying a COMPU-CONST."""
        method = self._method(
            '<COMPU-METHOD><SHORT-NAME>CM</SHORT-NAME><CATEGORY>IDENTICAL</CATEGORY>'
            '<COMPU-INTERNAL-TO-PHYS><COMPU-SCALES>'
            '<COMPU-SCALE><LOWER-LIMIT>0</LOWER-LIMIT><UPPER-LIMIT>100</UPPER-LIMIT></COMPU-SCALE>'
            '<COMPU-SCALE><LOWER-LIMIT>255</LOWER-LIMIT><UPPER-LIMIT>255</UPPER-LIMIT>'
            '<COMPU-CONST><VT>SNA</VT></COMPU-CONST></COMPU-SCALE>'
            '</COMPU-SCALES></COMPU-INTERNAL-TO-PHYS></COMPU-METHOD>'
        )
        assert scaling_for_method(method) == ScalingData(min="0", max="100")

    def test_method_without_scales(self):
        """Test that nothing is recorded for a method without scales."""
        method = self._method('<COMPU-METHOD><SHORT-NAME>CM</SHORT-NAME><CATEGORY>IDENTICAL</CATEGORY></COMPU-METHOD>')
        assert scaling_for_method(method) is None


class TestReferenceIndex:
    """Test the lookup tables built from the sample base extract."""

    def setup_method(self):
        self.root = load_document((DATASETS / "base.arxml").read_bytes())
        self.index = build_reference_index(self.root)

    def test_scaling_tables(self):
        assert set(self.index.scaling) == {"CM_VehicleSpeed", "CM_EngineState", "CM_CoolantTemp"}
        assert self.index.scaling["CM_VehicleSpeed"] == ScalingData(
            min="0", max="65535", factor="0.01", offset="0"
        )
        assert dict(self.index.system_signal_scaling) == {
            "SysSig_VehicleSpeed": "CM_VehicleSpeed",
            "SysSig_EngineState": "CM_EngineState",
        }

    def test_port_interfaces(self):
        """Test that the interface is the second-to-last target segment."""
        assert dict(self.index.system_signal_port_interface) == {"SysSig_VehicleSpeed": "PI_VehicleData"}
        assert dict(self.index.signal_group_port_interface) == {"SysSG_Engine": "PI_EngineStatus"}

    def test_signal_placement(self):
        assert dict(self.index.signal_pdu) == {
            "VehicleSpeed": "PDU_EngineData",
            "EngineState": "PDU_EngineData",
            "CoolantTemp": "PDU_EngineData",
            "BrakePressed": "PDU_BrakeStatus",
        }
        assert dict(self.index.signal_start_position) == {
            "VehicleSpeed": 7,
            "EngineState": 16,
            "CoolantTemp": 24,
            "BrakePressed": 0,
        }
        assert self.index.signal_byte_order["VehicleSpeed"] == "MOST-SIGNIFICANT-BYTE-FIRST"

    def test_can_frames(self):
        assert self.index.can_frames["BrakeStatus"] == CanFrameData(
            can_id=2024, can_id_hex="0x7E8", addressing_mode="STANDARD", frame_behavior="CAN-20"
        )
        assert self.index.can_frames["EngineData"].frame_behavior == "CAN-FD"

    def test_pdu_links(self):
        assert dict(self.index.pdu_frame) == {
            "PDU_EngineData": "EngineData",
            "PDU_BrakeStatus": "BrakeStatus",
        }
        assert dict(self.index.pdu_direction) == {
            "PDU_EngineData": Direction.TX,
            "PDU_BrakeStatus": Direction.RX,
        }

    def test_addressing_and_nm_tables(self):
        assert dict(self.index.pdu_addressing_format) == {
            "NPdu_Diag_Request": "STANDARD",
            "Diag_Request": "STANDARD",
        }
        assert dict(self.index.nm_pdu_cycle_time) == {"NM_EngineEcu": 500}

    def test_signal_triggers(self):
        assert self.index.signal_triggers["VehicleSpeed"] == SignalTrigger("Cyclic", 10)
        assert self.index.signal_triggers["BrakePressed"] == SignalTrigger("OnChange", None)

    def test_transmission_attributes_gid(self):
        """Test that admin data under another GID is ignored."""
        assert build_signal_triggers(self.root, "OtherAttributes") == {}

    def test_index_is_read_only(self):
        with pytest.raises(TypeError):
            self.index.scaling["CM_New"] = ScalingData()
        with pytest.raises(AttributeError):
            self.index.scaling = {}

    def test_negative_identifier_skipped(self):
        root = load_document(arxml(
            '<CAN-FRAME-TRIGGERING><SHORT-NAME>FT</SHORT-NAME>'
            '<FRAME-REF>/Frames/Negative</FRAME-REF><IDENTIFIER>-5</IDENTIFIER>'
            '</CAN-FRAME-TRIGGERING>'
        ))
        assert build_can_frames(root) == {}

    def test_duplicate_method_names_keep_last(self):
        """Test that a later COMPU-METHOD with the same name replaces the earlier one."""
        root = load_document(arxml(linear_method("CM", 0, 10) + linear_method("CM", 0, 20)))
        assert build_scaling_table(root)["CM"].max == "20"

    def test_non_numeric_identifier_skipped(self):
        """Test that a frame with a non-numeric identifier is not recorded."""
        root = load_document(arxml(
            '<CAN-FRAME-TRIGGERING><SHORT-NAME>FT</SHORT-NAME>'
            '<FRAME-REF>/Frames/Broken</FRAME-REF><IDENTIFIER>none</IDENTIFIER>'
            '</CAN-FRAME-TRIGGERING>'
        ))
        assert build_can_frames(root) == {}

    def test_frame_link_is_substring_match(self):
        """Test that the last frame whose triggering ref contains the name wins."""
        frame = (
            '<CAN-FRAME-TRIGGERING><SHORT-NAME>{0}</SHORT-NAME>'
            '<FRAME-REF>/Frames/{0}</FRAME-REF>'
            '<PDU-TRIGGERINGS><PDU-TRIGGERING-REF-CONDITIONAL>'
            '<PDU-TRIGGERING-REF>/Channel/{1}</PDU-TRIGGERING-REF>'
            '</PDU-TRIGGERING-REF-CONDITIONAL></PDU-TRIGGERINGS>'
            '<IDENTIFIER>1</IDENTIFIER></CAN-FRAME-TRIGGERING>'
        )
        root = load_document(arxml(
            '<PDU-TRIGGERING><SHORT-NAME>PT_A</SHORT-NAME><I-PDU-REF>/Pkg/PduA</I-PDU-REF></PDU-TRIGGERING>'
            + frame.format("FrameOne", "PT_A_Extended")
            + frame.format("FrameTwo", "PT_A")
            + frame.format("FrameThree", "PT_B")
        ))
        pdu_frame, pdu_direction = build_pdu_links(root, {})
        assert pdu_frame == {"PduA": "FrameTwo"}
        assert pdu_direction == {}


class TestSignalExtraction:
    """Test signal records extracted from the sample base extract."""

    def setup_method(self):
        self.document = parse((DATASETS / "base.arxml").read_bytes())
        self.signals = by_name(self.document.signals)

    def test_signal_via_system_signal(self):
        assert self.signals["VehicleSpeed"] == SignalRecord(
            name="VehicleSpeed",
            pdu_name="PDU_EngineData",
            start_position=7,
            length=16,
            byte_order=ByteOrder.BIG_ENDIAN,
            data_type="uint16",
            init_value="0",
            description="Vehicle speed over ground",
            min_value="0",
            max_value="65535",
            factor="0.01",
            offset="0",
            port_interface="PI_VehicleData",
        )

    def test_texttable_signal(self):
        signal = self.signals["EngineState"]
        assert (signal.min_value, signal.max_value) == ("0", "2")
        assert signal.factor is None
        assert signal.byte_order == ByteOrder.LITTLE_ENDIAN
        assert signal.port_interface is None

    def test_signal_via_network_representation(self):
        signal = self.signals["CoolantTemp"]
        assert (signal.min_value, signal.max_value) == ("0", "250")
        assert (signal.factor, signal.offset) == ("1", "-40")
        assert signal.init_value == "255"

    def test_unresolved_scaling_defaults(self):
        """Test the bounds of a signal without any COMPU-METHOD."""
        signal = self.signals["BrakePressed"]
        assert (signal.min_value, signal.max_value) == ("0", "0")
        assert signal.factor is None
        assert signal.offset is None
        assert signal.init_value == ""
        assert signal.data_type == "boolean"

    def test_system_signal_takes_precedence(self):
        """Test that the system signal method wins over a direct reference."""
        doc = parse(arxml(
            linear_method("CM_System", 0, 100)
            + linear_method("CM_Network", 0, 10)
            + '<SYSTEM-SIGNAL><SHORT-NAME>SysSig</SHORT-NAME><PHYSICAL-PROPS>'
            + compu_ref("CM_System")
            + '</PHYSICAL-PROPS></SYSTEM-SIGNAL>'
            + '<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME>'
            + '<NETWORK-REPRESENTATION-PROPS>' + compu_ref("CM_Network") + '</NETWORK-REPRESENTATION-PROPS>'
            + '<SYSTEM-SIGNAL-REF>/Pkg/SysSig</SYSTEM-SIGNAL-REF></I-SIGNAL>'
        ))
        assert doc.signals[0].max_value == "100"

    def test_unmapped_system_signal_falls_through(self):
        """Test that a system signal without a method defers to the signal's own reference."""
        doc = parse(arxml(
            linear_method("CM_Direct", 0, 42)
            + '<SYSTEM-SIGNAL><SHORT-NAME>SysSig</SHORT-NAME></SYSTEM-SIGNAL>'
            + '<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME>'
            + '<COMPU-METHOD-REF>/Pkg/CM_Direct</COMPU-METHOD-REF>'
            + '<SYSTEM-SIGNAL-REF>/Pkg/SysSig</SYSTEM-SIGNAL-REF></I-SIGNAL>'
        ))
        assert doc.signals[0].max_value == "42"

    def test_method_named_after_signal(self):
        """Test the last fallback: a COMPU-METHOD sharing the signal's name."""
        doc = parse(arxml(
            linear_method("Speed", 0, 300)
            + '<I-SIGNAL><SHORT-NAME>Speed</SHORT-NAME></I-SIGNAL>'
        ))
        assert doc.signals[0].max_value == "300"

    def test_byte_order_normalization(self):
        assert normalize_byte_order("MOST-SIGNIFICANT-BYTE-FIRST") == ByteOrder.BIG_ENDIAN
        assert normalize_byte_order("MOST-SIGNIFICANT-BYTE-LAST") == ByteOrder.LITTLE_ENDIAN
        assert normalize_byte_order("OPAQUE") == ByteOrder.LITTLE_ENDIAN
        assert normalize_byte_order(None) == ByteOrder.LITTLE_ENDIAN

    def test_unparseable_length(self):
        doc = parse(arxml('<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME><LENGTH>n/a</LENGTH></I-SIGNAL>'))
        assert doc.signals[0].length == 0


class TestMessageExtraction:
    """Test message records extracted from the sample base extract."""

    def setup_method(self):
        self.text = (DATASETS / "base.arxml").read_bytes()
        self.document = parse(self.text)
        self.messages = by_name(self.document.messages)

    def test_message_count_matches_pdu_elements(self):
        root = load_document(self.text)
        expected = sum(len(all_descendants(root, tag)) for tag in DEFAULT_PDU_TAGS)
        assert len(self.document.messages) == expected == 5

    def test_messages_ordered_by_tag(self):
        assert [m.name for m in self.document.messages] == [
            "PDU_EngineData", "PDU_BrakeStatus", "Diag_Request", "NM_EngineEcu", "NPdu_Diag_Request",
        ]

    def test_periodic_via_cyclic_signal(self):
        message = self.messages["PDU_EngineData"]
        assert message.type == MessageType.PERIODIC
        assert message.cycle_time == 10
        assert message.signals == ("VehicleSpeed", "EngineState", "CoolantTemp")
        assert message.frame_name == "EngineData"
        assert message.can_id_hex == "0x100"
        assert message.direction == Direction.TX
        assert message.description == "Engine data broadcast"

    def test_periodic_via_repeating_time(self):
        message = self.messages["PDU_BrakeStatus"]
        assert message.is_periodic
        assert message.cycle_time == 20
        assert (message.can_id, message.can_id_hex) == (2024, "0x7E8")
        assert message.can_addressing_mode == "STANDARD"
        assert message.direction == Direction.RX

    def test_periodic_via_nm_cluster(self):
        message = self.messages["NM_EngineEcu"]
        assert message.pdu_type == PduType.NM_PDU
        assert message.type == MessageType.PERIODIC
        assert message.cycle_time == 500

    def test_spontaneous_default(self):
        message = self.messages["Diag_Request"]
        assert message.type == MessageType.SPONTANEOUS
        assert message.cycle_time is None
        assert message.frame_name is None
        assert message.can_id is None
        assert message.addressing_format == "STANDARD"
        assert message.length == 8

    def test_cyclic_signal_precedes_repeating_time(self):
        """Test that a cyclic member signal wins over the PDU's own timing."""
        doc = parse(arxml(
            '<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME></I-SIGNAL>'
            '<I-SIGNAL-I-PDU><SHORT-NAME>Pdu</SHORT-NAME>'
            '<CYCLIC-TIMING><REPEATING-TIME><VALUE>0.1</VALUE></REPEATING-TIME></CYCLIC-TIMING>'
            '<I-SIGNAL-TO-I-PDU-MAPPING><SHORT-NAME>M</SHORT-NAME>'
            '<I-SIGNAL-REF>/Pkg/Sig</I-SIGNAL-REF></I-SIGNAL-TO-I-PDU-MAPPING>'
            '</I-SIGNAL-I-PDU>'
            + signal_triggering("Sig", "Cyclic", 20)
        ))
        assert doc.messages[0].cycle_time == 20

    def test_cyclic_signal_without_cycle_time(self):
        """Test that a cyclic launch type alone marks the PDU periodic."""
        doc = parse(arxml(
            '<I-SIGNAL><SHORT-NAME>Sig</SHORT-NAME></I-SIGNAL>'
            '<I-SIGNAL-I-PDU><SHORT-NAME>Pdu</SHORT-NAME>'
            '<I-SIGNAL-TO-I-PDU-MAPPING><SHORT-NAME>M</SHORT-NAME>'
            '<I-SIGNAL-REF>/Pkg/Sig</I-SIGNAL-REF></I-SIGNAL-TO-I-PDU-MAPPING>'
            '</I-SIGNAL-I-PDU>'
            + signal_triggering("Sig", "Cyclic")
        ))
        assert doc.messages[0].type == MessageType.PERIODIC
        assert doc.messages[0].cycle_time is None

    def test_configured_pdu_tags(self):
        """Test that only the configured PDU tags are extracted."""
        engine = ArxmlDiffEngine(EngineConfig(pdu_tags=("NM-PDU",)))
        document = engine.parse(self.text)
        assert [m.name for m in document.messages] == ["NM_EngineEcu"]


class TestGroupExtraction:

    def setup_method(self):
        self.document = parse((DATASETS / "base.arxml").read_bytes())

    def test_signal_groups(self):
        assert self.document.signal_groups == (
            SignalGroupRecord(
                name="SG_Engine",
                signals=("VehicleSpeed", "EngineState"),
                description="Engine status group",
                port_interface="PI_EngineStatus",
            ),
        )

    def test_message_groups(self):
        assert self.document.message_groups == (
            MessageGroupRecord(
                name="PG_EngineEcu_Tx",
                messages=("PDU_EngineData", "PDU_BrakeStatus"),
                description="Transmitted PDUs",
            ),
        )


class TestComparison:
    """Test the name-keyed structural diff."""

    def setup_method(self):
        self.base = parse((DATASETS / "base.arxml").read_bytes())
        self.new = parse((DATASETS / "new.arxml").read_bytes())

    def test_identical_documents(self):
        """Test that a document compared with itself has no differences."""
        result = compare(self.base, self.base)
        assert result.is_empty
        assert all(diff.is_empty for diff in result.by_kind().values())

    def test_added_and_deleted_are_mirrored(self):
        forward = compare(self.base, self.new)
        backward = compare(self.new, self.base)
        for kind in KINDS:
            assert [r.name for r in forward.added[kind]] == [r.name for r in backward.deleted[kind]]
            assert [r.name for r in forward.deleted[kind]] == [r.name for r in backward.added[kind]]

    def test_signal_changes(self):
        result = compare(self.base, self.new)
        assert [s.name for s in result.signals.added] == ["BrakePedalPosition"]
        assert [s.name for s in result.signals.deleted] == ["BrakePressed"]
        assert [(m.name, m.changed_fields) for m in result.signals.modified] == [
            ("CoolantTemp", ("description",)),
        ]

    def test_message_changes(self):
        result = compare(self.base, self.new)
        assert [m.name for m in result.messages.added] == ["Diag_Response"]
        assert [m.name for m in result.messages.deleted] == ["NPdu_Diag_Request"]
        assert len(result.messages.modified) == 1

        entry = result.messages.modified[0]
        assert entry.name == "PDU_BrakeStatus"
        assert entry.changed_fields == ("canIdHex", "canId", "cycleTime")
        assert (entry.old.cycle_time, entry.new.cycle_time) == (20, 50)
        assert entry.new.can_id_hex == "0x7E9"

    def test_group_membership_changes(self):
        """Test that member lists are compared in order."""
        result = compare(self.base, self.new)
        assert [(m.name, m.changed_fields) for m in result.signal_groups.modified] == [
            ("SG_Engine", ("signals",)),
        ]
        assert [(m.name, m.changed_fields) for m in result.message_groups.modified] == [
            ("PG_EngineEcu_Tx", ("messages",)),
        ]

    def test_description_only_change(self):
        """Test that the old and new records are carried verbatim."""
        old = SignalRecord(name="Speed", description="Vehicle speed")
        new = SignalRecord(name="Speed", description="Vehicle speed (km/h)")

        result = compare(ParsedDocument(signals=(old,)), ParsedDocument(signals=(new,)))
        assert len(result.signals.modified) == 1
        entry = result.signals.modified[0]
        assert entry.changed_fields == ("description",)
        assert entry.old is old
        assert entry.new is new

    def test_empty_documents(self):
        assert compare(ParsedDocument(), ParsedDocument()).is_empty

    def test_repeated_names_resolve_to_last_record(self):
        """Test that a repeated name is represented by its last record."""
        base = ParsedDocument(signals=(SignalRecord(name="Speed", description="km/h"),))
        same_last = ParsedDocument(signals=(
            SignalRecord(name="Speed", description="mph"),
            SignalRecord(name="Speed", description="km/h"),
        ))
        assert compare(base, same_last).is_empty

        changed_last = ParsedDocument(signals=(
            SignalRecord(name="Speed", description="km/h"),
            SignalRecord(name="Speed", description="m/s"),
        ))
        result = compare(base, changed_last)
        assert result.signals.added == ()
        assert len(result.signals.modified) == 1
        assert result.signals.modified[0].new is changed_last.signals[1]

    def test_scaling_coefficients_not_compared(self):
        """Test that factor, offset and port interface never mark a signal modified."""
        old = SignalRecord(name="Speed", factor="1", offset="0", port_interface="PI_A")
        new = SignalRecord(name="Speed", factor="0.5", offset="10", port_interface="PI_B")

        result = compare(ParsedDocument(signals=(old,)), ParsedDocument(signals=(new,)))
        assert result.is_empty

    def test_result_serialization(self):
        data = compare(self.base, self.new).to_dict()
        assert set(data) == {"added", "deleted", "modified"}
        assert set(data["modified"]) == set(KINDS)
        assert data["modified"]["signals"][0]["changedFields"] == ["description"]
        assert data["added"]["signals"][0]["byteOrder"] == "LittleEndian"


class TestEngine:
    """Test the engine report wrapper."""

    def setup_method(self):
        self.engine = ArxmlDiffEngine()
        self.base_text = (DATASETS / "base.arxml").read_bytes()
        self.new_text = (DATASETS / "new.arxml").read_bytes()

    def test_matching_report(self):
        report = self.engine.compare_texts(self.base_text, self.base_text)
        assert report.is_match is True
        assert report.execution.engine_version == ArxmlDiffEngine.VERSION

    def test_summary_statistics(self):
        report = self.engine.compare_texts(self.base_text, self.new_text)
        assert report.is_match is False
        assert report.summary.base_counts == {
            "messages": 5, "signals": 4, "signalGroups": 1, "messageGroups": 1,
        }
        assert report.summary.changes["messages"] == {"added": 1, "deleted": 1, "modified": 1}
        assert (report.summary.added_total, report.summary.deleted_total, report.summary.modified_total) == (2, 2, 4)

    def test_statistics_disabled(self):
        engine = ArxmlDiffEngine(EngineConfig(collect_statistics=False))
        report = engine.compare_texts(self.base_text, self.new_text)
        assert report.summary is None
        assert "summary" not in report.to_dict()

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError):
            self.engine.compare_texts(self.base_text, b"<AUTOSAR>")


class TestEngineConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = EngineConfig.from_dict(None)
        assert config.pdu_tags == DEFAULT_PDU_TAGS
        assert config.transmission_attributes_gid == "XDISTransmissionAttributes"
        assert config.log_level == LogLevel.INFO

    def test_from_dict(self):
        config = EngineConfig.from_dict({
            "pdu_tags": ["I-SIGNAL-I-PDU", "NM-PDU"],
            "collect_statistics": False,
            "log_level": "warn",
        })
        assert config.pdu_tags == ("I-SIGNAL-I-PDU", "NM-PDU")
        assert config.collect_statistics is False
        assert config.log_level == LogLevel.WARN

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as exc_info:
            EngineConfig.from_dict({"fail_fast": True})
        assert exc_info.value.details == {"keys": ["fail_fast"]}

    def test_unsupported_pdu_tag(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"pdu_tags": ["FLEXRAY-FRAME"]})

    def test_empty_pdu_tags(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"pdu_tags": []})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"log_level": "TRACE"})

    def test_non_mapping(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict(["pdu_tags"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
