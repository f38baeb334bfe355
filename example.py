"""Example usage of the arxmldiff extraction and comparison engine."""

import json
from arxmldiff import ArxmlDiffEngine, EngineConfig, select

# Baseline ECU extract
base_arxml = """<?xml version="1.0" encoding="UTF-8"?>
<AUTOSAR xmlns="http://autosar.org/schema/r4.0">
  <AR-PACKAGES>
    <AR-PACKAGE>
      <SHORT-NAME>Demo</SHORT-NAME>
      <ELEMENTS>
        <COMPU-METHOD>
          <SHORT-NAME>CM_Rpm</SHORT-NAME>
          <CATEGORY>LINEAR</CATEGORY>
          <COMPU-INTERNAL-TO-PHYS>
            <COMPU-SCALES>
              <COMPU-SCALE>
                <LOWER-LIMIT>0</LOWER-LIMIT>
                <UPPER-LIMIT>16000</UPPER-LIMIT>
                <COMPU-RATIONAL-COEFFS>
                  <COMPU-NUMERATOR><V>0</V><V>0.25</V></COMPU-NUMERATOR>
                  <COMPU-DENOMINATOR><V>1</V></COMPU-DENOMINATOR>
                </COMPU-RATIONAL-COEFFS>
              </COMPU-SCALE>
            </COMPU-SCALES>
          </COMPU-INTERNAL-TO-PHYS>
        </COMPU-METHOD>
        <I-SIGNAL>
          <SHORT-NAME>EngineRpm</SHORT-NAME>
          <DESC><L-2 L="EN">Engine speed</L-2></DESC>
          <LENGTH>16</LENGTH>
          <COMPU-METHOD-REF DEST="COMPU-METHOD">/Demo/CM_Rpm</COMPU-METHOD-REF>
        </I-SIGNAL>
        <I-SIGNAL-I-PDU>
          <SHORT-NAME>PDU_Engine</SHORT-NAME>
          <LENGTH>8</LENGTH>
          <CYCLIC-TIMING>
            <REPEATING-TIME><VALUE>0.01</VALUE></REPEATING-TIME>
          </CYCLIC-TIMING>
          <I-SIGNAL-TO-PDU-MAPPINGS>
            <I-SIGNAL-TO-I-PDU-MAPPING>
              <SHORT-NAME>EngineRpm_Mapping</SHORT-NAME>
              <I-SIGNAL-REF DEST="I-SIGNAL">/Demo/EngineRpm</I-SIGNAL-REF>
              <PACKING-BYTE-ORDER>MOST-SIGNIFICANT-BYTE-FIRST</PACKING-BYTE-ORDER>
              <START-POSITION>7</START-POSITION>
            </I-SIGNAL-TO-I-PDU-MAPPING>
          </I-SIGNAL-TO-PDU-MAPPINGS>
        </I-SIGNAL-I-PDU>
      </ELEMENTS>
    </AR-PACKAGE>
  </AR-PACKAGES>
</AUTOSAR>
"""

# New ECU extract: faster cycle, reworded description
new_arxml = (
    base_arxml
    .replace("<VALUE>0.01</VALUE>", "<VALUE>0.005</VALUE>")
    .replace("Engine speed", "Engine crankshaft speed")
)


def main():
    print("=" * 60)
    print("arxmldiff ECU Extract Comparison - Example")
    print("=" * 60)

    # Create engine with default config
    engine = ArxmlDiffEngine()

    base = engine.parse(base_arxml)
    print(f"\nParsed: {base.counts()}")
    for signal in base.signals:
        print(f"  {signal.name}: [{signal.min_value}, {signal.max_value}] "
              f"factor={signal.factor} {signal.byte_order.value}")
    for message in base.messages:
        print(f"  {message.name}: {message.type.value} {message.cycle_time}ms")

    report = engine.compare(base, engine.parse(new_arxml))

    print(f"\nMatch: {report.is_match}")
    print(f"\nExecution:")
    print(f"  Duration: {report.execution.duration_ms}ms")
    print(f"  Engine Version: {report.execution.engine_version}")

    print(f"\nSummary:")
    print(f"  Added: {report.summary.added_total}")
    print(f"  Deleted: {report.summary.deleted_total}")
    print(f"  Modified: {report.summary.modified_total}")

    for kind, diff in report.result.by_kind().items():
        for entry in diff.modified:
            print(f"\n  [{kind}] {entry.name}")
            for field_name in entry.changed_fields:
                print(f"    {field_name}: {entry.old.to_dict()[field_name]!r} -> "
                      f"{entry.new.to_dict()[field_name]!r}")

    print("\n" + "-" * 60)
    print("Full JSON Report:")
    print(json.dumps(report.to_dict(), indent=2))


def example_with_select():
    """Pull individual values out of a report with JSONPath."""
    print("\n" + "=" * 60)
    print("Example with JSONPath Selection")
    print("=" * 60)

    config = EngineConfig(collect_statistics=False)
    engine = ArxmlDiffEngine(config)
    report = engine.compare_texts(base_arxml, new_arxml)

    for path in ("$.modified.messages[*].new.cycleTime", "$.modified.signals[*].changedFields"):
        print(f"\n{path}")
        print(f"  {select(report.to_dict(), path)}")


if __name__ == "__main__":
    main()
    example_with_select()
