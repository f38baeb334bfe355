#!/usr/bin/env python
"""Compare two ARXML ECU extracts from the command line."""

import argparse
import json
import logging
import sys

from arxmldiff import ArxmlDiffError, ArxmlDiffRunner, export_workbook, select

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Compare two AUTOSAR ECU extracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_compare.py base.arxml new.arxml
  python run_compare.py base.arxml new.arxml -r report.json -c config.yaml
  python run_compare.py base.arxml new.arxml --select '$.modified.messages[*].new.name'
  python run_compare.py base.arxml new.arxml -x new_parsed.xlsx
        """
    )

    parser.add_argument("base", help="Path to the baseline ARXML file")
    parser.add_argument("new", help="Path to the ARXML file to check")
    parser.add_argument("-r", "--report", help="Path to output JSON report file")
    parser.add_argument("-c", "--config", help="Path to YAML/JSON config file")
    parser.add_argument("-x", "--export", help="Write the parsed new document to an .xlsx file")
    parser.add_argument("-s", "--select", help="JSONPath expression to print from the report")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console output")

    args = parser.parse_args(argv)

    runner = ArxmlDiffRunner(args.base, args.new, config_path=args.config)

    try:
        level = LOG_LEVELS[runner.engine_config.log_level.value]
        logging.basicConfig(
            level=logging.WARNING if args.quiet else level,
            format="%(levelname)s: %(message)s"
        )

        if not args.quiet:
            print(f"Base: {args.base}")
            print(f"New: {args.new}")

        report = runner.run(print_report=not args.quiet)

        if args.report:
            runner.write_report(report, args.report)
            if not args.quiet:
                print(f"\nReport saved to: {args.report}")

        if args.export:
            export_workbook(runner.new_document, args.export)
            if not args.quiet:
                print(f"Parsed document exported to: {args.export}")

        if args.select:
            for value in select(report.to_dict(), args.select):
                print(json.dumps(value))

    except (ArxmlDiffError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Return exit code
    return 0 if report.is_match else 1


if __name__ == "__main__":
    sys.exit(main())
