#!/usr/bin/env python3
"""
Command-line converter: calibration certificate XML to DCC-JSON and DCC XML.

    dcc-convert --profile profiles/vendor.json --xml cert1.xml cert2.xml --out-dir out/
    dcc-convert --profile-dir profiles/ --xml certs/*.xml --json-only
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .domain.dcc_xml import generate_dcc_xml
from .domain.mapping import SourceXmlParseError, convert_xml_to_dcc_json, detect_profile
from .profiles import MappingProfileError, load_profile, load_profiles_from_dir

logger = logging.getLogger(__name__)


def convert_file(xml_path: Path, profile, out_dir: Path, json_only: bool = False) -> list[str]:
    """Convert one file and write <stem>.dcc.json (and <stem>.dcc.xml).

    Returns:
        Generator warnings (empty with json_only)
    """
    dcc_json = convert_xml_to_dcc_json(xml_path.read_bytes(), profile)

    json_path = out_dir / f"{xml_path.stem}.dcc.json"
    json_path.write_text(json.dumps(dcc_json, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"OK: wrote {json_path}")  # noqa: T201

    if json_only:
        return []

    xml_text, warnings = generate_dcc_xml(dcc_json)
    xml_out = out_dir / f"{xml_path.stem}.dcc.xml"
    xml_out.write_text(xml_text, encoding="utf-8")
    print(f"OK: wrote {xml_out}")  # noqa: T201
    return warnings


def main(argv=None) -> int:
    """Command-line interface for the DCC converter."""
    parser = argparse.ArgumentParser(
        description="Convert calibration certificate XML to DCC-JSON and DCC XML using a mapping profile"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--profile", help="Mapping profile (JSON or YAML)")
    source.add_argument("--profile-dir", help="Directory of profiles; the profile is detected per file")
    parser.add_argument("--xml", nargs="+", required=True, help="One or more XML files to convert")
    parser.add_argument("--out-dir", default=".", help="Output directory (default: current directory)")
    parser.add_argument("--json-only", action="store_true", help="Write DCC-JSON only, skip DCC XML")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.profile:
            report = load_profile(args.profile)
            for skipped in report.skipped:
                print(f"WARN: skipped rule #{skipped.index} ({skipped.target}): {skipped.error}")  # noqa: T201
            candidates = [report.profile]
        else:
            candidates = [report.profile for _, report in load_profiles_from_dir(args.profile_dir)]
    except (MappingProfileError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)  # noqa: T201
        return 2

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    failures = 0
    for xml_file in args.xml:
        xml_path = Path(xml_file)
        try:
            if args.profile:
                profile = candidates[0]
            else:
                profile = detect_profile(xml_path.read_bytes(), candidates)
                if profile is None:
                    print(f"ERROR: {xml_path.name}: no profile matches this document", file=sys.stderr)  # noqa: T201
                    failures += 1
                    continue

            warnings = convert_file(xml_path, profile, out_dir, args.json_only)
        except (SourceXmlParseError, OSError) as e:
            print(f"ERROR: {xml_path.name}: {e}", file=sys.stderr)  # noqa: T201
            failures += 1
            continue

        for warning in warnings:
            print(f"WARN: {xml_path.name}: {warning}")  # noqa: T201

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
