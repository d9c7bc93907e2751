#!/usr/bin/env python3
"""
Export or import a single section from/to a container file.

Usage:
    # Export one section
    python scripts/entry_io.py export assets.pack meta meta.json

    # Export into a directory (file named after the tag)
    python scripts/entry_io.py export assets.pack meta out/

    # Replace a section's contents (overwrites container)
    python scripts/entry_io.py import assets.pack meta new_meta.json

    # Replace a section, saving to a separate file
    python scripts/entry_io.py import assets.pack meta new_meta.json -o new.pack
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent))
from tag_pack import PackManager, SectionNotFound


def export_entry(pack_file: Path, tag: str, output_path: Path) -> Path:
    manager = PackManager()
    manager.load(pack_file)

    if not manager.has_section(tag):
        raise SectionNotFound(tag)

    written = manager.export_section(tag, output_path)
    print(f"Exported section {tag} to {written.name}")
    return written


def import_entry(
    pack_file: Path,
    tag: str,
    input_path: Path,
    output_path: Optional[Path] = None,
) -> str:
    if output_path is not None and output_path != pack_file:
        shutil.copyfile(pack_file, output_path)
    else:
        output_path = pack_file

    manager = PackManager()
    manager.load(output_path)

    file_type = manager.import_entry(tag, input_path)
    print(
        f"Imported {input_path.name} to section {tag} ({file_type}), "
        f"saved to {output_path.name}"
    )
    return file_type


def main():
    parser = argparse.ArgumentParser(
        description="Export or import a single section from/to a container file."
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Export a single section")
    export_parser.add_argument("pack_file", help="Container file")
    export_parser.add_argument("tag", help="Section tag to export")
    export_parser.add_argument("output", help="Output file or directory")

    import_parser = subparsers.add_parser("import", help="Replace a single section")
    import_parser.add_argument("pack_file", help="Container file")
    import_parser.add_argument("tag", help="Section tag to replace")
    import_parser.add_argument("input", help="Input file to import")
    import_parser.add_argument(
        "--output",
        "-o",
        help="Output file (defaults to overwriting input container)",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    pack_file = Path(args.pack_file)
    if not pack_file.exists():
        print(f"Error: Container file not found: {pack_file}")
        sys.exit(1)

    try:
        if args.command == "export":
            export_entry(pack_file, args.tag, Path(args.output))

        elif args.command == "import":
            input_path = Path(args.input)
            if not input_path.exists():
                print(f"Error: Input file not found: {input_path}")
                sys.exit(1)

            output_path = Path(args.output) if args.output else None
            import_entry(pack_file, args.tag, input_path, output_path)

    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
