#!/usr/bin/env python3
"""
Export or import entire container files.

Usage:
    # Export every section to a directory (one file per tag)
    python scripts/pack_io.py export assets.pack output_dir/

    # Create a container from a directory (file names become tags)
    python scripts/pack_io.py import entries_dir/ assets.pack
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from tag_pack import PackManager


def export_pack(input_path: Path, output_dir: Path) -> int:
    manager = PackManager()
    manager.load(input_path)

    exported = manager.export_all(output_dir)
    print(f"Exported {exported} sections to {output_dir}/")

    return exported


def create_pack(input_dir: Path, output_file: Path) -> int:
    manager = PackManager()
    manager.file_path = output_file

    count = manager.import_all(input_dir)

    if count == 0:
        print("Warning: No files found in directory")
        return 0

    print(f"Created {output_file.name} with {count} sections")
    return count


def main():
    parser = argparse.ArgumentParser(description="Export or import entire container files.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser(
        "export", help="Export all sections to directory"
    )
    export_parser.add_argument("input", help="Input container file")
    export_parser.add_argument("output", help="Output directory")

    import_parser = subparsers.add_parser(
        "import", help="Create container from directory"
    )
    import_parser.add_argument("input_dir", help="Input directory with files to pack")
    import_parser.add_argument("output_file", help="Output container file")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        if args.command == "export":
            input_path = Path(args.input)
            if not input_path.exists():
                print(f"Error: Input file not found: {input_path}")
                sys.exit(1)

            export_pack(input_path, Path(args.output))

        elif args.command == "import":
            input_dir = Path(args.input_dir)
            if not input_dir.exists():
                print(f"Error: Input directory not found: {input_dir}")
                sys.exit(1)

            create_pack(input_dir, Path(args.output_file))

    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
