#!/usr/bin/env python3
"""
Manage sections in a container file (add/remove/list).

Usage:
    # Append a file as a new section (tag defaults to the file name)
    python scripts/manage_entry.py add assets.pack newfile.bin

    # Append with an explicit tag
    python scripts/manage_entry.py add assets.pack newfile.bin -t textures

    # Remove a section by tag
    python scripts/manage_entry.py remove assets.pack textures

    # Save to a different file
    python scripts/manage_entry.py add assets.pack newfile.bin -o modified.pack

    # List sections
    python scripts/manage_entry.py list assets.pack
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))
from tag_pack import PackManager, format_size
from tag_pack.manager import tag_to_filename


def _target(pack_file: Path, output_path: Optional[Path]) -> Path:
    if output_path is not None and output_path != pack_file:
        shutil.copyfile(pack_file, output_path)
        return output_path
    return pack_file


def add_file(
    pack_file: Path,
    input_path: Path,
    tag: Optional[str] = None,
    output_path: Optional[Path] = None,
) -> bytes:
    target = _target(pack_file, output_path)

    manager = PackManager()
    manager.load(target)

    key = manager.add_file(input_path, tag)
    print(f"Added {input_path.name} as section {tag_to_filename(key)}, saved to {target.name}")

    return key


def remove_file(
    pack_file: Path,
    tag: str,
    output_path: Optional[Path] = None,
) -> None:
    target = _target(pack_file, output_path)

    manager = PackManager()
    manager.load(target)

    manager.remove_section(tag)
    print(f"Removed section {tag}, saved to {target.name}")


def list_sections(pack_file: Path) -> List[str]:
    manager = PackManager()
    manager.load(pack_file)

    lines = []
    for entry in manager.entries():
        file_type, size = manager.get_entry_info(entry.tag)
        lines.append(
            f"{tag_to_filename(entry.tag):<32} {entry.offset:>10} "
            f"{format_size(size):>10}  {file_type}"
        )

    for line in lines:
        print(line)
    print(f"{len(lines)} sections, {format_size(manager.get_size())}, md5 {manager.get_checksum()}")

    return lines


def main():
    parser = argparse.ArgumentParser(description="Manage sections in a container file.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Append a file as a section")
    add_parser.add_argument("pack_file", help="Container file")
    add_parser.add_argument("input", help="File to add")
    add_parser.add_argument("--tag", "-t", help="Section tag (default: file name)")
    add_parser.add_argument(
        "--output", "-o", help="Output file (defaults to overwriting input container)"
    )

    remove_parser = subparsers.add_parser("remove", help="Remove a section")
    remove_parser.add_argument("pack_file", help="Container file")
    remove_parser.add_argument("tag", help="Tag of section to remove")
    remove_parser.add_argument(
        "--output", "-o", help="Output file (defaults to overwriting input container)"
    )

    list_parser = subparsers.add_parser("list", help="List sections")
    list_parser.add_argument("pack_file", help="Container file")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    pack_file = Path(args.pack_file)
    if not pack_file.exists():
        print(f"Error: Container file not found: {pack_file}")
        sys.exit(1)

    try:
        if args.command == "add":
            input_path = Path(args.input)
            if not input_path.exists():
                print(f"Error: Input file not found: {input_path}")
                sys.exit(1)
            output_path = Path(args.output) if args.output else None
            add_file(pack_file, input_path, args.tag, output_path)

        elif args.command == "remove":
            output_path = Path(args.output) if args.output else None
            remove_file(pack_file, args.tag, output_path)

        elif args.command == "list":
            list_sections(pack_file)

    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
