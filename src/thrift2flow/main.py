from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List

from thrift2flow.generator.flow_generator import ThriftFileConverter
from thrift2flow.generator.formatter import FormatterError, format_source, identity_formatter
from thrift2flow.parser.thrift_ast import ThriftFile
from thrift2flow.parser.thrift_ast_parser import ThriftParseError
from thrift2flow.parser.thrift_loader import ThriftIncludeError, load_thrift


def _find_thrift_files(paths: List[str]) -> List[str]:
    """Expand directories into the .thrift files found under them, recursively."""
    results: List[str] = []
    for p in paths:
        if os.path.isdir(p):
            results.extend(sorted(str(f) for f in Path(p).rglob("*.thrift")))
        else:
            results.append(p)
    return results


def suffix_transform(suffix: str) -> Callable[[str], str]:
    if not suffix:
        return lambda name: name
    return lambda name: f"{name}{suffix}"


def output_path(thrift_path: str, root: str, out_dir: str, extension: str) -> str:
    """Mirror thrift_path's location under root into out_dir, swapping the extension."""
    rel = os.path.relpath(thrift_path, root)
    return os.path.join(out_dir, os.path.splitext(rel)[0] + extension)


def run(
    thrift_paths: List[str],
    out_dir: str,
    suffix: str = "",
    withsource: bool = False,
    use_formatter: bool = True,
    extension: str = ".js",
) -> int:
    """Main pipeline: load, convert, write. Returns the process exit status."""
    # 1. Find input files
    inputs = _find_thrift_files(thrift_paths)
    if not inputs:
        print(f"No .thrift files found under {', '.join(thrift_paths)}")
        return 1

    # 2. Parse entry points and everything they include
    failures = 0
    files: Dict[str, ThriftFile] = {}
    for entry in inputs:
        try:
            program = load_thrift(entry)
        except (ThriftParseError, ThriftIncludeError, OSError) as e:
            print(f"FATAL: {entry}: {e}", file=sys.stderr)
            failures += 1
            continue
        for path, thrift_file in program.idls.items():
            files.setdefault(path, thrift_file)
        print(f"  Parsed {entry}: {len(program.idls)} file(s)")

    if not files:
        return 1

    # 3. Convert each file; outputs keep the layout of their common root so
    # generated relative imports line up.
    root = os.path.commonpath([os.path.dirname(p) for p in files])
    transform_name = suffix_transform(suffix)
    formatter = format_source if use_formatter else identity_formatter

    for path in sorted(files):
        converter = ThriftFileConverter(
            files[path],
            transform_name=transform_name,
            withsource=withsource,
            formatter=formatter,
        )
        try:
            source = converter.generate_flow_file()
        except FormatterError as e:
            print(f"FATAL: {e}", file=sys.stderr)
            failures += 1
            continue

        target = output_path(path, root, out_dir, extension)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        Path(target).write_text(source, encoding="utf-8")
        print(f"  Generated: {target}")

    if failures:
        print(f"{failures} file(s) failed", file=sys.stderr)
        return 1
    print("Done!")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Generate Flow type declarations from Thrift IDL files",
    )
    parser.add_argument(
        "thrift",
        nargs="+",
        help="Thrift files, or directories to search recursively for .thrift files",
    )
    parser.add_argument(
        "-o",
        "--out",
        default="flow-types",
        help="Output directory for generated files (default: flow-types)",
    )
    parser.add_argument(
        "-s",
        "--suffix",
        default="",
        help="Suffix appended to every generated type name",
    )
    parser.add_argument(
        "--withsource",
        action="store_true",
        help="Add a comment naming the source .thrift file to each output",
    )
    parser.add_argument(
        "--no-format",
        action="store_true",
        help="Write generated code as-is instead of running it through prettier",
    )
    parser.add_argument(
        "--extension",
        default=".js",
        help="Extension for generated files (default: .js)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress details")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(
        run(
            args.thrift,
            args.out,
            suffix=args.suffix,
            withsource=args.withsource,
            use_formatter=not args.no_format,
            extension=args.extension,
        )
    )


if __name__ == "__main__":
    main()
