"""CLI entry point: run `sharpjava File.cs` or `python -m sharpjava File.cs`."""

import logging
import sys
from pathlib import Path
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    from .compiler.driver import TranspilerDriver
    from .ir.dump import dump_ir
    from .ir.serialization import serialize_ir
    from .utils.io_utils import write_output_file

    parser = argparse.ArgumentParser(prog="sharpjava", description="Transpile a C# (.cs) file to Java.")
    parser.add_argument("file", type=Path, help="Path to .cs source file (or .sexpr IR with --from-ir)")
    parser.add_argument("-o", "--output", help="Output path; '-' writes to stdout (default: input name with .java)")
    parser.add_argument("--from-ir", action="store_true", help="Input is serialized IR, not C#")
    parser.add_argument("--no-fold", action="store_true", help="Skip constant folding")
    parser.add_argument("--emit-ir", action="store_true", help="Print the final IR as an S-expression on stdout")
    parser.add_argument("--dump-ir", action="store_true", help="Print the final IR as an indented tree on stdout")
    parser.add_argument("--lenient", action="store_true",
                        help="Emit placeholders for unsupported constructs instead of failing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = args.file
    if not path.exists():
        sys.stderr.write(f"sharpjava: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"sharpjava: error: not a file: {path}\n")
        return 1

    driver = TranspilerDriver(optimize=not args.no_fold, strict=not args.lenient)
    try:
        result = driver.compile_path(path, from_ir=args.from_ir)
    except (OSError, UnicodeDecodeError) as e:
        sys.stderr.write(f"sharpjava: error: could not read file: {e}\n")
        return 1

    result.ctx.reporter.print_diagnostics()
    if not result.success:
        return 1

    if args.emit_ir:
        sys.stdout.write(serialize_ir(result.ir) + "\n")
    if args.dump_ir:
        sys.stdout.write(dump_ir(result.ir) + "\n")

    if args.output == "-":
        sys.stdout.write(result.output)
        return 0

    target = Path(args.output) if args.output else driver.backend.output_path(path)
    try:
        write_output_file(target, result.output)
    except OSError as e:
        sys.stderr.write(f"sharpjava: error: could not write {target}: {e}\n")
        return 1
    logging.getLogger("sharpjava").info("wrote %s", target)
    return 0


if __name__ == "__main__":
    sys.exit(main())
