"""
Main VM Translator.

Coordinates input resolution, parsing and code generation.
"""

import io
import sys
from typing import List, Optional, Tuple
from pathlib import Path

from .parser import parse_file, Parser
from .parser.parser import SYMBOL_RE
from .parser.opcodes import OpCode
from .codegen import CodeWriter

VM_SUFFIX = ".vm"
ASM_SUFFIX = ".asm"


class VMTranslator:
    """Main VM translator class."""

    def __init__(self, bootstrap: Optional[bool] = None, verbose: bool = False):
        # None: bootstrap directories, not single files
        self.bootstrap = bootstrap
        self.verbose = verbose

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[vmtrans] {message}", file=sys.stderr)

    def resolve_units(self, input_path) -> List[Path]:
        """
        Resolve a .vm file or a directory into the ordered list of units.

        Args:
            input_path: Path to a .vm file or a directory containing .vm files

        Returns:
            List of .vm file paths, sorted by name for directories
        """
        path = Path(input_path)

        if path.is_dir():
            units = sorted(p for p in path.iterdir()
                           if p.is_file() and p.suffix == VM_SUFFIX)
            if not units:
                raise FileNotFoundError(f"No {VM_SUFFIX} files in directory: {path}")
        else:
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")
            if path.suffix != VM_SUFFIX:
                raise ValueError(f"Expected a {VM_SUFFIX} file, got: {path}")
            units = [path]

        # The unit name qualifies statics, so it must be an assembler symbol
        for unit in units:
            if not SYMBOL_RE.match(unit.stem):
                raise ValueError(f"Unit name is not a valid symbol: {unit}")
        return units

    def default_output_path(self, input_path) -> Path:
        """X.vm -> X.asm; directory D -> D/D.asm"""
        path = Path(input_path)
        if path.is_dir():
            return path / f"{path.resolve().name}{ASM_SUFFIX}"
        return path.with_suffix(ASM_SUFFIX)

    def wants_bootstrap(self, input_path) -> bool:
        if self.bootstrap is not None:
            return self.bootstrap
        return Path(input_path).is_dir()

    def translate_units(self, units: List[Tuple[str, List[OpCode]]], output,
                        bootstrap: bool = False) -> CodeWriter:
        """
        Feed every unit's opcodes, in order, through one code writer.

        Args:
            units: (unit name, opcodes) pairs
            output: Text stream receiving the assembly
            bootstrap: Emit the bootstrap code first

        Returns:
            The code writer, not yet flushed
        """
        writer = CodeWriter(output, bootstrap=bootstrap, verbose=self.verbose)

        for unit_name, opcodes in units:
            writer.set_unit(unit_name)
            for opcode in opcodes:
                writer.write_command(opcode)

        self.log(f"Generated {writer.lines_written} instructions")
        return writer

    def translate_string(self, source: str, unit_name: str = "Main",
                         bootstrap: bool = False) -> str:
        """Translate VM source text held in memory and return the assembly."""
        opcodes = Parser(source, f"{unit_name}{VM_SUFFIX}").parse()
        output = io.StringIO()
        self.translate_units([(unit_name, opcodes)], output, bootstrap=bootstrap)
        return output.getvalue()

    def translate(self, input_path: str, output_path: Optional[str] = None) -> bool:
        """
        Translate a .vm file or a directory of .vm files to one .asm file.

        Args:
            input_path: Path to a .vm file or a directory
            output_path: Path to the .asm file (derived from the input if None)

        Returns:
            True if translation succeeded, False otherwise
        """
        try:
            if output_path is None:
                output_path = self.default_output_path(input_path)

            # Parse everything before the output file is created
            units = []
            for unit_path in self.resolve_units(input_path):
                self.log(f"Reading {unit_path}...")
                units.append((unit_path.stem, parse_file(unit_path)))

            self.log(f"Writing {output_path}...")
            with open(output_path, 'w', encoding='utf-8') as f:
                writer = self.translate_units(units, f,
                                              bootstrap=self.wants_bootstrap(input_path))
                writer.flush()

            self.log(f"Translation successful: {len(units)} unit(s)")
            return True

        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return False
        except SyntaxError as e:
            print(f"Syntax error: {e}", file=sys.stderr)
            return False
        except (ValueError, OSError) as e:
            print(f"Translation error: {e}", file=sys.stderr)
            if self.verbose:
                import traceback
                traceback.print_exc()
            return False


def main():
    """Command-line interface for the translator."""
    import argparse

    parser = argparse.ArgumentParser(
        description='VM Translator - Translate VM code to Hack assembly'
    )
    parser.add_argument('input', help='Input .vm file or directory of .vm files')
    parser.add_argument('-o', '--output', help='Output .asm file (default: beside the input)')
    parser.add_argument('-b', '--bootstrap', action='store_true',
                        help='Emit bootstrap code (default for directory input)')
    parser.add_argument('--no-bootstrap', dest='bootstrap', action='store_false',
                        help='Do not emit bootstrap code')
    parser.set_defaults(bootstrap=None)
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    translator = VMTranslator(bootstrap=args.bootstrap, verbose=args.verbose)
    success = translator.translate(args.input, args.output)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
