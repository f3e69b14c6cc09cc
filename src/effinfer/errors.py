from dataclasses import dataclass, field
from typing import List, Optional, Any
from pathlib import Path

@dataclass
class SourceLocation:
    """Location in source code"""
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

@dataclass
class CompileError(Exception):
    """Diagnostic with source location and context"""
    message: str
    error_type: str = "EffectError"  # "EffectError" or "AnnotationError"
    location: Optional[SourceLocation] = None
    node: Optional[Any] = None  # offending tree if available
    context: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        parts = []

        loc = str(self.location) if self.location else "unknown location"
        parts.append(f"{self.error_type} at {loc}: {self.message}")

        if self.context:
            parts.append("\nContext:")
            parts.append(self.context)
            if self.location and self.location.column:
                parts.append(" " * (self.location.column - 1) + "^")

        if self.notes:
            parts.append("\nNotes:")
            parts.extend(f"  - {note}" for note in self.notes)

        return "\n".join(parts)


def mismatch_message(expected: Any, found: Any, details: Optional[str] = None) -> str:
    msg = f"effect type mismatch;\n found   : {found}\n required: {expected}"
    if details:
        msg += "\n" + details
    return msg


def effect_mismatch(expected: Any, found: Any, tree: Any, details: Optional[str] = None) -> CompileError:
    """Build the diagnostic for an effect that does not conform to the expected one"""
    location = getattr(tree, 'location', None)
    context = None
    if location is not None:
        context = get_source_context(location.file, location.line, context_lines=0)
    return CompileError(
        message=mismatch_message(expected, found, details),
        error_type="EffectError",
        location=location,
        node=tree,
        context=context,
    )


def annotation_error(message: str, text: str, symbol: Any = None) -> CompileError:
    notes = [f"in annotation '{text}'"]
    if symbol is not None:
        notes.append(f"on declaration '{symbol.name}'")
    return CompileError(message=message, error_type="AnnotationError", notes=notes)


def get_source_context(file_path: str, line: int, context_lines: int = 3) -> Optional[str]:
    """Get source code context around a location"""
    path = Path(file_path)
    if not path.is_file():
        return None
    try:
        with open(path) as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError):
        return None

    start = max(0, line - context_lines - 1)
    end = min(len(lines), line + context_lines)

    context = []
    for i in range(start, end):
        line_num = i + 1
        prefix = '> ' if line_num == line else '  '
        context.append(f"{prefix}{line_num:4d} | {lines[i].rstrip()}")

    return '\n'.join(context) if context else None
