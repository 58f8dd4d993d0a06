"""
Local structure checks for VB.NET console applications.

The findings are added to the Code-Quality Grader prompt so the model can
weigh syntax structure it might otherwise misread.
"""

import re

from pydantic import BaseModel, ConfigDict, Field

_MODULE = re.compile(r"\bModule\s+\w+", re.IGNORECASE)
_CLASS = re.compile(r"\bClass\s+\w+", re.IGNORECASE)
_SUB_MAIN = re.compile(r"Sub\s+Main\s*\(", re.IGNORECASE)
_CONSOLE_WRITE = re.compile(r"Console\.(Write|WriteLine)\b", re.IGNORECASE)
_CONSOLE_READ = re.compile(r"Console\.(Read|ReadLine|ReadKey)\b", re.IGNORECASE)
_DIM = re.compile(r"\bDim\s+\w+", re.IGNORECASE)
_TYPED = re.compile(
    r"\bAs\s+(Integer|String|Boolean|Double|Single|Long|Decimal|Byte|Short|Object|Char|Date)\b",
    re.IGNORECASE,
)
_IF_THEN = re.compile(r"^\s*(?:Else)?If\b.*\bThen\s*$", re.IGNORECASE | re.MULTILINE)
_FOR = re.compile(r"^\s*For\s+(?:Each\s+)?\w+", re.IGNORECASE | re.MULTILINE)
_WHILE_OR_DO = re.compile(r"^\s*(While|Do)\b", re.IGNORECASE | re.MULTILINE)
_SELECT_CASE = re.compile(r"\bSelect\s+Case\b", re.IGNORECASE)

# (opening, closing, label)
_BLOCKS = (
    (re.compile(r"^\s*(?:Public\s+|Private\s+|Friend\s+)?Module\b", re.I | re.M),
     re.compile(r"^\s*End\s+Module\b", re.I | re.M), "Module/End Module"),
    (re.compile(r"^\s*(?:Public\s+|Private\s+|Shared\s+)*Sub\s+\w", re.I | re.M),
     re.compile(r"^\s*End\s+Sub\b", re.I | re.M), "Sub/End Sub"),
    (re.compile(r"^\s*If\b.*\bThen\s*$", re.I | re.M),
     re.compile(r"^\s*End\s+If\b", re.I | re.M), "If/End If"),
    (re.compile(r"^\s*For\b", re.I | re.M),
     re.compile(r"^\s*Next\b", re.I | re.M), "For/Next"),
)


class StructureReport(BaseModel):
    """Result of the local VB.NET structure analysis."""

    model_config = ConfigDict(frozen=True)

    has_module: bool
    has_sub_main: bool
    has_console_io: bool
    has_declarations: bool
    has_control_structures: bool
    issues: tuple[str, ...] = Field(default=())

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def as_prompt_lines(self) -> list[str]:
        def mark(flag: bool) -> str:
            return "yes" if flag else "no"

        return [
            f"- Has Module/Class: {mark(self.has_module)}",
            f"- Has Sub Main: {mark(self.has_sub_main)}",
            f"- Has Console I/O: {mark(self.has_console_io)}",
            f"- Has Dim/As declarations: {mark(self.has_declarations)}",
            f"- Has control structures: {mark(self.has_control_structures)}",
            f"- Issues: {', '.join(self.issues) if self.issues else 'None'}",
        ]


def analyze_vbnet(code: str) -> StructureReport:
    """Check a VB.NET console program for its expected building blocks."""
    issues: list[str] = []

    has_module = bool(_MODULE.search(code) or _CLASS.search(code))
    if not has_module:
        issues.append("Consider adding a Module declaration for console apps")

    has_sub_main = bool(_SUB_MAIN.search(code))
    if has_module and not has_sub_main:
        issues.append("Console apps typically need Sub Main()")

    has_console_io = bool(_CONSOLE_WRITE.search(code) or _CONSOLE_READ.search(code))
    has_declarations = bool(_DIM.search(code) or _TYPED.search(code))
    has_control_structures = bool(
        _IF_THEN.search(code)
        or _FOR.search(code)
        or _WHILE_OR_DO.search(code)
        or _SELECT_CASE.search(code)
    )

    for opening, closing, label in _BLOCKS:
        opened = len(opening.findall(code))
        closed = len(closing.findall(code))
        if opened != closed:
            issues.append(f"Check {label} matching")

    return StructureReport(
        has_module=has_module,
        has_sub_main=has_sub_main,
        has_console_io=has_console_io,
        has_declarations=has_declarations,
        has_control_structures=has_control_structures,
        issues=tuple(issues),
    )
