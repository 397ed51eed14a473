"""Markdown specification parser.

Recognised conventions:

    # F008: Roadmap Generation
    **Status:** In Progress
    **Priority:** P1

    ### FR1: Create Backup
    **Priority:** P0
    **Function:** `create_backup(source, destination)`
    **Implementation:** `src/backup.py`
    Description text. Depends on FR2.

    #### Acceptance Criteria
    - ✅ Backups are written atomically
    - ❌ Old backups are pruned

    ### Success Metrics
    - **Coverage:** 90% of requirements verified

    ### Phase 1: Foundations (2 weeks)
    - [x] Parser
    - [ ] Verifier
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from contracts import (
    AcceptanceCriterion,
    CriterionStatus,
    ParsedSpec,
    Priority,
    Requirement,
    RequirementKind,
    SpecParsingError,
    SpecPhase,
    SymbolHint,
)


HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
SPEC_ID_TITLE_RE = re.compile(r"^([A-Z]\d{3})[:\s]\s*")
SPEC_ID_PATH_RE = re.compile(r"([A-Z]\d{3})-")
REQUIREMENT_HEADING_RE = re.compile(r"^(N?FR)[-\s]?(\d+(?:\.\d+)?)\s*[:.\-]?\s+(.+)$", re.I)
REQUIREMENT_BULLET_RE = re.compile(r"^[-*]\s+\*{0,2}(N?FR)[-\s]?(\d+(?:\.\d+)?)\*{0,2}\s*[:.\-]\*{0,2}\s+(.+)$", re.I)
METADATA_RE = re.compile(r"^\s*[-*]?\s*\*\*(?P<key>[A-Za-z ]+):\*\*\s*(?P<value>.+?)\s*$")
CRITERION_RE = re.compile(r"^\s*[-*]\s*(?P<glyph>✅|⚠️|⚠|❌|\[[ xX]\])?\s*(?P<text>.+?)\s*$")
NUMBERED_CRITERION_RE = re.compile(r"^\s*\*\*\d+\.\d+\s+(?P<text>.+?)\*\*")
METRIC_RE = re.compile(r"^\s*[-*]\s*\*\*(?P<name>.+?):\*\*\s*(?P<value>.+?)\s*$")
PHASE_RE = re.compile(r"^Phase\s+(\d+)\s*:\s*(.+?)(?:\s+\(([^)]+)\))?$", re.I)
TASK_RE = re.compile(r"^\s*[-*]\s+\[(?P<done>[ xX])\]\s+(?P<text>.+?)\s*$")
NUMBERED_TASK_RE = re.compile(r"^\s*\d+\.\s+(?P<text>.+?)\s*$")
DEPENDS_RE = re.compile(r"\b(?:depends on|requires|after)\s+((?:N?FR[-\s]?\d+)(?:\s*(?:,|and|&)\s*N?FR[-\s]?\d+)*)", re.I)
BLOCKED_RE = re.compile(r"\bblocked by\s+((?:N?FR[-\s]?\d+)(?:\s*(?:,|and|&)\s*N?FR[-\s]?\d+)*)", re.I)
REQ_ID_RE = re.compile(r"(N?FR)[-\s]?(\d+)", re.I)
FUNCTION_HINT_RE = re.compile(r"`?(?P<name>[A-Za-z_$][\w$.]*)\s*(?:\((?P<params>[^)]*)\))?`?")

GLYPH_STATUS = {
    "✅": CriterionStatus.MET,
    "[x]": CriterionStatus.MET,
    "[X]": CriterionStatus.MET,
    "⚠️": CriterionStatus.PARTIAL,
    "⚠": CriterionStatus.PARTIAL,
    "❌": CriterionStatus.UNMET,
    "[ ]": CriterionStatus.UNMET,
}

NON_SPEC_FILES = {"readme.md", "index.md", "changelog.md"}


def find_spec_files(specs_dir: Path) -> List[Path]:
    """Find spec documents: every spec.md below specs_dir plus top-level *.md files."""
    root = Path(specs_dir)
    if not root.is_dir():
        return []
    found = {p for p in root.rglob("spec.md") if p.is_file()}
    found.update(p for p in root.glob("*.md") if p.is_file() and p.name.lower() not in NON_SPEC_FILES)
    return sorted(found)


def _priority(text: str) -> Optional[Priority]:
    match = re.search(r"P([0-3])", text or "")
    return Priority(f"P{match.group(1)}") if match else None


def _requirement_id(prefix: str, number: str) -> str:
    return f"{prefix.upper()}{number}"


def _ids_in(text: str) -> List[str]:
    return [_requirement_id(p, n) for p, n in REQ_ID_RE.findall(text)]


def _parse_function_hint(value: str) -> Optional[SymbolHint]:
    match = FUNCTION_HINT_RE.search(value.strip())
    if not match:
        return None
    name = match.group("name").split(".")[-1]
    params = None
    if match.group("params") is not None:
        params = [p.strip().split(":")[0].split("=")[0].strip() for p in match.group("params").split(",") if p.strip()]
    return SymbolHint(name=name, params=params)


class SpecParser:
    """Parses markdown specification documents into ParsedSpec contracts."""

    def parse_file(self, path: Path) -> ParsedSpec:
        """Parse one spec file.

        Raises:
            SpecParsingError: If the file is unreadable or has no structure at all
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SpecParsingError(str(path), str(e)) from e
        return self.parse_text(text, path)

    def parse_text(self, text: str, path: Path) -> ParsedSpec:
        path = Path(path)
        lines = text.splitlines()
        headings = [(i, HEADING_RE.match(line)) for i, line in enumerate(lines)]
        headings = [(i, len(m.group(1)), m.group(2)) for i, m in headings if m]
        if not text.strip():
            raise SpecParsingError(str(path), "file is empty")
        if not headings and not any(REQUIREMENT_BULLET_RE.match(line) for line in lines):
            raise SpecParsingError(str(path), "no headings or requirements found")

        title = self._title(headings, path)
        return ParsedSpec(
            id=self._spec_id(text, path),
            title=title,
            path=str(path),
            status=self._metadata(lines, "Status"),
            priority=_priority(self._metadata(lines, "Priority")) or Priority.P2,
            effort=self._metadata(lines, "Effort"),
            requirements=self._requirements(lines, headings),
            success_metrics=self._success_metrics(lines, headings),
            phases=self._phases(lines, headings),
        )

    # Document-level fields

    def _spec_id(self, text: str, path: Path) -> str:
        match = re.search(r"^#\s+([A-Z]\d{3})[:\s]", text, re.M)
        if match:
            return match.group(1)
        match = SPEC_ID_PATH_RE.search(str(path))
        if match:
            return match.group(1)
        return path.parent.name if path.name.lower() == "spec.md" else path.stem

    def _title(self, headings, path: Path) -> str:
        for _, level, heading in headings:
            if level == 1:
                return SPEC_ID_TITLE_RE.sub("", heading).strip() or heading
        return path.parent.name if path.name.lower() == "spec.md" else path.stem

    def _metadata(self, lines: List[str], key: str) -> str:
        """First document-level **Key:** value (before any requirement section)."""
        for line in lines:
            heading = HEADING_RE.match(line)
            if heading and REQUIREMENT_HEADING_RE.match(heading.group(2)):
                break
            match = METADATA_RE.match(line)
            if match and match.group("key").strip().lower() == key.lower():
                return match.group("value")
        return ""

    def _section(self, lines: List[str], headings, index: int) -> Tuple[int, int]:
        """Line span (exclusive of the heading) of the heading at position index."""
        start_line, level, _ = headings[index]
        end_line = len(lines)
        for line_no, other_level, _ in headings[index + 1:]:
            if other_level <= level:
                end_line = line_no
                break
        return start_line + 1, end_line

    # Requirements

    def _requirements(self, lines: List[str], headings) -> List[Requirement]:
        requirements = []
        claimed = set()
        for index, (line_no, _, heading) in enumerate(headings):
            match = REQUIREMENT_HEADING_RE.match(heading)
            if not match:
                continue
            start, end = self._section(lines, headings, index)
            claimed.update(range(line_no, end))
            requirements.append(self._requirement(match, lines[start:end]))

        for line_no, line in enumerate(lines):
            if line_no in claimed:
                continue
            match = REQUIREMENT_BULLET_RE.match(line)
            if match:
                requirements.append(self._requirement(match, []))
        return requirements

    def _requirement(self, match, body: List[str]) -> Requirement:
        prefix, number, title = match.group(1), match.group(2), match.group(3).strip().strip("*").strip()
        requirement_id = _requirement_id(prefix, number)
        priority = None
        hints: List[SymbolHint] = []
        implementation_files: List[str] = []
        description: List[str] = []
        criteria: List[AcceptanceCriterion] = []
        in_criteria = False

        for line in body:
            heading = HEADING_RE.match(line)
            if heading:
                in_criteria = "acceptance criteria" in heading.group(2).lower()
                continue
            if "acceptance criteria" in line.lower() and not CRITERION_RE.match(line):
                in_criteria = True
                continue

            meta = METADATA_RE.match(line)
            if meta and not in_criteria:
                key, value = meta.group("key").strip().lower(), meta.group("value")
                if key == "priority":
                    priority = _priority(value)
                elif key in ("function", "functions", "symbol"):
                    hints.extend(h for h in (_parse_function_hint(v) for v in value.split(";")) if h)
                elif key in ("implementation", "file", "files"):
                    for ref in value.replace("`", "").split(","):
                        ref = ref.strip()
                        if ":" in ref:
                            file_part, symbol = ref.rsplit(":", 1)
                            hint = _parse_function_hint(symbol)
                            if hint:
                                hint.file = file_part.strip()
                                hints.append(hint)
                        elif ref:
                            implementation_files.append(ref)
                else:
                    description.append(line.strip())
                continue

            if in_criteria:
                numbered = NUMBERED_CRITERION_RE.match(line)
                bullet = CRITERION_RE.match(line)
                if numbered:
                    criteria.append(AcceptanceCriterion(text=numbered.group("text")))
                elif bullet:
                    glyph = bullet.group("glyph")
                    criteria.append(AcceptanceCriterion(
                        text=bullet.group("text"),
                        status=GLYPH_STATUS.get(glyph, CriterionStatus.UNKNOWN) if glyph else CriterionStatus.UNKNOWN,
                    ))
                continue

            if line.strip():
                description.append(line.strip())

        if implementation_files:
            if hints:
                for hint in hints:
                    hint.file = hint.file or implementation_files[0]
            else:
                hints = [SymbolHint(name="", file=f) for f in implementation_files]

        text = " ".join(description)
        hard = []
        for group in BLOCKED_RE.findall(text):
            hard.extend(_ids_in(group))
        dependencies = []
        for group in DEPENDS_RE.findall(text):
            dependencies.extend(i for i in _ids_in(group) if i not in dependencies)
        dependencies = [d for d in dependencies if d != requirement_id and d not in hard]

        return Requirement(
            id=requirement_id,
            title=title,
            description=text,
            kind=RequirementKind.NON_FUNCTIONAL if prefix.upper() == "NFR" else RequirementKind.FUNCTIONAL,
            priority=priority,
            acceptance_criteria=criteria,
            dependencies=dependencies,
            hard_dependencies=[h for h in dict.fromkeys(hard) if h != requirement_id],
            hints=hints,
        )

    # Metrics and phases

    def _success_metrics(self, lines: List[str], headings) -> Dict[str, str]:
        metrics: Dict[str, str] = {}
        for index, (_, _, heading) in enumerate(headings):
            if "success metrics" not in heading.lower() and "success criteria" not in heading.lower():
                continue
            start, end = self._section(lines, headings, index)
            for line in lines[start:end]:
                match = METRIC_RE.match(line)
                if match:
                    metrics[match.group("name").strip()] = match.group("value")
        return metrics

    def _phases(self, lines: List[str], headings) -> List[SpecPhase]:
        phases = []
        for index, (_, _, heading) in enumerate(headings):
            match = PHASE_RE.match(heading)
            if not match:
                continue
            start, end = self._section(lines, headings, index)
            tasks, done = [], []
            for line in lines[start:end]:
                task = TASK_RE.match(line)
                if task:
                    tasks.append(task.group("text"))
                    if task.group("done").lower() == "x":
                        done.append(task.group("text"))
                    continue
                numbered = NUMBERED_TASK_RE.match(line)
                if numbered:
                    tasks.append(numbered.group("text"))
            phases.append(SpecPhase(
                number=int(match.group(1)),
                name=match.group(2).strip(),
                effort=(match.group(3) or "").strip(),
                tasks=tasks,
                completed_tasks=done,
            ))
        return phases
