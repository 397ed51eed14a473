"""Index of a code directory: parsed sources, symbols and test files.

Built once per run and shared by the spec-gap and feature-gap analyzers.
Files are parsed on the run's bounded pool through the run's parse cache.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from config import settings
from contracts import GapDetectionError
from logging_config import get_logger
from runtime import RunContext, map_bounded
from .source_parser import FunctionSignature, ParsedSource, get_parser, supported_extensions

logger = get_logger(__name__)


EXCLUDED_DIRS = {
    ".git", ".hg", ".svn", "node_modules", "venv", ".venv", "env", "__pycache__",
    "dist", "build", ".tox", ".mypy_cache", ".pytest_cache", "coverage", ".next",
}

TEST_DIRS = {"tests", "test", "__tests__", "spec"}

_TEST_NAME_RE = re.compile(r"(^test_.+\.py$)|(^.+_test\.py$)|(^.+\.(test|spec)\.[jt]sx?$)|(^conftest\.py$)")


def is_test_file(relative_path: str) -> bool:
    """True for test modules by name or by living in a tests directory."""
    path = Path(relative_path)
    return bool(_TEST_NAME_RE.match(path.name)) or any(part in TEST_DIRS for part in path.parts[:-1])


def test_names_for(stem: str) -> List[str]:
    """File names a colocated test of module `stem` may have."""
    names = [f"test_{stem}.py", f"{stem}_test.py"]
    for ext in ("js", "jsx", "ts", "tsx"):
        names.extend([f"{stem}.test.{ext}", f"{stem}.spec.{ext}"])
    return names


def discover_files(root: Path, extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """Source files under root with a supported extension, skipping vendored and build dirs."""
    root = Path(root)
    wanted = set(extensions or supported_extensions())
    found = []
    for path in root.rglob("*"):
        relative = path.relative_to(root)
        if any(part in EXCLUDED_DIRS for part in relative.parts):
            continue
        if path.is_file() and path.suffix.lower() in wanted:
            found.append(path)
    return sorted(found)


@dataclass
class CodeIndex:
    """Parsed view of a code directory, keyed by posix path relative to root."""
    root: Path
    sources: Dict[str, ParsedSource] = field(default_factory=dict)
    test_texts: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(cls, code_dir: Path, context: RunContext) -> "CodeIndex":
        """Parse every supported file under code_dir.

        Per-file failures are recorded in `failures` and as run warnings; they
        never abort the index.
        """
        root = Path(code_dir)
        index = cls(root=root)
        if not root.is_dir():
            context.warn("code-index", f"Code directory not found: {root}", path=str(root), code="CODE_DIR_MISSING")
            return index

        files = []
        for path in discover_files(root):
            if path.stat().st_size > settings.max_file_bytes:
                context.warn(
                    "code-index", f"Skipped: larger than {settings.max_file_bytes} bytes",
                    path=path.relative_to(root).as_posix(), code="FILE_TOO_LARGE",
                )
                continue
            files.append(path)
        logger.info("Indexing %d source files under %s", len(files), root)

        def parse_one(path: Path) -> Tuple[str, Optional[ParsedSource], Optional[str], Optional[str]]:
            relative = path.relative_to(root).as_posix()
            parser = get_parser(path)
            try:
                parsed = context.cache.get_or_parse(path, parser.parse)
            except GapDetectionError as e:
                context.warn_error("code-index", e, path=relative)
                return relative, None, None, e.message
            except OSError as e:
                context.warn("code-index", f"unreadable: {e}", path=relative, code="GAP_DETECTION_ERROR")
                return relative, None, None, str(e)
            text = None
            if is_test_file(relative):
                text = path.read_text(encoding="utf-8", errors="replace")
            return relative, parsed, text, None

        for relative, parsed, text, error in map_bounded(parse_one, files, context, stage="code-index"):
            if error is not None:
                index.failures[relative] = error
                continue
            index.sources[relative] = parsed
            if text is not None:
                index.test_texts[relative] = text
        return index

    # Lookup

    @property
    def source_files(self) -> List[str]:
        """Non-test files that parsed."""
        return sorted(p for p in self.sources if not is_test_file(p))

    @property
    def lines_of_code(self) -> int:
        return sum(s.line_count for s in self.sources.values())

    def find_symbol(self, name: str, files: Optional[Iterable[str]] = None) -> List[Tuple[str, FunctionSignature]]:
        """Non-test declarations named `name`, optionally limited to some files."""
        scope = self.source_files if files is None else [f for f in files if f in self.sources and not is_test_file(f)]
        matches = []
        for path in scope:
            for signature in self.sources[path].find(name):
                matches.append((path, signature))
        return matches

    def similar_symbols(self, keywords: Iterable[str]) -> List[Tuple[str, FunctionSignature]]:
        """Declarations whose name contains every keyword (case-insensitive)."""
        keywords = [k.lower() for k in keywords if k]
        if not keywords:
            return []
        matches = []
        for path in self.source_files:
            for signature in self.sources[path].functions:
                name = signature.name.lower()
                if all(k in name for k in keywords):
                    matches.append((path, signature))
        return matches

    def files_matching(self, keywords: Iterable[str]) -> List[str]:
        """Source files whose path contains any keyword, most matches first."""
        keywords = [k.lower() for k in keywords if k]
        scored = []
        for path in self.source_files + sorted(self.failures):
            lowered = path.lower()
            hits = sum(1 for k in keywords if k in lowered)
            if hits:
                scored.append((-hits, path))
        return [path for _, path in sorted(scored)]

    def tests_for(self, source_path: str, symbol: Optional[str] = None) -> List[str]:
        """Test files colocated with source_path by name, or that mention symbol."""
        stem = Path(source_path).stem
        names = set(test_names_for(stem))
        found = []
        for test_path, text in sorted(self.test_texts.items()):
            if Path(test_path).name in names:
                found.append(test_path)
            elif symbol and re.search(rf"\b{re.escape(symbol)}\b", text):
                found.append(test_path)
        return found

    def is_failed(self, path: str) -> bool:
        return path in self.failures
