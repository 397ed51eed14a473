"""Build the ProjectContext that feeds brainstorming prompts and scoring."""

import json
import re
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Optional

from contracts import ProjectContext, ProjectRoute
from logging_config import get_logger
from analyzers.code_index import CodeIndex, discover_files

logger = get_logger(__name__)


LANGUAGE_EXTENSIONS = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
}

KNOWN_FRAMEWORKS = [
    "django", "flask", "fastapi", "starlette", "click", "typer", "pydantic", "sqlalchemy", "celery",
    "pytest", "react", "vue", "angular", "svelte", "next", "express", "nestjs", "fastify", "jest",
    "vitest", "gin", "echo", "fiber", "actix-web", "axum", "tokio", "rocket", "spring", "rails",
]

# Projects above either size count as established
BROWNFIELD_LINES = 1000
BROWNFIELD_FILES = 20

_REQUIREMENT_LINE_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9_.\-]*)")
_TOML_NAME_RE = re.compile(r'^name\s*=\s*["\']([^"\']+)["\']', re.M)
_TOML_DEPS_RE = re.compile(r"^dependencies\s*=\s*\[(.*?)\]", re.M | re.S)
_TOML_SECTION_RE = re.compile(r"^\[dependencies\]\s*$(.*?)(?=^\[|\Z)", re.M | re.S)
_GO_REQUIRE_RE = re.compile(r"^\s*(?:require\s+)?([\w.\-]+/[\w.\-/]+)\s+v[\d.]+", re.M)
_FEATURES_HEADING_RE = re.compile(r"^#{2,3}\s+.*features", re.I)
_BULLET_RE = re.compile(r"^\s*[-*]\s+(.+?)\s*$")


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def detect_tech_stack(root: Path) -> List[str]:
    """Dependencies named in the project's manifests, in manifest order."""
    stack: List[str] = []

    requirements = _read(root / "requirements.txt")
    for line in requirements.splitlines():
        if line.strip() and not line.strip().startswith(("#", "-")):
            match = _REQUIREMENT_LINE_RE.match(line)
            if match:
                stack.append(match.group(1).lower())

    pyproject = _read(root / "pyproject.toml")
    deps = _TOML_DEPS_RE.search(pyproject)
    if deps:
        for entry in re.findall(r'["\']([^"\']+)["\']', deps.group(1)):
            match = _REQUIREMENT_LINE_RE.match(entry)
            if match:
                stack.append(match.group(1).lower())

    package_json = _read(root / "package.json")
    if package_json:
        try:
            data = json.loads(package_json)
        except json.JSONDecodeError:
            logger.warning("Invalid package.json in %s", root)
            data = {}
        for key in ("dependencies", "devDependencies"):
            stack.extend(sorted((data.get(key) or {}).keys()))

    stack.extend(m.split("/")[-1].lower() for m in _GO_REQUIRE_RE.findall(_read(root / "go.mod")))

    cargo = _TOML_SECTION_RE.search(_read(root / "Cargo.toml"))
    if cargo:
        stack.extend(re.findall(r"^([\w\-]+)\s*=", cargo.group(1), re.M))

    return list(dict.fromkeys(stack))[:40]


def detect_frameworks(tech_stack: Iterable[str]) -> List[str]:
    stack = {s.lower().lstrip("@").split("/")[-1] for s in tech_stack}
    return [f for f in KNOWN_FRAMEWORKS if f in stack]


def detect_name(root: Path) -> str:
    match = _TOML_NAME_RE.search(_read(root / "pyproject.toml"))
    if match:
        return match.group(1)
    package_json = _read(root / "package.json")
    if package_json:
        try:
            name = json.loads(package_json).get("name")
        except json.JSONDecodeError:
            name = None
        if name:
            return name
    return root.resolve().name


def readme_features(root: Path) -> List[str]:
    """Bullets under a '## Features' style heading of the README."""
    features, in_section = [], False
    for line in _read(root / "README.md").splitlines():
        if line.startswith("#"):
            in_section = bool(_FEATURES_HEADING_RE.match(line))
            continue
        if in_section:
            bullet = _BULLET_RE.match(line)
            if bullet:
                features.append(re.sub(r"\*\*|`", "", bullet.group(1)))
    return features


def build_project_context(
    directory: Path,
    index: Optional[CodeIndex] = None,
    spec_titles: Iterable[str] = (),
    specs: Iterable[str] = (),
    docs: Iterable[str] = (),
) -> ProjectContext:
    """Describe the project at directory.

    Uses the run's CodeIndex for size figures when one is given; otherwise
    counts files by extension without parsing them.
    """
    root = Path(directory)
    files = discover_files(root, LANGUAGE_EXTENSIONS.keys()) if root.is_dir() else []
    languages = Counter(LANGUAGE_EXTENSIONS[p.suffix.lower()] for p in files)
    language = languages.most_common(1)[0][0] if languages else "unknown"

    if index is not None and index.sources:
        lines_of_code = index.lines_of_code
    else:
        lines_of_code = sum(_read(p).count("\n") + 1 for p in files)

    tech_stack = detect_tech_stack(root)
    current = list(dict.fromkeys(readme_features(root) + list(spec_titles)))
    route = (
        ProjectRoute.BROWNFIELD
        if lines_of_code > BROWNFIELD_LINES or len(files) > BROWNFIELD_FILES
        else ProjectRoute.GREENFIELD
    )

    context = ProjectContext(
        name=detect_name(root),
        path=str(root),
        language=language,
        tech_stack=tech_stack,
        frameworks=detect_frameworks(tech_stack),
        current_features=current,
        route=route,
        lines_of_code=lines_of_code,
        file_count=len(files),
        specs=list(specs),
        docs=list(docs),
    )
    logger.info(
        "Project %s: %s, %d files, %d lines (%s)",
        context.name, context.language, context.file_count, context.lines_of_code, context.route.value,
    )
    return context
