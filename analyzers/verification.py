"""Signature verification shared by the spec-gap and feature-gap analyzers.

Given a requirement or claim, derive the symbol names it implies, look them
up in the CodeIndex, check arity, run the stub predicates and look for a
colocated test. The result is a status plus unweighted observations; the
callers weigh them with analyzers.confidence.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Tuple

from contracts import EvidenceType, GapStatus, SymbolHint
from .code_index import CodeIndex
from .confidence import Observation
from .source_parser import FunctionSignature
from .stub_predicates import match_stub


STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "from", "as", "is", "was", "are", "were", "be", "been", "being", "have", "has", "had",
    "do", "does", "did", "will", "would", "should", "could", "may", "might", "must", "can",
    "system", "when", "that", "this", "each", "into", "than", "then", "their", "them",
}

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z0-9]*")
_PARAM_LIST_RE = re.compile(r"\(([^()]*)\)")
_WITH_PARAMS_RE = re.compile(r"\bwith\s+(?:an?\s+|the\s+)?(\w+)((?:\s*,\s*(?:an?\s+|the\s+)?\w+)*)\s+and\s+(?:an?\s+|the\s+)?(\w+)", re.I)


def extract_keywords(text: str) -> List[str]:
    """Stop-word-filtered words longer than 3 chars, unique, longest first."""
    seen = []
    for word in _WORD_RE.findall(text or ""):
        word = word.lower()
        if len(word) > 3 and word not in STOP_WORDS and word not in seen:
            seen.append(word)
    return sorted(seen, key=len, reverse=True)


def candidate_names(title: str) -> List[str]:
    """Symbol names a title implies: 'Create Backup' -> create_backup, createBackup, CreateBackup."""
    words = [w.lower() for w in _WORD_RE.findall(title or "") if w.lower() not in STOP_WORDS][:4]
    if not words:
        return []
    snake = "_".join(words)
    camel = words[0] + "".join(w.capitalize() for w in words[1:])
    pascal = "".join(w.capitalize() for w in words)
    return list(dict.fromkeys([snake, camel, pascal]))


def expected_arity(text: str) -> Optional[int]:
    """Parameter count implied by '(a, b)' or 'with X and Y' phrasing, if any."""
    match = _PARAM_LIST_RE.search(text or "")
    if match:
        inner = match.group(1).strip()
        return len([p for p in inner.split(",") if p.strip()]) if inner else 0
    match = _WITH_PARAMS_RE.search(text or "")
    if match:
        middle = [p for p in match.group(2).split(",") if p.strip()]
        return 2 + len(middle)
    return None


def _kebab(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "-", name).replace("_", "-").lower()


def hint_path(value: str) -> str:
    """Hinted file as an index key: posix separators, leading ./ dropped."""
    return PurePosixPath(value.strip().replace("\\", "/")).as_posix()


@dataclass
class Verification:
    """Outcome of looking a requirement up in the code."""
    status: GapStatus
    observations: List[Observation] = field(default_factory=list)
    expected_locations: List[str] = field(default_factory=list)
    actual_locations: List[str] = field(default_factory=list)
    symbol: Optional[str] = None
    matched_files: List[str] = field(default_factory=list)

    def has(self, evidence_type: EvidenceType) -> bool:
        return any(o.type == evidence_type for o in self.observations)

    @property
    def found(self) -> bool:
        return self.has(EvidenceType.EXACT_FUNCTION_MATCH)

    @property
    def signature_verified(self) -> bool:
        return self.has(EvidenceType.AST_SIGNATURE_VERIFIED)


class SignatureVerifier:
    """Looks up implied symbols in a CodeIndex and classifies what it finds."""

    def __init__(self, index: CodeIndex):
        self.index = index

    def dominant_language(self) -> str:
        languages = Counter(s.language for s in self.index.sources.values())
        return languages.most_common(1)[0][0] if languages else "python"

    def expected_files(self, names: List[str]) -> List[str]:
        if not names:
            return []
        if self.dominant_language() == "javascript":
            return [f"src/{_kebab(names[1] if len(names) > 1 else names[0])}.ts"]
        return [f"{names[0]}.py"]

    def verify(
        self,
        title: str,
        description: str = "",
        hints: Iterable[SymbolHint] = (),
        unmet_criteria: int = 0,
    ) -> Verification:
        """Classify one requirement as complete / partial / stub / missing."""
        hints = [h for h in hints]
        names = [h.name for h in hints if h.name] or candidate_names(title)
        arity = next((len(h.params) for h in hints if h.params is not None), None)
        if arity is None:
            arity = expected_arity(title) if expected_arity(title) is not None else expected_arity(description)

        keywords = extract_keywords(title)
        hinted_files = [hint_path(h.file) for h in hints if h.file]
        candidates = hinted_files or self.index.files_matching(keywords)
        result = Verification(
            status=GapStatus.MISSING,
            expected_locations=hinted_files or candidates[:3] or self.expected_files(names),
            matched_files=candidates,
        )

        for path in candidates:
            if self.index.is_failed(path):
                result.observations.append(Observation(
                    EvidenceType.UNKNOWN, f"Could not parse {path}: {self.index.failures[path]}", path,
                ))
        if hinted_files and not any(f in self.index.sources or self.index.is_failed(f) for f in hinted_files):
            result.observations.append(Observation(
                EvidenceType.FILE_NOT_FOUND, f"Expected file not found: {', '.join(hinted_files)}", hinted_files[0],
            ))

        match = self._lookup(names, candidates, arity)
        if match is None:
            return self._missing(result, names, keywords, candidates, hinted_files)

        path, signature = match
        location = f"{path}:{signature.line}"
        result.symbol = signature.name
        result.actual_locations = [location]
        result.observations.append(Observation(
            EvidenceType.EXACT_FUNCTION_MATCH, f"Found {signature.kind} {signature.name}", location,
        ))

        arity_ok = arity is None or signature.accepts_arity(arity)
        if arity_ok:
            detail = f"{signature.name}({', '.join(signature.params)}) parsed"
            if arity is not None:
                detail += f"; {arity} parameter(s) as expected"
            result.observations.append(Observation(EvidenceType.AST_SIGNATURE_VERIFIED, detail, location))
        else:
            result.observations.append(Observation(
                EvidenceType.CRITERIA_UNMET,
                f"{signature.name} takes {signature.describe_arity()} parameter(s), expected {arity}",
                location,
            ))

        stub = match_stub(signature)
        if stub is not None:
            result.observations.append(Observation(
                stub.evidence_type, f"{signature.name}: {stub.description}", location,
            ))

        tests = self.index.tests_for(path, signature.name)
        if tests:
            result.observations.append(Observation(
                EvidenceType.TEST_FILE_EXISTS, f"Test found: {tests[0]}", tests[0],
            ))
        else:
            result.observations.append(Observation(
                EvidenceType.TEST_FILE_MISSING, f"No test covers {Path(path).name}", path,
            ))

        if unmet_criteria:
            result.observations.append(Observation(
                EvidenceType.CRITERIA_UNMET, f"{unmet_criteria} acceptance criteria not met",
            ))

        if stub is not None:
            result.status = GapStatus.STUB
        elif arity_ok and tests and not unmet_criteria:
            result.status = GapStatus.COMPLETE
        else:
            result.status = GapStatus.PARTIAL
        return result

    def verify_keywords(self, keywords: List[str]) -> Verification:
        """Looser lookup for documentation claims: any symbol whose name carries a keyword.

        Status is complete when a non-stub symbol is found, stub when only
        stubs are, and missing otherwise.
        """
        stems = [k[:-1] if k.endswith("s") and len(k) > 4 else k for k in keywords[:3]]
        candidates = self.index.files_matching(stems)
        result = Verification(status=GapStatus.MISSING, expected_locations=candidates[:3], matched_files=candidates)
        for path in candidates:
            if self.index.is_failed(path):
                result.observations.append(Observation(EvidenceType.UNKNOWN, f"Could not parse {path}", path))

        matches = []
        for path in (candidates or self.index.source_files):
            if path not in self.index.sources:
                continue
            for signature in self.index.sources[path].functions:
                if any(stem in signature.name.lower() for stem in stems):
                    matches.append((path, signature))
        if not matches:
            result.observations.append(Observation(
                EvidenceType.FUNCTION_NOT_FOUND, f"No symbol mentions {', '.join(stems) or '-'}",
            ))
            return result

        real = [(p, s) for p, s in matches if match_stub(s) is None]
        path, signature = (real or matches)[0]
        location = f"{path}:{signature.line}"
        result.symbol = signature.name
        result.actual_locations = [f"{p}:{s.line}" for p, s in matches[:5]]
        result.observations.append(Observation(
            EvidenceType.EXACT_FUNCTION_MATCH, f"Found {signature.kind} {signature.name}", location,
        ))
        if real:
            result.status = GapStatus.COMPLETE
            result.observations.append(Observation(
                EvidenceType.AST_SIGNATURE_VERIFIED, f"{signature.name}({', '.join(signature.params)}) parsed", location,
            ))
        else:
            stub = match_stub(signature)
            result.status = GapStatus.STUB
            result.observations.append(Observation(stub.evidence_type, f"{signature.name}: {stub.description}", location))
        return result

    def _lookup(
        self, names: List[str], candidates: List[str], arity: Optional[int]
    ) -> Optional[Tuple[str, FunctionSignature]]:
        """Exact-name match, preferring candidate files and matching arity."""
        for scope in (candidates, None):
            if scope is not None and not scope:
                continue
            matches = [m for name in names for m in self.index.find_symbol(name, scope)]
            if matches:
                if arity is not None:
                    fitting = [m for m in matches if m[1].accepts_arity(arity)]
                    if fitting:
                        return fitting[0]
                return matches[0]
        return None

    def _missing(self, result: Verification, names, keywords, candidates, hinted_files) -> Verification:
        similar = self.index.similar_symbols(keywords[:2])
        if similar:
            path, signature = similar[0]
            result.observations.append(Observation(
                EvidenceType.NAME_SIMILARITY_ONLY,
                f"Only a similarly named symbol exists: {signature.name}",
                f"{path}:{signature.line}",
            ))
        wanted = " / ".join(names) if names else "implementation"
        result.observations.append(Observation(
            EvidenceType.FUNCTION_NOT_FOUND,
            f"No symbol named {wanted}" + (f" in {', '.join(candidates[:3])}" if candidates else ""),
        ))
        if not candidates and not hinted_files:
            result.observations.append(Observation(
                EvidenceType.FILE_NOT_FOUND, f"No file matches keywords: {', '.join(keywords[:3]) or '-'}",
            ))
        return result
