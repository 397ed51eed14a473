"""Stub-signature predicates.

A stub is a symbol that exists but does nothing useful. The checks live in
STUB_PREDICATES as an ordered list of data; the first match wins. New
heuristics are added by appending a StubPredicate, not by editing the
analyzers.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from contracts import EvidenceType
from .source_parser import FunctionSignature


GUIDANCE_RE = re.compile(r"\b(todo|to do|implement|not yet|coming soon|not implemented|placeholder|stub)\b", re.I)
INCOMPLETE_MARKER_RE = re.compile(r"(#|//|/\*)\s*(TODO|FIXME|XXX|HACK)\b|not implemented", re.I)


@dataclass(frozen=True)
class StubPredicate:
    """One way a function body can look like a placeholder."""
    name: str
    evidence_type: EvidenceType
    description: str
    test: Callable[[FunctionSignature], bool]


def _empty_body(sig: FunctionSignature) -> bool:
    return sig.is_empty


def _raises_not_implemented(sig: FunctionSignature) -> bool:
    return sig.raises_not_implemented and not sig.has_branching


def _returns_guidance_text(sig: FunctionSignature) -> bool:
    return sig.returned_string is not None and bool(GUIDANCE_RE.search(sig.returned_string))


def _returns_placeholder(sig: FunctionSignature) -> bool:
    return sig.returns_placeholder and sig.body_statements <= 1 and not sig.has_branching


def _incomplete_markers(sig: FunctionSignature) -> bool:
    return bool(INCOMPLETE_MARKER_RE.search(sig.body_text))


STUB_PREDICATES: List[StubPredicate] = [
    StubPredicate(
        name="empty-body",
        evidence_type=EvidenceType.RETURNS_TODO_COMMENT,
        description="body is empty (pass, ... or {})",
        test=_empty_body,
    ),
    StubPredicate(
        name="raises-not-implemented",
        evidence_type=EvidenceType.RETURNS_TODO_COMMENT,
        description="body only raises a not-implemented error",
        test=_raises_not_implemented,
    ),
    StubPredicate(
        name="returns-guidance-text",
        evidence_type=EvidenceType.RETURNS_GUIDANCE_TEXT,
        description="returns a literal guidance string instead of a result",
        test=_returns_guidance_text,
    ),
    StubPredicate(
        name="returns-placeholder",
        evidence_type=EvidenceType.RETURNS_TODO_COMMENT,
        description="single unconditional return of an empty placeholder value",
        test=_returns_placeholder,
    ),
    StubPredicate(
        name="incomplete-markers",
        evidence_type=EvidenceType.COMMENTS_SUGGEST_INCOMPLETE,
        description="TODO/FIXME or 'not implemented' markers in the body",
        test=_incomplete_markers,
    ),
]


def match_stub(
    signature: FunctionSignature,
    predicates: Optional[List[StubPredicate]] = None,
) -> Optional[StubPredicate]:
    """Return the first predicate the signature satisfies, or None."""
    for predicate in predicates if predicates is not None else STUB_PREDICATES:
        if predicate.test(signature):
            return predicate
    return None
