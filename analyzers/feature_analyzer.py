"""Feature gap analysis: do the docs advertise what the code does?"""

import re
from pathlib import Path
from typing import List, Optional, Tuple

from config import settings
from contracts import (
    DocType,
    DocumentationClaim,
    FeatureGap,
    FeatureGapRecommendation,
    FeatureGapStatus,
    GapStatus,
    create_effort_estimate,
    status_for_accuracy,
)
from logging_config import get_logger
from runtime import RunContext
from .code_index import CodeIndex, EXCLUDED_DIRS
from .confidence import weigh
from .verification import SignatureVerifier, Verification, extract_keywords

logger = get_logger(__name__)


TOP_LEVEL_DOCS = ["README.md", "ROADMAP.md", "FEATURES.md", "CHANGELOG.md"]

FEATURE_INDICATORS = [
    "supports", "enables", "provides", "allows", "can", "analyzes", "generates", "detects",
    "automatically", "intelligent", "advanced", "complete", "full", "comprehensive",
]

# Adjectives that widen a claim; false claims using them cost more to make true
BROAD_CLAIM_WORDS = {"comprehensive", "complete", "full", "advanced", "intelligent", "automatically"}

_HEADING_RE = re.compile(r"^#+\s+(.+?)\s*$")
_BULLET_RE = re.compile(r"^\s*[-*]\s+(.+?)\s*$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_VERSION_RE = re.compile(r"^\[?v?\d+\.\d+")


def classify_doc_type(name: str) -> DocType:
    lowered = name.lower()
    if lowered.startswith("readme"):
        return DocType.README
    if lowered.startswith("roadmap"):
        return DocType.ROADMAP
    if lowered.startswith("changelog"):
        return DocType.CHANGELOG
    if "spec" in lowered:
        return DocType.SPEC
    if any(word in lowered for word in ("guide", "tutorial", "howto", "getting-started", "features")):
        return DocType.GUIDE
    return DocType.OTHER


def is_feature_claim(text: str) -> bool:
    """Capability statement with an indicator word; dates, versions and TODOs are not claims."""
    lowered = text.lower()
    if _DATE_RE.match(text) or _VERSION_RE.match(text):
        return False
    if "todo" in lowered or "note:" in lowered:
        return False
    words = set(re.findall(r"[a-z]+", lowered))
    return any(indicator in words for indicator in FEATURE_INDICATORS)


def find_doc_files(docs_dir: Path) -> List[Path]:
    """README/ROADMAP/FEATURES/CHANGELOG at the top plus docs/**/*.md."""
    root = Path(docs_dir)
    files = [root / name for name in TOP_LEVEL_DOCS if (root / name).is_file()]
    docs = root / "docs"
    if docs.is_dir():
        files.extend(
            p for p in sorted(docs.rglob("*.md"))
            if p.is_file() and not any(part in EXCLUDED_DIRS for part in p.relative_to(root).parts)
        )
    return files


def parse_documentation(content: str, source: str, doc_type: DocType = DocType.OTHER) -> List[DocumentationClaim]:
    """Extract feature claims from bullets and long bold phrases."""
    claims: List[DocumentationClaim] = []
    section = ""
    for number, line in enumerate(content.splitlines(), start=1):
        heading = _HEADING_RE.match(line)
        if heading:
            section = heading.group(1)
            continue

        found = []
        bullet = _BULLET_RE.match(line)
        if bullet:
            found.append(_BOLD_RE.sub(r"\1", bullet.group(1)).strip())
        else:
            found.extend(m.strip() for m in _BOLD_RE.findall(line) if len(m.strip()) > 20)

        for text in found:
            if is_feature_claim(text):
                claims.append(DocumentationClaim(
                    claim=text,
                    source=source,
                    doc_type=doc_type,
                    line=number,
                    section=section,
                    keywords=extract_keywords(text),
                ))
    return claims


def recommend(status: FeatureGapStatus, effort_hours: float, small_effort_hours: float) -> FeatureGapRecommendation:
    """accurate -> none; misleading -> add-disclaimer; false -> implement if small, else fix the docs."""
    if status == FeatureGapStatus.ACCURATE:
        return FeatureGapRecommendation.NONE
    if status == FeatureGapStatus.MISLEADING:
        return FeatureGapRecommendation.ADD_DISCLAIMER
    if effort_hours <= small_effort_hours:
        return FeatureGapRecommendation.IMPLEMENT_FEATURE
    return FeatureGapRecommendation.UPDATE_DOCUMENTATION


def calculate_accuracy(gaps: List[FeatureGap]) -> float:
    """Mean accuracy over all verified claims; 100 when there are none."""
    if not gaps:
        return 100.0
    return round(sum(g.accuracy_score for g in gaps) / len(gaps), 1)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


class FeatureGapAnalyzer:
    """Verifies documentation claims against the code.

    Returns one FeatureGap per claim, accurate ones included, so accuracy can
    be averaged over every claim.
    """

    def __init__(self, context: Optional[RunContext] = None, index: Optional[CodeIndex] = None):
        self.context = context or RunContext()
        self.index = index
        self.claims: List[DocumentationClaim] = []

    def analyze_features(self, docs_dir: Path, code_dir: Path) -> List[FeatureGap]:
        docs_dir = Path(docs_dir)
        if self.index is None:
            self.index = CodeIndex.build(Path(code_dir), self.context)
        verifier = SignatureVerifier(self.index)

        self.claims = []
        for path in find_doc_files(docs_dir):
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.context.warn("feature-gaps", f"Could not read documentation: {e}", path=str(path))
                continue
            relative = path.relative_to(docs_dir).as_posix()
            self.claims.extend(parse_documentation(content, relative, classify_doc_type(path.name)))

        gaps = []
        seen = {}
        for claim in self.claims:
            if self.context.expired:
                self.context.mark_partial("feature-gaps")
                break
            gap = self.verify_claim(claim, verifier)
            seen[gap.id] = seen.get(gap.id, 0) + 1
            if seen[gap.id] > 1:
                gap.id = f"{gap.id}-{seen[gap.id]}"
            gaps.append(gap)

        logger.info(
            "Verified %d documentation claims: %d accurate, %d misleading, %d false",
            len(gaps),
            sum(1 for g in gaps if g.status == FeatureGapStatus.ACCURATE),
            sum(1 for g in gaps if g.status == FeatureGapStatus.MISLEADING),
            sum(1 for g in gaps if g.status == FeatureGapStatus.FALSE),
        )
        return gaps

    def verify_claim(self, claim: DocumentationClaim, verifier: SignatureVerifier) -> FeatureGap:
        keywords = claim.keywords or extract_keywords(claim.claim)
        verification = verifier.verify_keywords(keywords)
        accuracy, matched = self._accuracy(keywords, verification)
        status = status_for_accuracy(accuracy)

        observations = list(verification.observations)
        evidence_status = {
            FeatureGapStatus.ACCURATE: GapStatus.COMPLETE,
            FeatureGapStatus.MISLEADING: GapStatus.PARTIAL,
            FeatureGapStatus.FALSE: GapStatus.MISSING,
        }[status]

        effort = None
        if status != FeatureGapStatus.ACCURATE:
            effort = self._effort(claim, verification)
        return FeatureGap(
            id=f"feature-gap-{_slug(Path(claim.source).stem)}-{claim.line}",
            advertised_feature=claim.section or claim.claim,
            claim=claim.claim,
            source=f"{claim.source}:{claim.line}",
            reality=self._reality(verification, matched),
            accuracy_score=accuracy,
            status=status,
            recommendation=recommend(status, effort.hours if effort else 0, settings.small_effort_hours),
            evidence=weigh(observations, evidence_status),
            effort=effort,
        )

    def _accuracy(self, keywords: List[str], verification: Verification) -> Tuple[int, int]:
        matched = sum(1 for k in keywords[:3] if self.index.files_matching([k]))
        if matched == 0 and not verification.found:
            return 0, 0
        if matched == 0:
            accuracy = 20
        else:
            accuracy = 50 + 10 * (matched - 1)
        if verification.signature_verified:
            accuracy += 30
        if verification.status == GapStatus.STUB:
            accuracy -= 30
        return max(0, min(100, accuracy)), matched

    def _effort(self, claim: DocumentationClaim, verification: Verification):
        if verification.status == GapStatus.STUB:
            hours = 12
        elif verification.found or verification.matched_files:
            hours = 8
        else:
            hours = 16
        words = set(re.findall(r"[a-z]+", claim.claim.lower()))
        if words & BROAD_CLAIM_WORDS:
            hours *= 1.5
        return create_effort_estimate(hours)

    @staticmethod
    def _reality(verification: Verification, matched: int) -> str:
        if verification.status == GapStatus.STUB:
            return "Only stub implementation exists"
        if verification.signature_verified:
            return f"Implemented by {verification.symbol}"
        if matched:
            return "Related code exists but claim is overstated"
        return "No implementation found"
