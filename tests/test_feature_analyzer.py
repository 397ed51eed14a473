"""Tests for documentation claim extraction and feature gap analysis."""

import pytest

from analyzers import FeatureGapAnalyzer
from analyzers.feature_analyzer import (
    calculate_accuracy,
    classify_doc_type,
    find_doc_files,
    is_feature_claim,
    parse_documentation,
    recommend,
)
from contracts import (
    DocType,
    FeatureGap,
    FeatureGapRecommendation,
    FeatureGapStatus,
)
from runtime import RunContext


README = """# Demo

## Export
- Exports roadmap rows
- Provides comprehensive teleportation
- 2024-01-01 release that supports nothing new
- TODO: supports plugins
"""

GUIDE = """# Guide

**Allows archive pruning** on demand.
"""

CODE = {
    "src/roadmap_exports.py": "def export_csv(roadmap):\n    return render(roadmap)\n",
    "src/archive.py": "def compress(data):\n    return pack(data)\n",
}


def _write(root, files):
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def _analyze(tmp_path, context=None):
    _write(tmp_path / "repo", {"README.md": README, "docs/guide.md": GUIDE})
    _write(tmp_path / "code", CODE)
    analyzer = FeatureGapAnalyzer(context or RunContext())
    gaps = analyzer.analyze_features(tmp_path / "repo", tmp_path / "code")
    return analyzer, {g.id: g for g in gaps}


def _make_gap(accuracy: int) -> FeatureGap:
    return FeatureGap(
        id=f"feature-gap-readme-{accuracy}",
        advertised_feature="Export",
        claim="Exports things",
        source="README.md:1",
        accuracy_score=accuracy,
    )


class TestClaimExtraction:
    """Test finding feature claims in markdown."""

    @pytest.mark.parametrize("text,expected", [
        ("Supports CSV export", True),
        ("Can export roadmaps", True),
        ("v2.0 supports plugins", False),
        ("2024-01-01 supports plugins", False),
        ("TODO supports plugins", False),
        ("Note: supports plugins", False),
        ("A list of things", False),
    ])
    def test_is_feature_claim(self, text, expected):
        assert is_feature_claim(text) is expected

    @pytest.mark.parametrize("name,doc_type", [
        ("README.md", DocType.README),
        ("ROADMAP.md", DocType.ROADMAP),
        ("CHANGELOG.md", DocType.CHANGELOG),
        ("auth-spec.md", DocType.SPEC),
        ("getting-started.md", DocType.GUIDE),
        ("FEATURES.md", DocType.GUIDE),
        ("notes.md", DocType.OTHER),
    ])
    def test_classify_doc_type(self, name, doc_type):
        assert classify_doc_type(name) == doc_type

    def test_bullets_carry_section_and_line(self):
        claims = parse_documentation(README, "README.md", DocType.README)
        assert [(c.claim, c.line, c.section) for c in claims] == [
            ("Exports roadmap rows", 4, "Export"),
            ("Provides comprehensive teleportation", 5, "Export"),
        ]
        assert claims[0].keywords == ["exports", "roadmap", "rows"]
        assert claims[0].doc_type == DocType.README

    def test_bold_markers_are_stripped_from_bullets(self):
        claims = parse_documentation("- **Fast** search supports filters\n", "README.md")
        assert claims[0].claim == "Fast search supports filters"

    def test_only_long_bold_phrases_outside_bullets(self):
        text = "**Supports export** and **Provides offline synchronisation**\n"
        claims = parse_documentation(text, "README.md")
        assert [c.claim for c in claims] == ["Provides offline synchronisation"]

    def test_find_doc_files(self, tmp_path):
        _write(tmp_path, {
            "README.md": "# x\n",
            "CHANGELOG.md": "# x\n",
            "NOTES.md": "# x\n",
            "docs/guide.md": "# x\n",
            "docs/api/index.md": "# x\n",
            "docs/node_modules/pkg/readme.md": "# x\n",
        })
        found = [p.relative_to(tmp_path).as_posix() for p in find_doc_files(tmp_path)]
        assert found == ["README.md", "CHANGELOG.md", "docs/api/index.md", "docs/guide.md"]


class TestRecommendation:
    """Test recommendations and accuracy averaging."""

    def test_recommend(self):
        assert recommend(FeatureGapStatus.ACCURATE, 0, 16) == FeatureGapRecommendation.NONE
        assert recommend(FeatureGapStatus.MISLEADING, 40, 16) == FeatureGapRecommendation.ADD_DISCLAIMER
        assert recommend(FeatureGapStatus.FALSE, 16, 16) == FeatureGapRecommendation.IMPLEMENT_FEATURE
        assert recommend(FeatureGapStatus.FALSE, 24, 16) == FeatureGapRecommendation.UPDATE_DOCUMENTATION

    def test_calculate_accuracy(self):
        assert calculate_accuracy([]) == 100.0
        assert calculate_accuracy([_make_gap(90), _make_gap(0), _make_gap(50)]) == 46.7

    def test_status_follows_accuracy(self):
        assert _make_gap(95).status == FeatureGapStatus.ACCURATE
        assert _make_gap(40).status == FeatureGapStatus.MISLEADING
        assert _make_gap(39).status == FeatureGapStatus.FALSE


class TestFeatureGapAnalyzer:
    """Test verifying claims against a codebase."""

    def test_every_claim_is_verified(self, tmp_path):
        analyzer, gaps = _analyze(tmp_path)
        assert list(gaps) == ["feature-gap-readme-4", "feature-gap-readme-5", "feature-gap-guide-3"]
        assert len(analyzer.claims) == 3

    def test_accurate_claim(self, tmp_path):
        _, gaps = _analyze(tmp_path)
        gap = gaps["feature-gap-readme-4"]
        assert gap.accuracy_score == 90
        assert gap.status == FeatureGapStatus.ACCURATE
        assert gap.recommendation == FeatureGapRecommendation.NONE
        assert gap.reality == "Implemented by export_csv"
        assert gap.advertised_feature == "Export"
        assert gap.source == "README.md:4"
        assert gap.effort is None

    def test_false_broad_claim(self, tmp_path):
        _, gaps = _analyze(tmp_path)
        gap = gaps["feature-gap-readme-5"]
        assert gap.accuracy_score == 0
        assert gap.status == FeatureGapStatus.FALSE
        assert gap.reality == "No implementation found"
        assert gap.effort.hours == 24
        assert gap.recommendation == FeatureGapRecommendation.UPDATE_DOCUMENTATION

    def test_misleading_claim(self, tmp_path):
        _, gaps = _analyze(tmp_path)
        gap = gaps["feature-gap-guide-3"]
        assert gap.accuracy_score == 50
        assert gap.status == FeatureGapStatus.MISLEADING
        assert gap.reality == "Related code exists but claim is overstated"
        assert gap.recommendation == FeatureGapRecommendation.ADD_DISCLAIMER
        assert gap.effort.hours == 8
        assert gap.source == "docs/guide.md:3"

    def test_claims_on_one_line_get_distinct_ids(self, tmp_path):
        text = "**Provides offline synchronisation** and **Supports scheduled exporting**\n"
        _write(tmp_path / "repo", {"README.md": text})
        _write(tmp_path / "code", CODE)
        gaps = FeatureGapAnalyzer(RunContext()).analyze_features(tmp_path / "repo", tmp_path / "code")
        assert [g.id for g in gaps] == ["feature-gap-readme-1", "feature-gap-readme-1-2"]

    def test_unreadable_doc_is_a_warning(self, tmp_path):
        context = RunContext()
        (tmp_path / "repo").mkdir()
        (tmp_path / "repo" / "README.md").write_bytes(b"\xff\xfe\xfa broken")
        _write(tmp_path / "code", CODE)
        gaps = FeatureGapAnalyzer(context).analyze_features(tmp_path / "repo", tmp_path / "code")
        assert gaps == []
        assert context.warnings[0].stage == "feature-gaps"
        assert context.warnings[0].path.endswith("README.md")

    def test_expired_deadline_returns_partial_result(self, tmp_path):
        context = RunContext(deadline_seconds=1e-9)
        _, gaps = _analyze(tmp_path, context)
        assert gaps == {}
        assert context.partial
        assert "PARTIAL_RESULT" in [w.code for w in context.warnings]
