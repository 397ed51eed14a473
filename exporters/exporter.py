"""Roadmap exporters: markdown, json, csv, github-issues and html.

Every format renders to a string first; writing is a separate atomic step,
so a failed render never touches an existing file. A failure in one format
is an ExportError for that format only.
"""

import csv
import io
import json
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from contracts import (
    DEFAULT_FILENAMES,
    ExportError,
    ExportFormat,
    ExportOptions,
    ExportResult,
    Roadmap,
    RoadmapItem,
)
from logging_config import get_logger
from runtime import RunContext, atomic_write_text

logger = get_logger(__name__)


TEMPLATES_DIR = Path(__file__).parent / "templates"

CSV_HEADER = ["Priority", "Phase", "Title", "Type", "Effort (hours)", "Status", "Tags", "Dependencies"]


def _hours(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def _cell(text: str) -> str:
    """Make text safe inside a markdown table cell."""
    return text.replace("|", "\\|").replace("\n", " ")


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html", "html.j2"), default_for_string=False),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["hours"] = _hours
    env.filters["cell"] = _cell
    return env


def issue_body(item: RoadmapItem) -> str:
    parts = ["## Description\n", item.description or item.title, ""]

    parts.append("## Effort Estimate\n")
    parts.append(f"**Hours:** {_hours(item.effort.hours)}h")
    parts.append(f"**Range:** {_hours(item.effort.range.optimistic)}-{_hours(item.effort.range.pessimistic)}h")
    parts.append(f"**Confidence:** {item.effort.confidence.value}")
    parts.append("")

    if item.acceptance_criteria:
        parts.append("## Acceptance Criteria\n")
        parts.extend(f"- [ ] {c}" for c in item.acceptance_criteria)
        parts.append("")

    if item.dependencies:
        parts.append("## Dependencies\n")
        parts.extend(f"- Depends on: `{d}`" for d in item.dependencies)
        parts.append("")

    if item.source:
        parts.append("## Source\n")
        parts.append(f"**Type:** {item.source.type}")
        if item.source.spec:
            parts.append(f"**Spec:** {item.source.spec}")
        if item.source.requirement:
            parts.append(f"**Requirement:** {item.source.requirement}")
        if item.source.document:
            parts.append(f"**Document:** {item.source.document}")
        parts.append("")

    parts.append("---")
    parts.append(f"**Priority:** {item.priority.value} | **Phase:** {item.phase} | **Type:** {item.type.value}")
    return "\n".join(parts)


class RoadmapExporter:
    """Renders a Roadmap in the supported formats.

    Usage:
        exporter = RoadmapExporter()
        result = exporter.export(roadmap, ExportFormat.MARKDOWN, ExportOptions(output_path="ROADMAP.md"))
    """

    def __init__(self):
        self.env = _environment()
        self._renderers: Dict[ExportFormat, Callable[[Roadmap, ExportOptions], str]] = {
            ExportFormat.MARKDOWN: self.export_markdown,
            ExportFormat.JSON: self.export_json,
            ExportFormat.CSV: self.export_csv,
            ExportFormat.GITHUB_ISSUES: self.export_github_issues,
            ExportFormat.HTML: self.export_html,
        }

    def export(
        self,
        roadmap: Roadmap,
        format: Union[ExportFormat, str],
        options: Optional[ExportOptions] = None,
    ) -> ExportResult:
        """Render one format and write it when options.output_path is set.

        Raises:
            ExportError: If rendering or writing fails
        """
        options = options or ExportOptions()
        try:
            format = ExportFormat(format)
        except ValueError as e:
            raise ExportError(str(format), f"Unsupported export format: {format}") from e

        try:
            content = self._renderers[format](roadmap, options)
            if options.output_path:
                atomic_write_text(options.output_path, content)
        except ExportError:
            raise
        except (OSError, TemplateError, TypeError, ValueError) as e:
            raise ExportError(format.value, str(e)) from e

        logger.info("Exported roadmap as %s%s", format.value,
                    f" to {options.output_path}" if options.output_path else "")
        return ExportResult(format=format, success=True, content=content, output_path=options.output_path)

    def export_markdown(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> str:
        return self.env.get_template("roadmap.md.j2").render(roadmap=roadmap)

    def export_html(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> str:
        return self.env.get_template("roadmap.html.j2").render(roadmap=roadmap)

    def export_json(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> str:
        return roadmap.model_dump_json(indent=2)

    def export_csv(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for item in roadmap.all_items:
            writer.writerow([
                item.priority.value,
                item.phase,
                item.title,
                item.type.value,
                _hours(item.effort.hours),
                item.status.value,
                "; ".join(item.tags),
                "; ".join(item.dependencies),
            ])
        return buffer.getvalue()

    def github_issues(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> List[dict]:
        """One issue record per item, always labelled with priority and type."""
        options = options or ExportOptions()
        prefix = options.label_prefix
        issues = []
        for item in roadmap.all_items:
            labels = [f"{prefix}{item.priority.value}", f"{prefix}{item.type.value}"]
            labels += [f"{prefix}{tag}" for tag in item.tags if f"{prefix}{tag}" not in labels]
            issue = {
                "title": item.title,
                "body": issue_body(item),
                "labels": labels,
            }
            if options.milestone_name:
                issue["milestone"] = f"{options.milestone_name} - Phase {item.phase}"
            assignee = item.owner or options.default_assignee
            if assignee:
                issue["assignee"] = assignee
            issues.append(issue)
        return issues

    def export_github_issues(self, roadmap: Roadmap, options: Optional[ExportOptions] = None) -> str:
        return json.dumps(self.github_issues(roadmap, options), indent=2, ensure_ascii=False)

    def export_all(
        self,
        roadmap: Roadmap,
        output_dir: Union[str, Path],
        formats: Iterable[Union[ExportFormat, str]],
        context: Optional[RunContext] = None,
        options: Optional[ExportOptions] = None,
    ) -> List[ExportResult]:
        """Write every requested format under output_dir.

        A failing format yields an unsuccessful ExportResult (and a run
        warning when a context is given); the other formats are still written.
        """
        base = options or ExportOptions()
        results = []
        for requested in formats:
            try:
                format = ExportFormat(requested)
            except ValueError:
                self._record(context, ExportError(str(requested), f"Unsupported export format: {requested}"))
                continue
            path = Path(output_dir) / DEFAULT_FILENAMES[format]
            try:
                results.append(self.export(roadmap, format, base.model_copy(update={"output_path": str(path)})))
            except ExportError as e:
                results.append(ExportResult(format=format, success=False, error=e.message))
                self._record(context, e, str(path))
        return results

    @staticmethod
    def _record(context: Optional[RunContext], error: ExportError, path: Optional[str] = None) -> None:
        if context is not None:
            context.warn_error("export", error, path=path)
        else:
            logger.error("%s", error.message)


def export(
    roadmap: Roadmap,
    format: Union[ExportFormat, str],
    options: Optional[ExportOptions] = None,
) -> ExportResult:
    """Convenience function for a single export."""
    return RoadmapExporter().export(roadmap, format, options)


def export_all(
    roadmap: Roadmap,
    output_dir: Union[str, Path],
    formats: Iterable[Union[ExportFormat, str]],
    context: Optional[RunContext] = None,
) -> List[ExportResult]:
    """Convenience function writing several formats."""
    return RoadmapExporter().export_all(roadmap, output_dir, formats, context)
