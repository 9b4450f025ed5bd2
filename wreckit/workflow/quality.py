"""Content checks for research.md and plan.md.

The transition guards only ask whether an artifact exists. These checks
look inside it: required section headings, file:line citations in
research, and at least one implementation phase in a plan. Like the
guards they never raise; the result lists every problem found.
"""

import re
from dataclasses import dataclass, field

RESEARCH_SECTIONS = [
    "Header",
    "Research Question",
    "Summary",
    "Current State Analysis",
    "Key Files",
    "Technical Considerations",
    "Risks and Mitigations",
    "Recommended Approach",
    "Open Questions",
]

PLAN_SECTIONS = [
    "Header",
    "Overview",
    "Current State",
    "Desired End State",
    "What We're NOT Doing",
    "Implementation Approach",
    "Phases",
    "Testing Strategy",
]

# "Header" is satisfied by any level-1 title rather than a heading named Header
TITLE_SECTION = "header"

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_CITATION = re.compile(r"\b[\w./-]+\.[\w-]+:\d+(?:-\d+)?\b")


@dataclass
class ResearchQualityOptions:
    enabled: bool = True
    min_citations: int = 5
    min_summary_length: int = 100
    min_analysis_length: int = 150
    required_sections: list[str] = field(default_factory=lambda: list(RESEARCH_SECTIONS))


@dataclass
class PlanQualityOptions:
    enabled: bool = True
    min_phases: int = 1
    required_sections: list[str] = field(default_factory=lambda: list(PLAN_SECTIONS))


@dataclass
class ResearchQuality:
    valid: bool
    citations: int = 0
    summary_length: int = 0
    analysis_length: int = 0
    missing_sections: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class PlanQuality:
    valid: bool
    phases: int = 0
    missing_sections: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _normalize(name: str) -> str:
    return " ".join(name.lower().split())


def _headings(content: str) -> list[tuple[int, int, str]]:
    """(line number, level, normalized title) for every markdown heading."""
    found = []
    in_fence = False
    for lineno, line in enumerate(content.splitlines()):
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        m = _HEADING.match(line)
        if m:
            found.append((lineno, len(m.group(1)), _normalize(m.group(2))))
    return found


def find_missing_sections(content: str, required: list[str]) -> list[str]:
    headings = _headings(content)
    titles = {title for _, _, title in headings}
    missing = []
    for section in required:
        wanted = _normalize(section)
        if wanted == TITLE_SECTION:
            if not any(level == 1 for _, level, _ in headings):
                missing.append(section)
        elif wanted not in titles:
            missing.append(section)
    return missing


def section_body(content: str, section: str) -> str:
    """Text under `section` up to the next heading of the same or a higher level."""
    lines = content.splitlines()
    headings = _headings(content)
    wanted = _normalize(section)
    for i, (lineno, level, title) in enumerate(headings):
        if title != wanted:
            continue
        end = len(lines)
        for next_lineno, next_level, _ in headings[i + 1:]:
            if next_level <= level:
                end = next_lineno
                break
        return "\n".join(lines[lineno + 1:end]).strip()
    return ""


def count_citations(content: str) -> int:
    """Count path/to/file.ext:line and path/to/file.ext:start-end references."""
    return len(_CITATION.findall(content))


def count_phases(content: str) -> int:
    """Count headings nested one level or more under the Phases section."""
    headings = _headings(content)
    for i, (_, level, title) in enumerate(headings):
        if title != "phases":
            continue
        count = 0
        for _, next_level, _ in headings[i + 1:]:
            if next_level <= level:
                break
            if next_level == level + 1:
                count += 1
        return count
    return 0


def check_research_quality(content: str, options: ResearchQualityOptions | None = None) -> ResearchQuality:
    options = options or ResearchQualityOptions()
    errors = []

    missing = find_missing_sections(content, options.required_sections)
    if missing:
        errors.append(f"Missing required sections: {', '.join(missing)}")

    citations = count_citations(content)
    if citations < options.min_citations:
        errors.append(
            f"Insufficient citations: found {citations}, "
            f"required at least {options.min_citations} file:line references"
        )

    summary_length = len(section_body(content, "Summary"))
    if summary_length < options.min_summary_length:
        errors.append(
            f"Summary section too short: {summary_length} characters, "
            f"required at least {options.min_summary_length}"
        )

    analysis_length = len(section_body(content, "Current State Analysis"))
    if analysis_length < options.min_analysis_length:
        errors.append(
            f"Current State Analysis section too short: {analysis_length} characters, "
            f"required at least {options.min_analysis_length}"
        )

    return ResearchQuality(
        valid=not errors,
        citations=citations,
        summary_length=summary_length,
        analysis_length=analysis_length,
        missing_sections=missing,
        errors=errors,
    )


def check_plan_quality(content: str, options: PlanQualityOptions | None = None) -> PlanQuality:
    options = options or PlanQualityOptions()
    errors = []

    missing = find_missing_sections(content, options.required_sections)
    if missing:
        errors.append(f"Missing required sections: {', '.join(missing)}")

    phases = count_phases(content)
    if phases < options.min_phases:
        errors.append(
            f"Insufficient implementation phases: found {phases}, required at least {options.min_phases}"
        )

    return PlanQuality(valid=not errors, phases=phases, missing_sections=missing, errors=errors)
