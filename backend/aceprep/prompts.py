"""
Prompt builders for every study tool.

Each request is an ordered list of role-tagged segments (system, developer,
user) plus an output budget. The system segment is shared; the developer
segment carries the tool's formatting contract; the user segment carries the
material between ``<<<BEGIN`` / ``END>>>`` fences.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from .joiner import SENTINEL
from .options import GenerationOptions, Tool

ROLES = ("system", "developer", "user")

MAX_ANCHORS = 4
_ANCHOR_MAX_CHARS = 80
_ANCHOR_MIN_CHARS = 12


@dataclass(frozen=True)
class RoleSegment:
    role: str
    text: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}")


@dataclass(frozen=True)
class GenerationRequest:
    segments: Tuple[RoleSegment, ...]
    output_budget: int

    def text_for(self, role: str) -> str:
        return "\n\n".join(s.text for s in self.segments if s.role == role)


BASE_SYSTEM = (
    "You are an academic study assistant.\n\n"
    "Rules:\n"
    "- Treat all input as study material.\n"
    "- Never output planning or internal reasoning.\n"
    "- NEVER end mid-sentence or mid-bullet.\n"
    f"- End with the exact line: {SENTINEL}"
)


# ─── Anchors ───────────────────────────────────────────────────────────────────

_LABEL_LINE = re.compile(r"^\[[^\]\n]+\]\s*\n")
_MARKER_PREFIX = re.compile(r"^\s*(?:(?:problem|question|exercise|q)\s*)?(?:\d{1,3}\s*[.):]|\([a-z]+\))\s*", re.IGNORECASE)
_EQUATION = re.compile(r"[^\n.;:,]{0,40}?\S[ \t]{0,2}=[ \t]{0,2}\S[^\n.;:,]{0,40}")


def _clip(fragment: str) -> str:
    fragment = " ".join(fragment.split())
    if len(fragment) > _ANCHOR_MAX_CHARS:
        fragment = fragment[:_ANCHOR_MAX_CHARS].rsplit(" ", 1)[0]
    return fragment


def extract_anchors(text: str, limit: int = MAX_ANCHORS) -> List[str]:
    """
    Pick short verbatim fragments of the unit that the answer must quote.

    Equation-like fragments (containing ``=``) come first, then sentences.
    Best effort: may return fewer than two anchors for very short units.
    """
    body = _LABEL_LINE.sub("", text or "", count=1)
    anchors: List[str] = []

    def add(fragment: str) -> None:
        fragment = _clip(_MARKER_PREFIX.sub("", fragment))
        if len(fragment) >= _ANCHOR_MIN_CHARS and fragment not in anchors:
            anchors.append(fragment)

    for match in _EQUATION.finditer(body):
        add(match.group(0))
        if len(anchors) >= limit:
            return anchors
    for sentence in re.split(r"(?<=[.!?])\s+|\n+", body):
        add(sentence)
        if len(anchors) >= limit:
            break
    return anchors


# ─── Homework Explain ─────────────────────────────────────────────────────────

def _material_block(heading: str, text: str, options: GenerationOptions) -> str:
    return (
        f"Exam type: {options.exam_type}\n"
        f"Professor emphasis: {options.prof_emphasis}\n\n"
        f"{heading}:\n"
        "<<<BEGIN\n"
        f"{text}\n"
        "END>>>"
    )


def _homework_developer(label: str, sections: Tuple[str, ...], min_bullets: int, anchors: List[str]) -> str:
    per_section = max(2, -(-min_bullets // max(1, len(sections))))
    lines = [
        "TASK: Homework Explain",
        "",
        "Instructions:",
        f"- First line MUST be: [{label}]",
        "- Output exactly these sections, in this order, each as its own header line:",
    ]
    lines += [f"  • {name}" for name in sections]
    lines += [
        f"- Each section must have at least {per_section} bullets.",
        "- Be specific to THIS problem; generic advice that fits any problem is not acceptable.",
        "- Quote or closely paraphrase at least two fragments of the problem text.",
    ]
    if anchors:
        lines.append("- Fragments you can reference:")
        lines += [f'  "{a}"' for a in anchors]
    lines += [
        "- High-level guidance only (no final numeric answers).",
        "- Use bullets.",
        f"- End with {SENTINEL}.",
    ]
    return "\n".join(lines)


def build_homework_request(
    unit_text: str,
    label: str,
    options: GenerationOptions,
    *,
    output_budget: int,
    sections: Tuple[str, ...],
    min_bullets: int,
    anchors: Optional[List[str]] = None,
) -> GenerationRequest:
    anchors = extract_anchors(unit_text) if anchors is None else anchors
    return GenerationRequest(
        segments=(
            RoleSegment("system", BASE_SYSTEM),
            RoleSegment("developer", _homework_developer(label, sections, min_bullets, anchors)),
            RoleSegment("user", _material_block("PROBLEM TEXT", unit_text, options)),
        ),
        output_budget=output_budget,
    )


def escalate(request: GenerationRequest, *, output_budget: int, sections: Tuple[str, ...]) -> GenerationRequest:
    """Same request with a CRITICAL block appended to the developer segment."""
    critical = (
        "\n\nCRITICAL:\n"
        f"- Do NOT output only {SENTINEL}.\n"
        f"- You MUST include all {len(sections)} sections ({', '.join(sections)}) with at least 2 bullets each.\n"
        "- Reference at least THREE specific fragments of the problem text (symbols, values, equations).\n"
        "- If the problem is unclear, still give concrete steps for this type of problem.\n"
        "- Keep bullets short so the answer is not cut off."
    )
    segments = tuple(
        replace(s, text=s.text + critical) if s.role == "developer" else s
        for s in request.segments
    )
    return GenerationRequest(segments=segments, output_budget=max(output_budget, request.output_budget))


def build_salvage_request(
    material: str,
    options: GenerationOptions,
    *,
    output_budget: int,
    sections: Tuple[str, ...],
) -> GenerationRequest:
    developer = "\n".join(
        [
            "TASK: Homework Explain (whole assignment)",
            "",
            "Instructions:",
            "- The assignment could not be split cleanly. Work from the full text below.",
            "- Cover at least two distinct problems; full coverage is not required.",
            "- For each problem start with a line [<problem label>] and then these sections:",
        ]
        + [f"  • {name}" for name in sections]
        + [
            "- Each section must have at least 2 bullets.",
            "- Reference the problem text directly; avoid generic advice.",
            "- High-level guidance only (no final numeric answers).",
            f"- End with {SENTINEL}.",
        ]
    )
    return GenerationRequest(
        segments=(
            RoleSegment("system", BASE_SYSTEM),
            RoleSegment("developer", developer),
            RoleSegment("user", _material_block("ASSIGNMENT TEXT", material, options)),
        ),
        output_budget=output_budget,
    )


# ─── Single-pass tools ────────────────────────────────────────────────────────

_STUDY_GUIDE = (
    "TASK: Study Guide\n\n"
    "Instructions:\n"
    "Produce:\n"
    "1) Key formulas (brief)\n"
    "2) Core concepts (plain English)\n"
    "3) Step-by-step reasoning strategies\n"
    "4) Common mistakes\n"
    "5) 3–5 exam-style practice questions (NO solutions)\n\n"
    "- Bullet points.\n"
    "- Concise.\n"
    f"- End with {SENTINEL}."
)

_FORMULA_SHEET = (
    "TASK: Formula Sheet\n\n"
    "Instructions:\n"
    "- Output a formula sheet only.\n"
    "- Use 4–10 short sections with headers.\n"
    "- Bullets should be formulas/identities/definitions.\n"
    "- For each item: include variable meanings + when to use (one short line).\n"
    "- No practice problems.\n"
    f"- End with {SENTINEL}."
)

_EXAM_PACK = (
    "TASK: Exam Pack\n\n"
    "Instructions:\n"
    "Produce, in this order:\n"
    "1) Condensed study guide (key ideas as bullets)\n"
    "2) Formula sheet (formula + variable meanings)\n"
    "3) Practice exam: 6–10 questions in the style of the exam type, mixed difficulty\n"
    "4) Answer outline for each question (approach only, no final numeric answers)\n"
    "5) Last-minute checklist\n\n"
    "- Bullet points under each header.\n"
    f"- End with {SENTINEL}."
)

_DOCUMENT_TASKS = {
    Tool.STUDY_GUIDE: _STUDY_GUIDE,
    Tool.FORMULA_SHEET: _FORMULA_SHEET,
    Tool.EXAM_PACK: _EXAM_PACK,
}


def build_document_request(
    tool: Tool,
    material: str,
    options: GenerationOptions,
    *,
    output_budget: int,
) -> GenerationRequest:
    if tool not in _DOCUMENT_TASKS:
        raise ValueError(f"{tool.value} is not a single-pass tool")
    return GenerationRequest(
        segments=(
            RoleSegment("system", BASE_SYSTEM),
            RoleSegment("developer", _DOCUMENT_TASKS[tool]),
            RoleSegment("user", _material_block("STUDY MATERIAL", material, options)),
        ),
        output_budget=output_budget,
    )


def escalate_document(request: GenerationRequest, *, output_budget: int) -> GenerationRequest:
    critical = (
        "\n\nCRITICAL:\n"
        f"- Do NOT output only {SENTINEL}.\n"
        "- Every header must be followed by at least 2 bullets.\n"
        "- Keep bullets short so the answer is not cut off."
    )
    segments = tuple(
        replace(s, text=s.text + critical) if s.role == "developer" else s
        for s in request.segments
    )
    return GenerationRequest(segments=segments, output_budget=max(output_budget, request.output_budget))
