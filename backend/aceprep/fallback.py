"""
Template documents used when no generated output survives the quality gate.

These never call the model and never fail. They only know the labels found
in the material and the tool's structure, so the guidance is generic.
"""

from __future__ import annotations
from typing import List, Optional, Sequence

from .labeler import DEFAULT_LABEL, detect_labels
from .options import GenerationOptions, Tool
from .quality import DEFAULT_SECTIONS

NOTICE = (
    "Note: a detailed, problem-specific explanation could not be generated right now. "
    "The guidance below is general; try again later for a tailored version."
)

_HOMEWORK_BULLETS = (
    (
        "- Restate what the problem gives you (known values, units, conditions) and what it asks for.",
        "- Identify the topic the problem belongs to and the quantity you must find.",
    ),
    (
        "- Write down the governing definitions or relations for this topic before substituting numbers.",
        "- Solve symbolically first, then substitute values and track units at every step.",
        "- Check the result against limiting cases or an order-of-magnitude estimate.",
    ),
    (
        "- Mixing units or dropping a sign convention halfway through.",
        "- Applying a formula outside the conditions it assumes.",
        "- Answering a different quantity than the one the problem asks for.",
    ),
)


def _context_lines(options: GenerationOptions) -> List[str]:
    lines = []
    if options.exam_type != "unspecified":
        lines.append(f"Exam type: {options.exam_type}")
    if options.prof_emphasis != "unspecified":
        lines.append(f"Professor emphasis: {options.prof_emphasis}")
    return lines


def homework_fallback(
    material: str,
    options: GenerationOptions,
    *,
    limit: Optional[int] = None,
    sections: Sequence[str] = DEFAULT_SECTIONS,
) -> List[str]:
    """One generic guidance block per detected problem label."""
    labels = detect_labels(material, limit=limit) or [DEFAULT_LABEL]
    header = "\n".join([NOTICE] + _context_lines(options))
    blocks = [header]
    for label in labels:
        lines = [f"[{label}]"]
        for index, name in enumerate(sections):
            lines.append(name)
            bullets = _HOMEWORK_BULLETS[index] if index < len(_HOMEWORK_BULLETS) else _HOMEWORK_BULLETS[-1]
            lines.extend(bullets)
        blocks.append("\n".join(lines))
    return blocks


_DOCUMENT_SECTIONS = {
    Tool.STUDY_GUIDE: (
        ("Key formulas", ("- Collect every formula your notes use and write the variable meanings next to it.",
                          "- Mark which formulas are given on the exam and which you must memorize.")),
        ("Core concepts", ("- Summarize each topic heading in one plain-English sentence.",
                           "- Link each concept to one worked example from your notes.")),
        ("Reasoning strategies", ("- Start from what is asked, then list what is given.",
                                  "- Choose the relation that connects the two before computing anything.")),
        ("Common mistakes", ("- Unit and sign errors.",
                             "- Using a result outside the assumptions it was derived under.")),
        ("Practice", ("- Redo two homework problems per topic without looking at the solution.",
                      "- Write one exam-style question per topic for yourself.")),
    ),
    Tool.FORMULA_SHEET: (
        ("Definitions", ("- List each defined quantity with its symbol and units.",
                         "- Note the sign convention your course uses.")),
        ("Core relations", ("- Write each relation with variable meanings on the same line.",
                            "- Add one short 'use when' note per relation.")),
        ("Special cases", ("- Record simplified forms for common limits (zero, steady state, small angle).",
                           "- Note when a simplified form stops being valid.")),
    ),
    Tool.EXAM_PACK: (
        ("Study guide", ("- One summary bullet per topic heading in your notes.",
                         "- Flag topics your professor emphasized.")),
        ("Formula sheet", ("- Every formula with variable meanings and when to use it.",
                           "- Units for each quantity.")),
        ("Practice exam", ("- Pick one homework problem per topic and redo it under time pressure.",
                           "- Vary the given values and solve again.")),
        ("Last-minute checklist", ("- Calculator, formula sheet rules, and allowed materials.",
                                   "- Review common mistakes once more.")),
    ),
}


def document_fallback(tool: Tool, material: str, options: GenerationOptions) -> List[str]:
    if tool == Tool.HOMEWORK_EXPLAIN:
        return homework_fallback(material, options)
    header = "\n".join([NOTICE] + _context_lines(options))
    blocks = [header]
    for title, bullets in _DOCUMENT_SECTIONS.get(tool, _DOCUMENT_SECTIONS[Tool.STUDY_GUIDE]):
        blocks.append("\n".join([title, *bullets]))
    return blocks
