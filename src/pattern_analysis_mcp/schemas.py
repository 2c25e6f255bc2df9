"""Extraction schemas — one static declaration per analysis kind.

A schema names the fields a fabric pattern's output is expected to contain
and the CSV column each one lands in. Adding a new pattern means adding one
entry to ``SCHEMAS``; nothing else in the pipeline branches on the kind.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models.analysis import AnalysisKind


@dataclass(frozen=True)
class FieldSpec:
    """One extracted field.

    Attributes:
        key: Name used in the record's field maps.
        keyword: Text searched for in the response (case-insensitive).
        column: CSV header for this field.
    """

    key: str
    keyword: str
    column: str


@dataclass(frozen=True)
class ExtractionSchema:
    """Declarative description of what to pull out of one pattern's output."""

    analysis_kind: AnalysisKind
    title: str
    export_stem: str
    scored_fields: tuple[FieldSpec, ...] = ()
    labeled_fields: tuple[FieldSpec, ...] = ()
    text_sections: tuple[FieldSpec, ...] = ()
    list_sections: tuple[FieldSpec, ...] = ()

    @property
    def headings(self) -> tuple[FieldSpec, ...]:
        """Fields located by a heading line (list and text sections)."""
        return self.text_sections + self.list_sections

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        """All fields in export column order."""
        return self.scored_fields + self.labeled_fields + self.text_sections + self.list_sections


def _score(key: str, keyword: str | None = None) -> FieldSpec:
    return FieldSpec(key, keyword or key, f"{key.replace('_', ' ').title()} Score")


def _field(key: str, keyword: str | None = None, column: str | None = None) -> FieldSpec:
    return FieldSpec(key, keyword or key.replace("_", " "), column or key.replace("_", " ").title())


_RECOMMENDATIONS = _field("recommendations")

SCHEMAS: dict[AnalysisKind, ExtractionSchema] = {
    AnalysisKind.COPYWRITING_SCORE: ExtractionSchema(
        analysis_kind=AnalysisKind.COPYWRITING_SCORE,
        title="Copywriting Score Analysis",
        export_stem="copywriting-analysis",
        scored_fields=(
            _score("headline"),
            _score("persuasion"),
            _score("clarity"),
            _score("overall"),
        ),
        list_sections=(_field("improvements"),),
    ),
    AnalysisKind.WIREFRAME_FLOW: ExtractionSchema(
        analysis_kind=AnalysisKind.WIREFRAME_FLOW,
        title="Wireframe Flow Analysis",
        export_stem="wireframe-analysis",
        scored_fields=(
            _score("structure"),
            _score("navigation"),
            _score("conversion"),
        ),
        list_sections=(_RECOMMENDATIONS,),
    ),
    AnalysisKind.COMPETITIVE_AUDIT: ExtractionSchema(
        analysis_kind=AnalysisKind.COMPETITIVE_AUDIT,
        title="Competitive Audit",
        export_stem="competitive-analysis",
        scored_fields=(_score("competitive"),),
        list_sections=(
            _field("strengths"),
            _field("weaknesses"),
            _field("opportunities"),
            _field("threats"),
            _RECOMMENDATIONS,
        ),
    ),
    AnalysisKind.STORYBRAND_VARIANT: ExtractionSchema(
        analysis_kind=AnalysisKind.STORYBRAND_VARIANT,
        title="StoryBrand Analysis",
        export_stem="storybrand-analysis",
        labeled_fields=(
            _field("character"),
            _field("problem"),
            _field("guide"),
            _field("plan"),
            _field("call_to_action", column="Call to Action"),
            _field("success"),
            _field("failure"),
        ),
        list_sections=(_RECOMMENDATIONS,),
    ),
    AnalysisKind.EXTRACT_WISDOM: ExtractionSchema(
        analysis_kind=AnalysisKind.EXTRACT_WISDOM,
        title="Extracted Wisdom",
        export_stem="wisdom-extractions",
        text_sections=(
            _field("summary"),
            _field("takeaway", keyword="one-sentence takeaway", column="One-Sentence Takeaway"),
        ),
        list_sections=(
            _field("ideas"),
            _field("insights"),
            _field("quotes", column="Notable Quotes"),
            _field("habits"),
            _field("facts"),
            _field("references"),
            _RECOMMENDATIONS,
        ),
    ),
}


def get_schema(kind: AnalysisKind | str) -> ExtractionSchema:
    """Look up the schema for *kind*.

    Raises:
        ValueError: If *kind* names no known analysis.
    """
    try:
        return SCHEMAS[AnalysisKind(kind)]
    except ValueError:
        valid = ", ".join(k.value for k in AnalysisKind)
        raise ValueError(f"Unknown analysis kind '{kind}'. Available: {valid}") from None
