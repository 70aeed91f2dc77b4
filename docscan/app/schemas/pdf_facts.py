"""
PDF structural facts schema.

A flat, immutable summary of PDF/UA-relevant constructs detected in a raw
PDF byte stream. Derived once per scan by the structural scanner and
consumed by the PDF rule engine and report emitters. Emitters MUST NOT
re-derive anything from the document bytes.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PdfStructuralFacts(BaseModel):
    """
    Presence/absence summary of PDF/UA-relevant constructs.

    has_alt_on_figures is tri-state:
        True  -> at least one figure carries non-empty alt content
        False -> figures exist, none carries alt content
        None  -> no figures to evaluate
    """

    has_text: bool = False
    is_tagged: bool = False
    has_title: bool = False
    title: str = ""
    has_lang: bool = False
    lang: str = ""
    has_structure_tree: bool = False
    has_bookmarks: bool = False
    has_forms: bool = False
    page_count: int = Field(0, ge=0)
    has_links: bool = False
    has_figures: bool = False
    has_alt_on_figures: Optional[bool] = None
    has_tables: bool = False
    has_lists: bool = False
    has_role_map: bool = False
    has_embedded_fonts: bool = False
    has_unicode_map: bool = False
    is_encrypted: bool = False

    @model_validator(mode="after")
    def enforce_figure_alt_tristate(self):
        """has_alt_on_figures is None iff has_figures is False."""
        if self.has_figures and self.has_alt_on_figures is None:
            raise ValueError(
                "has_alt_on_figures must be evaluated when figures exist"
            )
        if not self.has_figures and self.has_alt_on_figures is not None:
            raise ValueError(
                "has_alt_on_figures must be None when no figures exist"
            )
        return self

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
