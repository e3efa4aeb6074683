"""HTML text content: a formatted snippet rendered as a small document."""

from collections.abc import Mapping
from typing import Any

import lxml.html
from lxml import etree

from feedboard.models.content import Content, RenderedFile

# Elements that never make it to a screen
_STRIPPED_TAGS = ("script", "style", "iframe", "object", "embed")


def sanitize_fragment(markup: str) -> str:
    """Drop active elements and inline event handlers from an HTML fragment."""
    if not (markup or "").strip():
        return '<div class="html-text"></div>'

    root = lxml.html.fragment_fromstring(markup, create_parent="div")
    for element in root.xpath("|".join(f"//{tag}" for tag in _STRIPPED_TAGS)):
        element.drop_tree()
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        for attribute in list(element.attrib):
            if attribute.lower().startswith("on"):
                del element.attrib[attribute]
    root.set("class", "html-text")
    return etree.tostring(root, encoding="unicode", method="html")


class HtmlText(Content):
    __mapper_args__ = {"polymorphic_identity": "HtmlText"}

    display_name = "HTML Text"
    form_attributes = Content.form_attributes + ("data",)

    def validate(self) -> dict[str, list[str]]:
        errors = super().validate()
        if not (self.data or "").strip():
            errors.setdefault("data", []).append("can't be blank")
        return errors

    def render(self, params: Mapping[str, Any]) -> RenderedFile:
        body = sanitize_fragment(self.data or "")
        document = f"<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head><body>{body}</body></html>"
        return RenderedFile(
            data=document.encode("utf-8"),
            file_name=f"html-text-{self.id}.html",
            file_type="text/html; charset=utf-8",
        )

    @classmethod
    def preview(cls, data: str) -> str:
        return sanitize_fragment(data or "")
