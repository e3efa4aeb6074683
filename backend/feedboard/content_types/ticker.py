"""Ticker content: one line of plain text scrolled across the screen."""

import html
import re
from collections.abc import Mapping
from typing import Any

from feedboard.models.content import Content, RenderedFile


class Ticker(Content):
    __mapper_args__ = {"polymorphic_identity": "Ticker"}

    display_name = "Ticker Text"
    form_attributes = Content.form_attributes + ("data",)

    MAX_LENGTH = 500

    def validate(self) -> dict[str, list[str]]:
        errors = super().validate()
        text = (self.data or "").strip()
        if not text:
            errors.setdefault("data", []).append("can't be blank")
        elif len(text) > self.MAX_LENGTH:
            errors.setdefault("data", []).append(
                f"is too long (maximum is {self.MAX_LENGTH} characters)"
            )
        return errors

    def render(self, params: Mapping[str, Any]) -> RenderedFile:
        slug = re.sub(r"[^a-z0-9]+", "-", (self.name or "ticker").lower()).strip("-")
        return RenderedFile(
            data=(self.data or "").encode("utf-8"),
            file_name=f"{slug or 'ticker'}.txt",
            file_type="text/plain; charset=utf-8",
        )

    @classmethod
    def preview(cls, data: str) -> str:
        return f'<p class="ticker">{html.escape(data or "")}</p>'
