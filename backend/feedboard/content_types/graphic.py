"""Graphic content: a single uploaded image shown full screen."""

import html
from collections.abc import Mapping
from typing import Any, Optional

from feedboard.models.content import (
    ActionRequest,
    Content,
    Media,
    RenderedFile,
    content_action,
)


class Graphic(Content):
    """Uploaded image. The original file is what screens display."""

    __mapper_args__ = {"polymorphic_identity": "Graphic"}

    display_name = "Graphic"
    form_attributes = Content.form_attributes + ("media",)

    ACCEPTED_FILE_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml")

    @property
    def original(self) -> Optional[Media]:
        for media in self.media:
            if media.key == "original" and not media.is_placeholder:
                return media
        return None

    def validate(self) -> dict[str, list[str]]:
        errors = super().validate()
        original = self.original
        if original is None or not original.file_data:
            errors.setdefault("media", []).append("an image file is required")
        elif original.file_type not in self.ACCEPTED_FILE_TYPES:
            errors.setdefault("media", []).append(
                f"file type {original.file_type!r} is not a supported image"
            )
        return errors

    def render(self, params: Mapping[str, Any]) -> RenderedFile:
        original = self.original
        if original is None or original.file_data is None:
            raise ValueError("no image uploaded")
        return RenderedFile(
            data=original.file_data,
            file_name=original.file_name or f"graphic-{self.id}",
            file_type=original.file_type or "application/octet-stream",
        )

    @classmethod
    def preview(cls, data: str) -> str:
        # data is the image URL the form is about to submit
        return f'<img src="{html.escape(data or "", quote=True)}" alt="Preview" />'

    @content_action("media_info")
    async def media_info(self, request: ActionRequest) -> Optional[dict]:
        """Describe the uploaded file. Reads no parameters."""
        original = self.original
        if original is None:
            return None
        return {
            "file_name": original.file_name,
            "file_type": original.file_type,
            "file_size": original.file_size,
        }
