"""Content core services."""

from feedboard.services.actions import ActionDispatcher
from feedboard.services.content_service import ContentService
from feedboard.services.notifications import ContentNotifier
from feedboard.services.render_cache import RenderCache
from feedboard.services.rendering import NotModified, RenderDispatcher, RenderedOutput
from feedboard.services.submissions import SubmissionPlan, apply_plan, reconcile_submissions

__all__ = [
    "ActionDispatcher",
    "ContentNotifier",
    "ContentService",
    "NotModified",
    "RenderCache",
    "RenderDispatcher",
    "RenderedOutput",
    "SubmissionPlan",
    "apply_plan",
    "reconcile_submissions",
]
