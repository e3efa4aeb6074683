"""
Submission reconciliation.

Editing a content item's feed set is a diff between the submissions it has
and the feed ids the editor wants:

    existing: {3: approved, 4: pending}     desired: [3, 5]
    → keep   [3]   moderation reset to pending
    → create [5]   approved on the spot if the editor moderates feed 5
    → remove [4]

``reconcile_submissions`` computes that plan without touching the content's
collection; ``apply_plan`` applies it at the end of the unit of work.
Removed submissions are dropped from the collection and deleted by the
delete-orphan cascade on the next flush.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Optional

from feedboard.core.logging import get_logger
from feedboard.models.content import Content, Submission
from feedboard.models.feed import Feed

logger = get_logger(__name__)


@dataclass
class SubmissionPlan:
    """Three-way result of reconciling a content item's feeds."""

    keep: list[Submission] = field(default_factory=list)
    create: list[Submission] = field(default_factory=list)
    remove: list[Submission] = field(default_factory=list)

    @property
    def feed_ids(self) -> list[int]:
        """Feed ids the content is on once the plan is applied."""
        return [s.feed_id for s in self.keep + self.create]

    def __len__(self) -> int:
        return len(self.keep) + len(self.create) + len(self.remove)


def _unique(feed_ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    ordered = []
    for feed_id in feed_ids:
        if feed_id not in seen:
            seen.add(feed_id)
            ordered.append(feed_id)
    return ordered


def reconcile_submissions(
    existing: Sequence[Submission],
    desired_feed_ids: Iterable[int],
    duration: int,
    actor_id: Optional[int],
    can_moderate: Callable[[int], bool],
    feeds: Optional[Mapping[int, Feed]] = None,
) -> SubmissionPlan:
    """
    Diff existing submissions against the desired feed ids.

    Args:
        existing: the content's current submissions
        desired_feed_ids: feed ids the content should end up on (duplicates ignored)
        duration: seconds on screen for newly created submissions
        actor_id: the editor; recorded as moderator on auto-approval
        can_moderate: whether the editor moderates a given feed id
        feeds: loaded Feed rows by id, attached to new submissions when given

    Returns:
        SubmissionPlan whose keep + create feed ids equal the desired set.
        Kept submissions are reset to pending, new ones are approved when
        ``can_moderate(feed_id)`` holds.
    """
    desired = _unique(desired_feed_ids)
    wanted = set(desired)
    plan = SubmissionPlan()

    covered: set[int] = set()
    for submission in existing:
        if submission.feed_id in wanted and submission.feed_id not in covered:
            submission.reset_moderation()
            plan.keep.append(submission)
            covered.add(submission.feed_id)
        else:
            # Dropped feed, or a second row for a feed already kept
            plan.remove.append(submission)

    for feed_id in desired:
        if feed_id in covered:
            continue
        submission = Submission(feed_id=feed_id, duration=duration)
        if feeds is not None and feed_id in feeds:
            submission.feed = feeds[feed_id]
        if can_moderate(feed_id):
            submission.moderation_flag = True
            submission.moderator_id = actor_id
        else:
            submission.moderation_flag = None
            submission.moderator_id = None
        plan.create.append(submission)

    return plan


def apply_plan(content: Content, plan: SubmissionPlan) -> None:
    """Attach created submissions and drop removed ones from ``content``."""
    for submission in plan.remove:
        if submission in content.submissions:
            content.submissions.remove(submission)
    for submission in plan.create:
        content.submissions.append(submission)

    logger.debug(
        "submissions_reconciled",
        content_id=content.id,
        kept=[s.feed_id for s in plan.keep],
        created=[s.feed_id for s in plan.create],
        removed=[s.feed_id for s in plan.remove],
    )
