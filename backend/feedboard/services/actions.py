"""
Custom action dispatch.

Each content type declares its actions with ``@content_action``. The
dispatcher only routes: it looks the name up in the content's own action
table and calls the handler. An unknown name, a handler returning None, or
a handler raising all become one ActionDispatchError.
"""

from collections.abc import Mapping
from typing import Any, Optional

from feedboard.core.exceptions import ActionDispatchError
from feedboard.core.logging import get_logger
from feedboard.models.content import ActionRequest, Content

logger = get_logger(__name__)


class ActionDispatcher:
    async def dispatch(
        self,
        content: Content,
        action_name: Optional[str],
        params: Mapping[str, Any],
        actor_id: Optional[int] = None,
    ) -> Any:
        """
        Run ``action_name`` on ``content``.

        Returns:
            The handler's result, unwrapped

        Raises:
            ActionDispatchError: unknown action, or the handler could not act
        """
        action = type(content).actions.get(action_name or "")
        if action is None:
            logger.info(
                "action_dispatch_failed",
                content_id=content.id,
                action=action_name,
                reason="unknown_action",
            )
            raise ActionDispatchError(str(action_name), content.type_name)

        request = ActionRequest(actor_id=actor_id, params=dict(params))
        try:
            result = await action.invoke(content, request)
        except Exception as e:
            logger.warning(
                "action_dispatch_failed",
                content_id=content.id,
                action=action_name,
                reason="handler_error",
                error=str(e),
            )
            raise ActionDispatchError(action.name, content.type_name) from e

        if result is None:
            logger.info(
                "action_dispatch_failed",
                content_id=content.id,
                action=action_name,
                reason="handler_declined",
            )
            raise ActionDispatchError(action.name, content.type_name)

        logger.info("action_dispatched", content_id=content.id, action=action.name)
        return result
