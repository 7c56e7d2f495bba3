"""Task comment threads.

Comments are append-only. After a comment is posted the whole thread is
fetched again so the list carries server-assigned ids, authors and
timestamps.
"""

from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import Comment, RecordId, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_comment

logger = get_logger(__name__)


class CommentController(StateController):
    """Holds the comment thread of each task that has been opened."""

    name = "comments"

    def __init__(self, api: BackendAPI) -> None:
        super().__init__()
        self.api = api
        self.threads: dict[RecordId, list[Comment]] = {}

    def _channel(self, task_id: RecordId) -> str:
        return f"task:{task_id}"

    async def fetch_task_comments(self, task_id: RecordId) -> list[Comment]:
        """Load a task's thread; ``[]`` on failure."""
        ticket = self._sequencer.next(self._channel(task_id))
        try:
            response = await self.api.comments.get_by_task(task_id)
        except PMSyncError as e:
            if not self._is_stale(self._channel(task_id), ticket):
                self._fail("fetch_task_comments", e, "Failed to load comments")
                self._notify()
            return []

        comments = parse_records(Comment, response.items("comments"))
        if self._is_stale(self._channel(task_id), ticket):
            return comments
        self.threads[task_id] = comments
        self._notify()
        return comments

    async def add_comment(
        self,
        task_id: RecordId,
        content: str,
        attachments: list[Any] | None = None,
    ) -> OperationResult[list[Comment]]:
        """Post a comment, then refetch the task's thread.

        A failed refetch keeps the previous thread; the comment itself was
        still created, so the result is a success.

        Returns:
            Result carrying the task's thread after the post
        """
        data = {"task_id": task_id, "content": content, "attachments": attachments or []}
        field_errors = validate_comment(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        self.error = None
        self._set_loading(True)
        try:
            await self.api.comments.create(data)
        except PMSyncError as e:
            message = self._fail("add_comment", e, "Failed to add comment")
            self._set_loading(False)
            return OperationResult.fail(message)

        logger.info("comment_added", task_id=task_id)
        try:
            response = await self.api.comments.get_by_task(task_id)
        except PMSyncError as e:
            logger.warning("comment_refresh_failed", task_id=task_id, error=str(e))
        else:
            self.threads[task_id] = parse_records(Comment, response.items("comments"))
            # Older in-flight fetches must not overwrite the refreshed thread
            self._sequencer.invalidate(self._channel(task_id))

        self._set_loading(False)
        return OperationResult.ok(self.threads.get(task_id, []))
