"""Basecamp todo operations."""
import logging
from typing import Optional

from basecamp.client import BasecampClient
from processor.errors import SyncError
from processor.models import BasecampTodo, TodoRequest

logger = logging.getLogger(__name__)


class TodoClient:
    """Creates, replaces and trashes todos in one Basecamp todolist."""

    def __init__(self, client: BasecampClient, todolist_id: str):
        self.client = client
        self.todolist_id = todolist_id

    def create_todo(self, request: TodoRequest) -> Optional[BasecampTodo]:
        """
        Create a todo in the configured todolist.

        Args:
            request: Todo payload

        Returns:
            The created todo, or None if Basecamp rejected the request

        Raises:
            SyncError: Fatal errors such as UNAUTHORIZED are propagated
        """
        logger.info(f"Creating new todo: \"{request.content}\"")
        url = f"{self.client.project_url}/todolists/{self.todolist_id}/todos.json"

        try:
            response = self.client.post(url, request.to_payload())
        except SyncError as e:
            if e.is_fatal:
                raise
            logger.error(f"Error creating todo \"{request.content}\": {e}")
            return None

        return BasecampTodo(id=str(response['id']), url=response.get('app_url'))

    def update_todo(self, todo_id: str, request: TodoRequest) -> None:
        """
        Replace a todo. Omitted fields are cleared by Basecamp, so the
        request always carries every field.
        """
        logger.info(f"Updating existing todo {todo_id}: \"{request.content}\"")
        self.client.put(f"{self.client.project_url}/todos/{todo_id}.json", request.to_payload())

    def delete_todo(self, todo_id: str) -> None:
        """Move a todo to the trash."""
        logger.info(f"Deleting todo {todo_id}")
        self.client.put(f"{self.client.project_url}/recordings/{todo_id}/status/trashed.json", {})
