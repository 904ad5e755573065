from __future__ import annotations

from pydantic import BaseModel


class Task(BaseModel):
    """A single hop in a multi-step search plan."""
    id: str  # task_<index>, unique within a plan
    description: str  # What this hop is meant to find
    search_query: str  # The query sent to the search provider
    depends_on: list[str] = []  # IDs of tasks whose results conceptually come first

    def with_query(self, search_query: str) -> "Task":
        """Copy of this task with a rewritten search query and the same id."""
        return self.model_copy(update={"search_query": search_query}, deep=True)
