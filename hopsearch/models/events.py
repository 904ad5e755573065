from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    THINKING = "thinking"
    PROGRESS = "progress"
    TOOL_CALL = "tool_call"
    SOURCES_UPDATE = "sources_update"
    STEP_RESULTS = "step_results"
    STEP_COMPLETE = "step_complete"
    MOCK_SEARCH_DETECTED = "mock_search_detected"
    ANSWER_TOKEN = "answer_token"
    ANSWER_COMPLETE = "answer_complete"
    QUALITY_CHECKED = "quality_checked"
    FOLLOW_UPS = "follow_ups"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"
