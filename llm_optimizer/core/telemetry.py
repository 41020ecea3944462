"""
Run telemetry for the workflow controller.
One span per stage invocation, modelled on the OpenTelemetry Span idea.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
import json


class StageOutcome(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class StageSpan:
    """A single stage invocation"""
    stage: str
    outcome: StageOutcome
    duration_ms: float
    error_message: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict:
        return {
            "stage": self.stage,
            "outcome": self.outcome.value,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
            "timestamp": self.timestamp
        }


class RunTelemetry:
    """
    Spans collected during one run.
    Cleared by the controller whenever a new run starts or on reset.
    """

    def __init__(self, keyword: str = ""):
        self.keyword = keyword
        self.spans: List[StageSpan] = []

    def record(self, span: StageSpan) -> None:
        self.spans.append(span)

    def get_failed_spans(self) -> List[StageSpan]:
        return [span for span in self.spans if span.outcome == StageOutcome.FAILED]

    def total_duration_ms(self) -> float:
        return sum(span.duration_ms for span in self.spans)

    def to_dict(self) -> Dict:
        return {
            "keyword": self.keyword,
            "total_stages": len(self.spans),
            "spans": [span.to_dict() for span in self.spans],
            "summary": {
                "total_duration_ms": self.total_duration_ms(),
                "failed_stages": [span.stage for span in self.get_failed_spans()]
            }
        }

    def export_json(self, path: str) -> None:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
