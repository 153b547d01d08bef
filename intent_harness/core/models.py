"""Value objects exchanged with the intent detection backend"""

import enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

# Reserved query text; a conforming backend answers it with ABORTED
REQUEST_ERROR_SENTINEL = "request-error"


class QueryInput(BaseModel):
    """One utterance submitted for detection"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    language_code: str = "en-us"

    def to_proto(self, pb2):
        return pb2.QueryInput(
            text=pb2.TextInput(text=self.text),
            language_code=self.language_code,
        )


class QueryResult(BaseModel):
    """Backend detection outcome for one input"""
    model_config = ConfigDict(frozen=True)

    text: str
    matched_intent_name: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def from_proto(cls, query_result) -> "QueryResult":
        match = query_result.match
        # float32 on the wire can land a hair outside [0, 1]
        confidence = min(max(float(match.confidence), 0.0), 1.0)
        return cls(
            text=query_result.text,
            matched_intent_name=match.intent.display_name,
            confidence=confidence,
        )


# input text -> result; duplicate texts are last-write-wins
DetectionBatchResult = Dict[str, QueryResult]


class StreamState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    HALF_CLOSED = "half_closed"
    RECEIVING = "receiving"
    CLOSED = "closed"
    FAILED = "failed"
