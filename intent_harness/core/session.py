import re
import uuid

from pydantic import BaseModel, ConfigDict, Field

SESSION_TEMPLATE = "projects/{project_id}/locations/{location_id}/agents/{agent_id}/sessions/{session_id}"

_SESSION_PATTERN = re.compile(
    r"^projects/(?P<project_id>[^/]+)"
    r"/locations/(?P<location_id>[^/]+)"
    r"/agents/(?P<agent_id>[^/]+)"
    r"/sessions/(?P<session_id>[^/]+)$"
)


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionAddress(BaseModel):
    """Identifies one conversation with an agent.

    The wire reference is the Dialogflow CX session name, built from the
    four ids in a fixed order (see ``SESSION_TEMPLATE``).
    """

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(min_length=1)
    location_id: str = Field(min_length=1)
    agent_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)

    @classmethod
    def build(cls, project_id: str, location_id: str, agent_id: str,
              session_id: str) -> "SessionAddress":
        return cls(
            project_id=project_id,
            location_id=location_id,
            agent_id=agent_id,
            session_id=session_id,
        )

    @classmethod
    def parse(cls, path: str) -> "SessionAddress":
        match = _SESSION_PATTERN.match(path or "")
        if match is None:
            raise ValueError(f"not a session path: {path!r}")
        return cls(**match.groupdict())

    @property
    def path(self) -> str:
        return SESSION_TEMPLATE.format(
            project_id=self.project_id,
            location_id=self.location_id,
            agent_id=self.agent_id,
            session_id=self.session_id,
        )

    def __str__(self) -> str:
        return self.path
