from pydantic import BaseModel, Field

from axis.models import InteractionLog, SystemStats, Token


# --- History ---


class TokenSchema(BaseModel):
    id: str
    text: str
    timestamp: int
    tags: list[str] = Field(default_factory=list)

    def to_model(self) -> Token:
        return Token(id=self.id, text=self.text, timestamp=self.timestamp, tags=tuple(self.tags))


class InteractionLogSchema(BaseModel):
    id: str
    session_id: str
    timestamp: int
    user_tokens: list[TokenSchema] = Field(default_factory=list)
    ai_response: str = ""
    provider_used: str = ""

    def to_model(self) -> InteractionLog:
        return InteractionLog(
            id=self.id,
            session_id=self.session_id,
            timestamp=self.timestamp,
            user_tokens=tuple(t.to_model() for t in self.user_tokens),
            ai_response=self.ai_response,
            provider_used=self.provider_used,
        )

    @classmethod
    def from_model(cls, log: InteractionLog) -> "InteractionLogSchema":
        return cls(
            id=log.id,
            session_id=log.session_id,
            timestamp=log.timestamp,
            user_tokens=[
                TokenSchema(id=t.id, text=t.text, timestamp=t.timestamp, tags=list(t.tags)) for t in log.user_tokens
            ],
            ai_response=log.ai_response,
            provider_used=log.provider_used,
        )


# --- Requests ---


class AskRequest(BaseModel):
    input: str
    session_id: str


# --- Vitals ---


class SystemStatsSchema(BaseModel):
    cpu_usage: int = Field(ge=0, le=100)
    memory_used: int = Field(ge=0)
    memory_total: int = Field(ge=0)
    battery_level: int = Field(ge=0, le=100)
    is_charging: bool

    def to_model(self) -> SystemStats:
        return SystemStats(**self.model_dump())
