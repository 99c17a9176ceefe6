from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from axis.constants import OBSERVER_PROVIDER

GIB = 1024**3


@dataclass(frozen=True)
class Token:
    id: str
    text: str
    timestamp: int
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class InteractionLog:
    id: str
    session_id: str
    timestamp: int
    user_tokens: tuple[Token, ...]
    ai_response: str
    provider_used: str

    @property
    def user_text(self) -> str:
        return " ".join(t.text for t in self.user_tokens)

    @property
    def is_observer(self) -> bool:
        return self.provider_used == OBSERVER_PROVIDER and not self.user_tokens

    @classmethod
    def observer(cls, payload: str, session_id: str, timestamp: int) -> "InteractionLog":
        return cls(
            id=str(uuid4()),
            session_id=session_id,
            timestamp=timestamp,
            user_tokens=(),
            ai_response=payload,
            provider_used=OBSERVER_PROVIDER,
        )


def tokenize(text: str, now_ms: int) -> tuple[Token, ...]:
    return tuple(
        Token(id=f"{now_ms}-{i}", text=part, timestamp=now_ms) for i, part in enumerate(text.split())
    )


@dataclass(frozen=True)
class SystemStats:
    cpu_usage: int  # 0-100
    memory_used: int  # bytes
    memory_total: int  # bytes
    battery_level: int  # 0-100
    is_charging: bool

    @property
    def memory_used_gb(self) -> str:
        return f"{self.memory_used / GIB:.1f}"

    @property
    def memory_total_gb(self) -> str:
        return f"{self.memory_total / GIB:.1f}"


class BootStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    OK = "ok"
    FAILED = "failed"  # representable, no transition produces it


@dataclass(frozen=True)
class BootStep:
    id: int
    label: str
    detail: str | None = None


@dataclass(frozen=True)
class RenderedStep:
    step: BootStep
    status: BootStatus
    timestamp: str


class ViewMode(StrEnum):
    BOOT = "boot"
    CHAT = "chat"


BOOT_STEPS: tuple[BootStep, ...] = (
    BootStep(1, "AxisOS Core", "Initializing meta-OS kernel overlay"),
    BootStep(2, "Gemini Engine", "Logic layer online (reasoning / planning)"),
    BootStep(3, "GPT Engine", "Execution layer online (code / text / tools)"),
    BootStep(4, "Grok Engine", "Monitoring layer online (web / anomaly)"),
    BootStep(5, "Neural Link", "Connecting to Memory Banks..."),
    BootStep(6, "Local Node", "System Ready."),
)


@dataclass
class SessionSummary:
    session_id: str
    log_count: int = 0
    last_timestamp: int | None = None
    preview: str = field(default="")
