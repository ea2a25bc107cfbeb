from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from .models import ChatMessage, Stage


@dataclass
class StateSnapshot:
    stage_stack: List[Stage]
    user_profile: str
    current_demand: str
    recommendations: str


@dataclass
class ConversationState:
    """编排器的可变状态。

    stage_stack 记录实际走过的阶段路径，栈顶即当前阶段，
    回退时弹出，但永远保留至少一个元素。
    """

    user_profile: str = ""
    current_demand: str = ""
    recommendations: str = ""
    history: List[ChatMessage] = field(default_factory=list)
    stage_stack: List[Stage] = field(default_factory=lambda: ["PROFILER"])

    @property
    def current_stage(self) -> Stage:
        return self.stage_stack[-1]

    @property
    def depth(self) -> int:
        return len(self.stage_stack)

    def push(self, stage: Stage) -> None:
        self.stage_stack.append(stage)

    def pop(self) -> Stage:
        """弹出当前阶段并返回新的栈顶。"""
        if len(self.stage_stack) <= 1:
            raise IndexError("stage stack cannot shrink below one entry")
        self.stage_stack.pop()
        return self.stage_stack[-1]

    def clear_from(self, stage: Stage) -> None:
        """清空回到 stage 时已失效的数据。"""
        if stage == "PROFILER":
            self.user_profile = ""
            self.current_demand = ""
            self.recommendations = ""
        elif stage == "SPECIALIST":
            self.current_demand = ""
            self.recommendations = ""

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            stage_stack=list(self.stage_stack),
            user_profile=self.user_profile,
            current_demand=self.current_demand,
            recommendations=self.recommendations,
        )

    def restore(self, snap: StateSnapshot) -> None:
        self.stage_stack = list(snap.stage_stack)
        self.user_profile = snap.user_profile
        self.current_demand = snap.current_demand
        self.recommendations = snap.recommendations


class KeyValueStore(Protocol):
    def save(self, key: str, value: Any) -> None:
        ...

    def load(self, key: str, default: Any) -> Any:
        ...

    def clear(self) -> None:
        ...


def messages_to_payload(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    return [m.to_dict() for m in messages]


def messages_from_payload(items: Any) -> List[ChatMessage]:
    """解析持久化的消息列表，无法识别的条目直接跳过。"""
    result: List[ChatMessage] = []
    if not isinstance(items, list):
        return result
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            result.append(ChatMessage.from_dict(item))
        except (KeyError, TypeError, ValueError):
            continue
    return result
