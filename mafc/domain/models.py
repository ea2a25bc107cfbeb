"""统一的消息与阶段数据模型。

- ChatMessage: 界面上展示的一条消息（user/agent/system），创建后不可变。
- Stage: 四阶段对话中的一个阶段。
- GenerationRequest: 发给生成端点的一次请求。

ChatMessage 的 JSON 形式沿用前端约定的字段名（agentName、毫秒时间戳），
以便与已持久化的消息列表互通。
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, get_args
from uuid import uuid4


# 消息角色
Role = Literal["user", "agent", "system"]

# 对话阶段
Stage = Literal["PROFILER", "SPECIALIST", "CRITIC", "HOST"]

STAGES = get_args(Stage)

# 阶段 -> 显示名
AGENT_NAMES: Dict[str, str] = {
    "PROFILER": "Profiler",
    "SPECIALIST": "Genre Specialist",
    "CRITIC": "Critic",
    "HOST": "Host",
}

SYSTEM_AGENT_NAME = "System"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChatMessage:
    """一条聊天消息。

    - id: 唯一标识。
    - role: user / agent / system。
    - content: 纯文本内容。
    - agent_name: 智能体显示名，仅智能体消息携带。
    - timestamp: 创建时间（毫秒）。
    """

    id: str
    role: Role
    content: str
    agent_name: Optional[str] = None
    timestamp: int = 0

    @classmethod
    def create(cls, role: Role, content: str, agent_name: Optional[str] = None, prefix: Optional[str] = None) -> "ChatMessage":
        ts = now_ms()
        return cls(
            id=f"{prefix or role}-{ts}-{uuid4().hex[:9]}",
            role=role,
            content=content,
            agent_name=agent_name,
            timestamp=ts,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.agent_name:
            data["agentName"] = self.agent_name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        role = data.get("role") or "agent"
        if role not in ("user", "agent", "system"):
            raise ValueError(f"Unknown message role: {role!r}")
        return cls(
            id=str(data["id"]),
            role=role,
            content=data.get("content") or "",
            agent_name=data.get("agentName") or data.get("agent_name"),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class GenerationRequest:
    """一次生成请求。

    Provider 适配层负责把本结构转换成具体 API 的 JSON 请求体。
    """

    model: str
    prompt: str
    system_instruction: Optional[str] = None
    temperature: float = 0.7
    max_output_tokens: int = 2000
