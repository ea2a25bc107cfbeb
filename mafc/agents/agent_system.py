"""多智能体影视推荐对话编排器。

四个阶段：
- PROFILER 用户画像师：收集用户偏好
- SPECIALIST 类型专家：确定今天的具体需求
- CRITIC 影评专家：分析并挑选电影（瞬态，同一轮内进入并离开）
- HOST 主持人：呈现推荐结果并继续陪聊

阶段完成由模型输出中的字面标记判定：标记前的文字展示给用户，
标记后的文字作为机器可读的阶段数据保存。
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from mafc.config.settings import settings
from mafc.domain.conversation import ConversationState
from mafc.domain.exceptions import BusinessError
from mafc.domain.models import AGENT_NAMES, ChatMessage, Stage
from mafc.flows.graph import build_turn_graph
from mafc.flows.state import TurnState
from mafc.infrastructure.logging.logger import logger
from mafc.prompts import load_system_prompt
from mafc.providers import create_provider
from mafc.providers.base import TextGenerator


PROFILE_READY = "||PROFILE_READY||"
DEMAND_LOCKED = "||DEMAND_LOCKED||"

BACKWARD_KEYWORDS = ("返回", "上一步", "回去", "退回", "重新", "重来")

CRITIC_BUSY_NAME = "Critic Agent"
HOST_BUSY_NAME = "Host Agent"

# 回退后各阶段的开场白
BACK_PROMPTS: Dict[str, str] = {
    "PROFILER": "好的，让我们重新开始。请告诉我您最喜欢的三部电影？",
    "SPECIALIST": "明白，让我们重新确认。您今天想看什么类型的电影？刺激的、感动的还是轻松的？",
    "CRITIC": "好的，我会根据您的需求重新分析推荐。",
    "HOST": "好的，有什么需要我重新推荐的吗？",
}

FIRST_STEP_NOTICE = "已经是第一步了，无法返回更早的阶段。"

MessageCallback = Callable[[List[ChatMessage]], None]
AgentCallback = Callable[[str], None]


@dataclass
class MarkerSplit:
    reply: str
    payload: str


def parse_marker(response: str, marker: str) -> Optional[MarkerSplit]:
    """按第一次出现的标记切分模型回复；没有标记时返回 None。"""
    idx = response.find(marker)
    if idx < 0:
        return None
    return MarkerSplit(
        reply=response[:idx].strip(),
        payload=response[idx + len(marker):].strip(),
    )


def is_backward_request(text: str) -> bool:
    return any(keyword in text for keyword in BACKWARD_KEYWORDS)


def format_context(history: List[ChatMessage], limit: int) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in history[-limit:])


class AgentSystem:
    """多智能体电影推荐系统。

    调用方负责串行化：同一时间只能有一个 process_user_message 在执行。
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        on_message_update: MessageCallback,
        on_agent_change: AgentCallback,
        *,
        provider: Optional[TextGenerator] = None,
        cfg=settings,
    ):
        self._api_key = api_key
        self._model = model
        self._on_message_update = on_message_update
        self._on_agent_change = on_agent_change
        self._settings = cfg
        self._provider = provider or create_provider(api_key, model)
        self._state = ConversationState()
        self._graph = build_turn_graph(self)

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def current_stage(self) -> Stage:
        return self._state.current_stage

    @property
    def history(self) -> List[ChatMessage]:
        return list(self._state.history)

    def set_history(self, history: List[ChatMessage]) -> None:
        """用调用方的快照整体替换工作历史。"""
        self._state.history = list(history)

    def process_user_message(self, user_text: str) -> None:
        """执行一轮对话。

        回退请求在任何阶段逻辑与网络调用之前处理。生成失败时追加一条系统
        错误消息，阶段与阶段数据回到本轮开始前的样子，然后重新抛出异常。
        """
        trace_id = f"tr-{uuid4().hex}"
        log_ctx: Dict[str, Any] = {"trace_id": trace_id}
        backward = is_backward_request(user_text)
        self._log(logging.INFO, "Turn started", log_ctx, stage=self.current_stage, backward=backward)

        if not backward:
            self._on_agent_change(self._agent_name(self.current_stage))

        snapshot = self._state.snapshot()
        turn: TurnState = {
            "user_input": user_text,
            "stage": self.current_stage,
            "backward": backward,
            "demand_locked": False,
            "trace_id": trace_id,
        }
        try:
            self._graph.invoke(turn)
        except Exception as error:
            self._state.restore(snapshot)
            error_msg = error.message if isinstance(error, BusinessError) else (str(error) or "Unknown error")
            self._log(logging.ERROR, "Turn failed", log_ctx, stage=self.current_stage, error=error_msg)
            self.add_system_message(f"错误: {error_msg}。请检查您的 API Key 和网络连接。")
            raise

        self._log(logging.INFO, "Turn completed", log_ctx, stage=self.current_stage)

    # ---- 阶段转移 ----

    def transition_to(self, stage: Stage) -> None:
        previous = self.current_stage
        self._state.push(stage)
        self._log(logging.INFO, "Stage transition", {}, from_stage=previous, to_stage=stage)

    def go_back(self) -> bool:
        if self._state.depth <= 1:
            self.add_system_message(FIRST_STEP_NOTICE)
            return False

        previous = self._state.pop()
        self._state.clear_from(previous)
        self._log(logging.INFO, "Navigated back", {}, to_stage=previous, depth=self._state.depth)
        self.add_agent_message(AGENT_NAMES[previous], BACK_PROMPTS[previous])
        return True

    # ---- 各阶段 ----

    def run_profiler(self, user_input: str) -> bool:
        context = self._build_context()
        prompt = f"""
      User Input: "{user_input}"
      Conversation History:
      {context}

      CRITICAL: You must ALWAYS output the {PROFILE_READY} marker after analyzing user's response!
      Format: First provide your response, then on a new line add: {PROFILE_READY} [keywords]

      Example output:
      Your analysis and question...

      {PROFILE_READY} keyword1, keyword2, keyword3
    """
        response = self._generate(prompt, "PROFILER")
        split = parse_marker(response, PROFILE_READY)
        if split is None:
            self._log(logging.INFO, "Marker missing", {}, stage="PROFILER", marker=PROFILE_READY)
            self.add_agent_message(AGENT_NAMES["PROFILER"], response)
            return False

        self._state.user_profile = split.payload
        self.add_agent_message(AGENT_NAMES["PROFILER"], split.reply)
        self.transition_to("SPECIALIST")
        return True

    def run_specialist(self, user_input: str) -> bool:
        context = self._build_context()
        prompt = f"""
        User Profile (Known): {self._state.user_profile}
        Current Input: "{user_input}"
        History: {context}
      """
        response = self._generate(prompt, "SPECIALIST")
        split = parse_marker(response, DEMAND_LOCKED)
        if split is None:
            self._log(logging.INFO, "Marker missing", {}, stage="SPECIALIST", marker=DEMAND_LOCKED)
            self.add_agent_message(AGENT_NAMES["SPECIALIST"], response)
            return False

        self._state.current_demand = split.payload
        self.add_agent_message(AGENT_NAMES["SPECIALIST"], split.reply)
        self.transition_to("CRITIC")
        return True

    def run_critic(self, user_input: str) -> None:
        self._on_agent_change(CRITIC_BUSY_NAME)
        context = self._build_context()
        prompt = f"""
          User Profile: {self._state.user_profile}
          Current Request: {self._state.current_demand}
          Latest User Input: "{user_input}"
          History: {context}

          Analyze and recommend 2 perfect movies. Return ONLY the JSON-like format as specified in your instructions.
      """
        self._state.recommendations = self._generate(prompt, "CRITIC")

    def present_recommendations(self, user_input: str) -> None:
        # CRITIC 只在本轮内存在，离开时从栈中换成 HOST
        if self.current_stage == "CRITIC":
            self._state.pop()
        self.transition_to("HOST")
        self._on_agent_change(HOST_BUSY_NAME)
        context = self._build_context()
        prompt = f"""
        Critic Recommendations:
        {self._state.recommendations}

        User Profile: {self._state.user_profile}
        User Request: {self._state.current_demand}
        Latest User Input: "{user_input}"
        History: {context}

        Present these to the user warmly.
      """
        response = self._generate(prompt, "HOST")
        self.add_agent_message(AGENT_NAMES["HOST"], response)

    def run_host(self, user_input: str) -> None:
        context = self._build_context()
        prompt = f"""
         User Input: {user_input}
         History: {context}
         Previous Recommendations: {self._state.recommendations}
         User Profile: {self._state.user_profile}
         User Request: {self._state.current_demand}

         Continue chatting, answer questions about the recommendation, or recommend something else if they hate it.
      """
        response = self._generate(prompt, "HOST")
        self.add_agent_message(AGENT_NAMES["HOST"], response)

    # ---- 辅助方法 ----

    def _generate(self, prompt: str, stage: Stage) -> str:
        return self._provider.generate(prompt, load_system_prompt(stage))

    def _build_context(self) -> str:
        limit = getattr(self._settings, "context_window", 5)
        return format_context(self._state.history, limit)

    def add_agent_message(self, name: str, content: str) -> ChatMessage:
        msg = ChatMessage.create("agent", content, agent_name=name)
        return self._emit(msg)

    def add_system_message(self, text: str) -> ChatMessage:
        msg = ChatMessage.create("system", text, prefix="system")
        return self._emit(msg)

    def _emit(self, msg: ChatMessage) -> ChatMessage:
        self._state.history.append(msg)
        self._on_message_update([msg])
        return msg

    @staticmethod
    def _agent_name(stage: Stage) -> str:
        return AGENT_NAMES.get(stage, "Agent")

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
