"""对外应用服务模块。

ChatApp 持有界面所需的全部状态：凭据、模型、消息列表、“正在输入”标记，
负责在凭据或模型变化时重建 AgentSystem，并把消息列表写回本地存储。
GUI 只需调用这里的方法并在 on_change 回调里刷新界面。
"""

from typing import Callable, List, Optional

from mafc.agents.agent_system import AgentSystem
from mafc.config.settings import settings
from mafc.domain.conversation import KeyValueStore, messages_from_payload, messages_to_payload
from mafc.domain.exceptions import BusinessError, ValidationError
from mafc.domain.models import AGENT_NAMES, ChatMessage, now_ms
from mafc.infrastructure.logging.logger import logger
from mafc.infrastructure.storage.json_store import STORAGE_KEYS, JsonKeyValueStore


WELCOME_TEXT = "您好！我是 MAFC 影视推荐团队。为了给您更精准的推荐，能告诉我三部您最喜欢的电影吗？😊"
RESET_TEXT = "系统已重置。请在设置中输入您的 Gemini API Key，然后告诉我您最喜欢的三部电影吧！"
CLEARED_TEXT = "聊天记录已清空。😊"
ERROR_TEMPLATE = (
    "❌ 错误：{error}\n\n请检查：\n"
    "1. 您的 API Key 是否正确 (通常以 \"AIza\" 开头)\n"
    "2. 网络连接是否正常\n"
    "3. API Key 是否具有相应权限"
)

SystemFactory = Callable[..., AgentSystem]


def welcome_message(content: str = WELCOME_TEXT, msg_id: str = "welcome") -> ChatMessage:
    return ChatMessage(
        id=msg_id,
        role="agent",
        content=content,
        agent_name=AGENT_NAMES["PROFILER"],
        timestamp=now_ms(),
    )


def api_key_warning(api_key: str) -> Optional[str]:
    """Gemini Key 通常以 AIza 开头，不符合时返回提示文本。"""
    key = api_key.strip()
    if key.startswith("AIza"):
        return None
    return (
        f'警告：Gemini API Key 通常以 "AIza" 开头。您的 Key 以 "{key[:4]}..." 开头。\n\n'
        "确定要继续吗？"
    )


class ChatApp:
    """聊天应用的状态与操作。

    所有方法都应在同一时刻只由一个线程调用；GUI 在请求进行中禁用发送。
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        system_factory: Optional[SystemFactory] = None,
        on_change: Optional[Callable[[], None]] = None,
        cfg=settings,
    ):
        self._store = store or JsonKeyValueStore(cfg.storage_root)
        self._system_factory = system_factory or AgentSystem
        self._on_change = on_change
        self.api_key: str = self._store.load(STORAGE_KEYS["API_KEY"], "") or (cfg.gemini_api_key or "")
        self.model: str = self._store.load(STORAGE_KEYS["MODEL"], cfg.default_model) or cfg.default_model
        stored = messages_from_payload(self._store.load(STORAGE_KEYS["MESSAGES"], []))
        self.messages: List[ChatMessage] = stored or [welcome_message()]
        self.is_typing = False
        self.current_agent: Optional[str] = None
        self.agent_system: Optional[AgentSystem] = None
        self._default_model = cfg.default_model
        self._rebuild_system()

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    # ---- 对话 ----

    def begin_turn(self) -> bool:
        """在界面线程占用本轮；已有进行中的回合时返回 False。"""
        if self.is_typing:
            return False
        self.is_typing = True
        return True

    def send_message(self, text: str) -> bool:
        """发送一条用户消息。

        Returns:
            False 表示输入为空或尚未配置 API Key（界面应打开设置），否则 True。
            生成失败不会抛出，而是追加一条 system 错误消息。
        """
        if not text.strip() or self.agent_system is None:
            self.is_typing = False
            return False

        user_msg = ChatMessage.create("user", text, prefix="user")
        self.is_typing = True
        self._set_messages(self.messages + [user_msg])
        self.agent_system.set_history(self.messages)

        try:
            self.agent_system.process_user_message(text)
        except Exception as err:
            error_text = err.message if isinstance(err, BusinessError) else (str(err) or "Unknown error occurred")
            logger.error(f"Chat failed: {error_text}", extra={"extra": {"model": self.model, "error": error_text}})
            self.is_typing = False
            error_msg = ChatMessage.create("system", ERROR_TEMPLATE.format(error=error_text), prefix="error")
            self._set_messages(self.messages + [error_msg])
            return True

        self.is_typing = False
        self._notify()
        return True

    # ---- 设置 ----

    def save_settings(self, api_key: str, model: str) -> None:
        key = api_key.strip()
        model_name = model.strip()
        if not key:
            raise ValidationError(code="MISSING_API_KEY", message="请输入 API Key")
        if not model_name:
            raise ValidationError(code="MISSING_MODEL", message="请输入模型名称")

        changed = key != self.api_key or model_name != self.model
        self.api_key = key
        self.model = model_name
        self._store.save(STORAGE_KEYS["API_KEY"], key)
        self._store.save(STORAGE_KEYS["MODEL"], model_name)
        if changed:
            self._rebuild_system()
        self._notify()

    def clear_history(self) -> None:
        """清空聊天记录，保留 API Key 与设置。"""
        self._set_messages([welcome_message(CLEARED_TEXT, "welcome-reset")])
        if self.agent_system is not None:
            self.agent_system.set_history([])

    def reset(self) -> None:
        """删除所有对话历史与设置。"""
        self._store.clear()
        self.api_key = ""
        self.model = self._default_model
        self.agent_system = None
        self.is_typing = False
        self.current_agent = None
        self._set_messages([welcome_message(RESET_TEXT, "welcome-reset")])

    # ---- 回调 ----

    def _handle_new_messages(self, new_messages: List[ChatMessage]) -> None:
        existing = {m.id for m in self.messages}
        unique = [m for m in new_messages if m.id not in existing]
        self.is_typing = False
        if not unique:
            self._notify()
            return
        self._set_messages(self.messages + unique)

    def _handle_agent_change(self, agent_name: str) -> None:
        self.current_agent = agent_name
        self.is_typing = True
        self._notify()

    # ---- 辅助方法 ----

    def _rebuild_system(self) -> None:
        if not self.api_key:
            self.agent_system = None
            return
        self.agent_system = self._system_factory(
            self.api_key,
            self.model,
            self._handle_new_messages,
            self._handle_agent_change,
        )
        self.agent_system.set_history(self.messages)
        logger.info("Agent system created", extra={"extra": {"model": self.model}})

    def _set_messages(self, messages: List[ChatMessage]) -> None:
        self.messages = list(messages)
        if self.messages:
            self._store.save(STORAGE_KEYS["MESSAGES"], messages_to_payload(self.messages))
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
