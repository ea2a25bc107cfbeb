"""MAFC 顶层包。

多智能体影视推荐对话系统：画像收集 → 类型专家 → 影评推荐 → 主持呈现。
包括配置加载、领域模型、Gemini Provider 适配、对话编排器、
单轮流程图、本地键值存储与 tkinter 聊天界面。
"""

from mafc.agents.agent_system import AgentSystem
from mafc.api.service import ChatApp

__all__ = ["AgentSystem", "ChatApp"]
