"""LLM Provider 集成层。

该包下的模块负责：
- 定义文本生成协议 (base)。
- 维护端点与模型配置 (registry)。
- 提供具体实现 (gemini_client)。
"""

from typing import Optional

from mafc.config.settings import settings
from mafc.providers.base import TextGenerator
from mafc.providers.gemini_client import GeminiClient


def create_provider(api_key: Optional[str], model: Optional[str] = None) -> TextGenerator:
    """创建 Gemini 文本生成客户端。"""

    return GeminiClient(api_key, model, settings)
