"""Provider 抽象接口。

编排器不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：
给定提示词与可选系统指令，返回一段生成文本，失败时抛出 BusinessError。
"""

from typing import Optional, Protocol


class TextGenerator(Protocol):
    """文本生成客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志。
    - generate(prompt, system_instruction): 执行一次请求，返回第一个候选的文本。
    """

    name: str

    def generate(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        ...
