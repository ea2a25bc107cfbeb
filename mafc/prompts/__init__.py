"""系统提示词加载工具。

按阶段名与语言(locale) 从 prompts/<locale> 目录读取对应的 system prompt
文本，作为 systemInstruction 随每次生成请求发送。
"""

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from mafc.domain.models import STAGES


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(stage: str, locale: str = "zh") -> str:
    """根据阶段名和语言加载系统提示词文本。

    stage 取 PROFILER / SPECIALIST / CRITIC / HOST（不区分大小写），
    对应文件 prompts/<locale>/<stage>.md。
    """

    key = stage.upper()
    if key not in STAGES:
        raise KeyError(f"Unknown stage: {stage!r}")
    fname = PROMPTS_DIR / locale / f"{key.lower()}.md"
    return fname.read_text(encoding="utf-8")


PROMPTS: Mapping[str, str] = MappingProxyType({stage: load_system_prompt(stage) for stage in STAGES})
