"""Provider 与模型配置。

生成端点、默认生成参数与已知模型集中配置在这里。
用户可在设置中填写任意模型标识，未登记的模型沿用 Provider 级默认值。
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class ModelConfig:
    """单个模型的生成参数。"""

    name: str
    max_output_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    default_model: str
    models: Dict[str, ModelConfig]

    def model(self, name: str) -> ModelConfig:
        cfg = self.models.get(name)
        if cfg is None:
            base = self.models[self.default_model]
            cfg = ModelConfig(
                name=name,
                max_output_tokens=base.max_output_tokens,
                default_temperature=base.default_temperature,
            )
        return cfg


# Gemini 配置
GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    default_model="gemini-2.5-flash",
    models={
        "gemini-2.5-flash": ModelConfig(
            name="gemini-2.5-flash",
            max_output_tokens=2000,
            default_temperature=0.7,
        ),
        "gemini-2.5-pro": ModelConfig(
            name="gemini-2.5-pro",
            max_output_tokens=2000,
            default_temperature=0.7,
        ),
    },
)
