"""Gemini Provider 适配器。

使用 generateContent 端点：
- URL: {base_url}/models/{model}:generateContent?key=<api_key>
- 请求体: contents（单个 user 内容）+ generationConfig + 可选 systemInstruction
- 响应: candidates[0].content.parts[0].text

单次请求/响应：不重试、不流式，默认不设超时。
"""

from typing import Any, Dict, Optional

import httpx

from mafc.config.settings import settings
from mafc.domain.exceptions import ApiError, BusinessError, ConfigurationError, NetworkError, ProtocolError
from mafc.domain.models import GenerationRequest
from mafc.infrastructure.logging.logger import logger
from mafc.providers.registry import GEMINI_CONFIG


class GeminiClient:
    """Gemini 文本生成客户端实现。"""

    name = "gemini"

    def __init__(self, api_key: Optional[str], model: Optional[str] = None, cfg=settings):
        self._settings = cfg
        self._api_key = api_key or ""
        self._model = model or getattr(cfg, "default_model", None) or GEMINI_CONFIG.default_model

    @property
    def model(self) -> str:
        return self._model

    def generate(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        model_cfg = GEMINI_CONFIG.model(self._model)
        req = GenerationRequest(
            model=self._model,
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=model_cfg.default_temperature,
            max_output_tokens=model_cfg.max_output_tokens,
        )
        return self.generate_content(req)

    def generate_content(self, req: GenerationRequest) -> str:
        if not self._api_key or not self._api_key.strip():
            raise ConfigurationError(code="MISSING_API_KEY", message="API key is empty or missing")
        try:
            data = self._post(req)
            return self._parse_response(data)
        except BusinessError as e:
            logger.warning(
                "Generation failed",
                extra={"extra": {"provider": self.name, "model": req.model, "code": e.code, "status": e.http_status}},
            )
            raise
        except Exception as e:
            raise BusinessError(
                code="UNKNOWN_ERROR",
                message=f"Unknown error occurred during API call: {e}",
                http_status=500,
            ) from e

    # ---- 辅助方法 ----

    def _post(self, req: GenerationRequest) -> Dict[str, Any]:
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        url = f"{base}/models/{req.model}:generateContent"
        payload = self._build_payload(req)
        logger.info(
            "Generation request",
            extra={"extra": {"provider": self.name, "model": req.model, "prompt_chars": len(req.prompt)}},
        )
        try:
            with httpx.Client(timeout=getattr(self._settings, "http_timeout", None), trust_env=False) as client:
                resp = client.post(
                    url,
                    params={"key": self._api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if not 200 <= resp.status_code < 300:
            raise ApiError(
                code="API_ERROR",
                message=f"API Error {resp.status_code}: {resp.reason_phrase}. {resp.text}",
                http_status=resp.status_code,
                body=resp.text,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ProtocolError(code="INVALID_RESPONSE", message=f"Invalid JSON response: {e}", http_status=502)

    @staticmethod
    def _build_payload(req: GenerationRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": req.prompt}],
                }
            ],
            "generationConfig": {
                "temperature": req.temperature,
                "maxOutputTokens": req.max_output_tokens,
            },
        }
        if req.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": req.system_instruction}]}
        return payload

    @staticmethod
    def _parse_response(data: Any) -> str:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise ProtocolError(code="NO_CANDIDATES", message="No candidates returned from API", http_status=502)
        try:
            text = candidates[0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str):
            raise ProtocolError(code="EMPTY_CANDIDATE", message="Candidate contains no text part", http_status=502)
        return text
