"""
LiteLLM 统一多平台模型调用：一套请求逻辑、一套错误处理，换模型只改 model 字符串。

环境变量（任选其一即可）：OPENAI_API_KEY、ANTHROPIC_API_KEY、DEEPSEEK_API_KEY 等，
LiteLLM 会自动读取，无需在代码里区分厂商。
模型名使用 LiteLLM 格式，例如：openai/gpt-4o、anthropic/claude-3-5-sonnet、deepseek/deepseek-chat。
"""
from __future__ import annotations

from typing import Any

from hirematch.core.config import get_default_model


class LLMError(Exception):
    """LLM 调用失败；status 为上游 HTTP 状态码（未知时为 None），供重试判定。"""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


async def acompletion(
    model: str | None = None,
    messages: list[dict[str, str]] | None = None,
    **kwargs: Any,
) -> Any:
    """
    统一异步 completion 调用：GPT、Claude、DeepSeek 等逻辑完全一致。
    model: 不传则使用 HIREMATCH_DEFAULT_MODEL。
    返回 litellm 的 response，调用方取 response.choices[0].message.content。
    任何失败都包装为 LLMError，保留上游状态码。
    """
    from litellm import acompletion as litellm_acompletion

    model = model or get_default_model()
    if not messages:
        messages = [{"role": "user", "content": ""}]
    try:
        return await litellm_acompletion(model=model, messages=messages, **kwargs)
    except Exception as e:
        status = getattr(e, "status_code", None)
        raise LLMError(str(e) or type(e).__name__, status=status if isinstance(status, int) else None) from e


class LLMClient:
    """
    LLM 协作方：打分流水线、简历写作等通过构造参数注入，测试中可替换为假实现。
    """

    def __init__(self, model: str | None = None):
        self.model = model

    async def complete_json(self, prompt: str) -> str:
        """要求模型返回 JSON 对象，返回原始文本（解析由调用方负责）。"""
        resp = await acompletion(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )
        return resp.choices[0].message.content or "{}"

    async def complete_text(self, prompt: str, system: str | None = None) -> str:
        """单轮问答：返回模型回复正文。"""
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt or ""})
        resp = await acompletion(model=self.model, messages=messages)
        return (resp.choices[0].message.content or "").strip()
