"""
tiktoken：请求前算账，控制打分 prompt 中单条职位描述的长度。

100 条职位一次打分，描述过长会撑爆上下文，这里按 token 截断。
"""
from __future__ import annotations

from typing import Optional

# 常用模型与 tiktoken 编码的映射（OpenAI 兼容 API 多用 cl100k_base）
_MODEL_ENCODING = {
    "gpt-4o": "o200k_base",
    "gpt-4o-mini": "o200k_base",
    "gpt-4": "cl100k_base",
    "gpt-4-turbo": "cl100k_base",
    "gpt-3.5-turbo": "cl100k_base",
    "deepseek": "cl100k_base",  # DeepSeek 兼容 cl100k_base 估算
}
_DEFAULT_ENCODING = "cl100k_base"


def _get_encoding_for_model(model_name: Optional[str] = None) -> "tiktoken.Encoding | None":
    """根据模型名获取 tiktoken 编码；未知模型用 cl100k_base。失败时返回 None（调用方用字符近似）。"""
    import tiktoken
    try:
        name = (model_name or "").strip().lower()
        for key, enc in _MODEL_ENCODING.items():
            if key in name:
                return tiktoken.get_encoding(enc)
        return tiktoken.get_encoding(_DEFAULT_ENCODING)
    except Exception:
        return None


def count_tokens(text: str, model_name: Optional[str] = None) -> int:
    """
    计算文本的 token 数量。
    若 tiktoken 不可用（如无网络加载编码表），回退为约 len(text)//2 的近似值。
    """
    if not text:
        return 0
    enc = _get_encoding_for_model(model_name)
    if enc is not None:
        return len(enc.encode(text))
    return max(1, len(text) // 2)


def truncate_to_tokens(text: str, max_tokens: int, model_name: Optional[str] = None) -> str:
    """
    截断到 max_tokens 以内。
    字符数不超过 max_tokens 时 token 数必然不超，直接返回，不加载编码表。
    """
    if not text or max_tokens <= 0 or len(text) <= max_tokens:
        return text or ""
    enc = _get_encoding_for_model(model_name)
    if enc is None:
        # 近似：1 token ≈ 2 字符
        return text[: max_tokens * 2]
    ids = enc.encode(text)
    if len(ids) <= max_tokens:
        return text
    return enc.decode(ids[:max_tokens])
