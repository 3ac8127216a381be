# 配置、日志、LiteLLM 封装、重试、tiktoken 截断、错误脱敏

from .config import ConfigError, get_default_model, load_settings
from .errors import sanitize_error, sanitize_message
from .llm import LLMClient, LLMError, acompletion
from .log import configure_logging
from .retry import is_retryable_status, with_retry
from .schemas import CamelModel
from .tokens import count_tokens, truncate_to_tokens

__all__ = [
    "CamelModel",
    "ConfigError",
    "LLMClient",
    "LLMError",
    "acompletion",
    "configure_logging",
    "count_tokens",
    "get_default_model",
    "is_retryable_status",
    "load_settings",
    "sanitize_error",
    "sanitize_message",
    "truncate_to_tokens",
    "with_retry",
]
