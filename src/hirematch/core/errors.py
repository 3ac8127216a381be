"""对外错误信息脱敏：API Key、UUID、邮箱不回传给客户端。"""
from __future__ import annotations

import re

_API_KEY = re.compile(r"sk-[a-zA-Z0-9]{20,}")
_UUID = re.compile(r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}")
_EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")


def sanitize_message(message: str) -> str:
    message = _API_KEY.sub("sk-***", message)
    message = _UUID.sub("***", message)
    return _EMAIL.sub("***@***", message)


def sanitize_error(error: object) -> str:
    """异常 → 可返回给客户端的短文本；非异常对象一律 Unknown error。"""
    if isinstance(error, BaseException):
        return sanitize_message(str(error) or type(error).__name__)
    return "Unknown error"
