"""
MarkItDown：上传的简历文件（PDF / Word 等）统一转成文本，再交给 LLM 结构化。

扫描件或纯图片 PDF 没有文字层，提取结果过短时直接判为无法解析。
"""
from __future__ import annotations

import io
import os
from typing import BinaryIO

from markitdown import DocumentConverterResult, MarkItDown, StreamInfo

# 少于该字符数视为没有可用文字层
MIN_TEXT_LENGTH = 50

_converter_instance: MarkItDown | None = None


class DocumentConversionError(ValueError):
    """文件无法转换，或提取出的文字太少；属于客户端输入错误。"""


def _converter() -> MarkItDown:
    """单例式获取转换器，避免重复初始化。"""
    global _converter_instance
    if _converter_instance is None:
        _converter_instance = MarkItDown()
    return _converter_instance


def convert_stream(
    stream: BinaryIO,
    *,
    filename: str | None = None,
    file_extension: str | None = None,
) -> DocumentConverterResult:
    """
    将二进制流（如上传文件内容）转为 Markdown。
    filename: 原始文件名，用于推断类型（如 resume.pdf）。
    """
    ext = file_extension
    if not ext and filename:
        ext = os.path.splitext(filename)[1]
    stream_info = StreamInfo(extension=ext or None, filename=filename) if (ext or filename) else None
    return _converter().convert_stream(stream, stream_info=stream_info)


def stream_to_markdown(
    stream: BinaryIO,
    *,
    filename: str | None = None,
    file_extension: str | None = None,
) -> str:
    """便捷：二进制流 → Markdown 字符串。"""
    return convert_stream(stream, filename=filename, file_extension=file_extension).markdown


def extract_resume_text(data: bytes, filename: str | None = None) -> str:
    """
    上传内容 → 去首尾空白的文本。
    转换失败或文字不足 MIN_TEXT_LENGTH 时抛 DocumentConversionError。
    """
    if not data:
        raise DocumentConversionError("Uploaded file is empty")
    try:
        text = stream_to_markdown(io.BytesIO(data), filename=filename)
    except Exception as e:
        raise DocumentConversionError(f"Could not read file {filename or ''}: {type(e).__name__}".strip()) from e
    text = (text or "").strip()
    if len(text) < MIN_TEXT_LENGTH:
        raise DocumentConversionError(
            "Could not extract sufficient text from file. The file might be corrupted, "
            "password-protected, or contain only images."
        )
    return text
