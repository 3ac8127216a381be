# MarkItDown 文档转换：上传简历 → 文本

from .markitdown_convert import (
    MIN_TEXT_LENGTH,
    DocumentConversionError,
    convert_stream,
    extract_resume_text,
    stream_to_markdown,
)

__all__ = [
    "MIN_TEXT_LENGTH",
    "DocumentConversionError",
    "convert_stream",
    "extract_resume_text",
    "stream_to_markdown",
]
