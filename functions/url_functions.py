"""
URL 函数库

提供可以在表达式中直接调用的 URL 拼接/编码函数。
所有函数都是无状态的，只接受参数并返回字符串。
"""

from typing import Any, Mapping
from urllib.parse import quote, quote_plus, urlencode


def quote_func(value: Any, safe: str = "/") -> str:
    """
    对 URL 路径片段做百分号编码。

    Args:
        value: 输入值，非字符串会先转换为字符串
        safe: 不编码的字符

    Examples:
        quote_func("a b") -> "a%20b"
        quote_func("x/y", safe="") -> "x%2Fy"
    """
    return quote(str(value), safe=safe)


def quote_plus_func(value: Any, safe: str = "") -> str:
    """
    对查询参数值编码（空格编码为 +）。

    Examples:
        quote_plus_func("a b&c") -> "a+b%26c"
    """
    return quote_plus(str(value), safe=safe)


def urlencode_func(params: Mapping[str, Any]) -> str:
    """
    把字典编码为查询字符串，值为 None 的项会被跳过。

    Examples:
        urlencode_func({"user": "u1", "range": "a b"}) -> "user=u1&range=a+b"
    """
    return urlencode({key: value for key, value in params.items() if value is not None})


def join_path_func(base: Any, *parts: Any) -> str:
    """
    拼接 URL 路径，保证片段之间只有一个 "/"。

    Examples:
        join_path_func("https://example.com/", "/api", "v1") -> "https://example.com/api/v1"
    """
    result = str(base).rstrip("/")
    for part in parts:
        segment = str(part).strip("/")
        if segment:
            result = f"{result}/{segment}"
    return result
