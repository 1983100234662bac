"""
表达式函数库

包含可以在表达式中直接调用的函数，例如：
- str, int, len, min, max 等基础内置函数
- quote, urlencode, join_path 等 URL 函数

所有函数通过 FunctionRegistry 注册，注册表之外的内置名称在表达式中不可用。
"""

from core.registry import FunctionRegistry

from .url_functions import join_path_func, quote_func, quote_plus_func, urlencode_func

# 注册 URL 函数
FunctionRegistry.register_function("quote", quote_func)
FunctionRegistry.register_function("quote_plus", quote_plus_func)
FunctionRegistry.register_function("urlencode", urlencode_func)
FunctionRegistry.register_function("join_path", join_path_func)

# 注册内置函数与类型
for _builtin in (
    str,
    int,
    float,
    bool,
    len,
    min,
    max,
    abs,
    round,
    sorted,
    list,
    dict,
    tuple,
    range,
    enumerate,
    zip,
    isinstance,
):
    FunctionRegistry.register_function(_builtin.__name__, _builtin)

# 注册异常类型，表达式中可以 raise / except
for _exc_type in (Exception, ValueError, KeyError, TypeError):
    FunctionRegistry.register_function(_exc_type.__name__, _exc_type)

__all__ = []
