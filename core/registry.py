"""
表达式可用函数注册表

本模块只负责「名称注册」，不承载具体函数实现：
- FunctionRegistry：统一管理 {名称 -> Python 可调用对象/类型} 的映射。

具体函数放在独立的 functions 包中，导入 functions 即完成注册。
注册表内容会作为表达式代码的 __builtins__，未注册的内置名称在表达式中不可见。
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional


class FunctionRegistry:
    """
    函数注册表。

    所有注册/获取都通过类方法完成，便于在不同模块中统一使用。
    """

    _functions: Dict[str, Callable[..., Any]] = {}

    @classmethod
    def register_function(cls, name: str, func: Callable[..., Any]) -> None:
        """
        注册函数。

        这些函数可以直接在表达式中调用，例如 len、quote 等。
        """
        cls._functions[name] = func

    @classmethod
    def unregister_function(cls, name: str) -> None:
        """移除已注册的函数，名称不存在时忽略。"""
        cls._functions.pop(name, None)

    @classmethod
    def get_function(cls, name: str) -> Optional[Callable[..., Any]]:
        """根据名称获取函数，找不到时返回 None。"""
        return cls._functions.get(name)

    @classmethod
    def list_functions(cls) -> List[str]:
        """返回已注册的函数名称列表。"""
        return sorted(cls._functions.keys())

    @classmethod
    def build_builtins(cls) -> Dict[str, Any]:
        """
        构造表达式执行环境的 __builtins__。

        每次调用返回新的字典，表达式代码对它的修改不会影响注册表。
        """
        return dict(cls._functions)
