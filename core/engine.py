"""
表达式求值引擎

对外的求值入口：
- ExpressionEngine.evaluate()：异步求值
- ExpressionEngine.evaluate_sync()：在新的事件循环中同步求值
- evaluate_expression() / evaluate_expression_sync()：模块级快捷方式

每次调用都会新建 EvaluationSession，调用返回（成功或失败）后即丢弃，
并发调用之间不共享缓存与进行中集合。
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional, Union

import functions  # noqa: F401  触发函数注册
from utils.logger import get_logger

from .expression import ExpressionError, ExpressionResolver, VariablesAccessor
from .variable import VariableDefinition


logger = get_logger()


VariableInput = Mapping[str, Union[VariableDefinition, Mapping[str, str]]]


def _coerce_variables(variables: Optional[VariableInput]) -> Dict[str, VariableDefinition]:
    """
    统一变量定义格式。

    允许直接传入持久化结构 {"type": "const", "value": "..."}。
    """
    definitions: Dict[str, VariableDefinition] = {}
    for name, definition in (variables or {}).items():
        if isinstance(definition, VariableDefinition):
            definitions[name] = definition
        else:
            definitions[name] = VariableDefinition.from_dict(definition)
    return definitions


class ExpressionEngine:
    """
    表达式求值引擎。

    特点：
    - 引擎本身无状态，可在多个调用（包括并发调用）之间复用。
    - api 为调用方提供的辅助接口对象，原样传给所有表达式。
    - 没有内置超时；表达式由用户编写，调用方需要自行在外层限制执行时间。
    """

    def __init__(self, api: Any = None) -> None:
        self.api = api

    async def evaluate(
        self,
        variables: Optional[VariableInput],
        args: Optional[Mapping[str, Any]],
        source: str,
        api: Any = None,
    ) -> str:
        """
        对根表达式求值。

        Args:
            variables: 变量定义 {变量名: VariableDefinition 或 {"type", "value"}}
            args: 运行时参数
            source: 根表达式源码
            api: 本次调用使用的辅助接口，None 时使用构造时传入的 api

        Returns:
            求值结果字符串

        Raises:
            UndefinedVariableError / UndefinedArgumentError /
            CircularReferenceError / EvaluationRuntimeError
        """
        definitions = _coerce_variables(variables)
        resolver = ExpressionResolver(
            definitions,
            args or {},
            self.api if api is None else api,
        )
        logger.debug(
            "evaluate start: %d variables, %d args",
            len(definitions),
            len(resolver.arguments),
        )

        try:
            result = await resolver.run(source, VariablesAccessor(resolver))
        except ExpressionError as exc:
            logger.warning("表达式求值失败: %s", exc)
            raise

        logger.debug(
            "evaluate done: %d variables resolved",
            len(resolver.session.cache),
        )
        return result

    def evaluate_sync(
        self,
        variables: Optional[VariableInput],
        args: Optional[Mapping[str, Any]],
        source: str,
        api: Any = None,
    ) -> str:
        """
        同步求值。

        注意：内部使用 asyncio.run()，不能在已运行的事件循环中调用。
        """
        return asyncio.run(self.evaluate(variables, args, source, api))


async def evaluate_expression(
    variables: Optional[VariableInput],
    args: Optional[Mapping[str, Any]],
    source: str,
    api: Any = None,
) -> str:
    """异步求值的快捷方式。"""
    return await ExpressionEngine(api).evaluate(variables, args, source)


def evaluate_expression_sync(
    variables: Optional[VariableInput],
    args: Optional[Mapping[str, Any]],
    source: str,
    api: Any = None,
) -> str:
    """同步求值的快捷方式。"""
    return ExpressionEngine(api).evaluate_sync(variables, args, source)
