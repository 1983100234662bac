"""
表达式服务

把变量来源、生效变量选择与求值引擎组合起来：
- effective_variables(context)：上下文下的生效变量
- evaluate(context, expression, args)：在上下文中对表达式求值

表达式由用户编写，服务层可以配置超时时间（秒），引擎本身不限制执行时间。
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional

import pathlib

from core.engine import ExpressionEngine
from core.variable import VariableDefinition
from utils.logger import get_logger

from .effective import ExpressionContext, select_effective_variables, to_definitions
from .source import VariableSource, YamlVariableSource


logger = get_logger()


class ExpressionService:
    """
    表达式服务。

    Args:
        source: 变量来源
        api: 辅助接口对象，原样传给所有表达式
        timeout: 单次求值超时时间（秒），None 表示不限制
    """

    def __init__(
        self,
        source: VariableSource,
        api: Any = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.source = source
        self.timeout = timeout
        self._engine = ExpressionEngine(api)

    @classmethod
    def from_yaml(cls, path: str | pathlib.Path, api: Any = None) -> "ExpressionService":
        """从 YAML 变量文件创建服务，timeout 取自文件配置。"""
        source = YamlVariableSource(path)
        config = source.load_config()
        return cls(source, api=api, timeout=config.timeout)

    def effective_variables(self, context: ExpressionContext) -> Dict[str, VariableDefinition]:
        """返回上下文下的生效变量 {变量名: VariableDefinition}。"""
        variables = self.source.load_variables()
        effective = select_effective_variables(context, variables)
        logger.debug(
            "effective variables for %s: %d of %d",
            context,
            len(effective),
            len(variables),
        )
        return to_definitions(effective)

    async def evaluate(
        self,
        context: ExpressionContext,
        expression: str,
        args: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        在上下文中对表达式求值。

        Raises:
            ExpressionError 的各个子类
            asyncio.TimeoutError: 超过 timeout
        """
        definitions = self.effective_variables(context)
        evaluation = self._engine.evaluate(definitions, args, expression)
        if self.timeout is None:
            return await evaluation

        try:
            return await asyncio.wait_for(evaluation, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("表达式求值超时 (%.3fs): %s", self.timeout, context)
            raise

    def evaluate_sync(
        self,
        context: ExpressionContext,
        expression: str,
        args: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """同步求值，不能在已运行的事件循环中调用。"""
        return asyncio.run(self.evaluate(context, expression, args))
