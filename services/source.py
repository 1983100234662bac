"""
变量来源

ExpressionService 通过 VariableSource 读取全部带作用域的变量定义：
- InMemoryVariableSource：内存列表，便于测试与嵌入
- YamlVariableSource：从 YAML 变量文件读取（每次调用重新读取，文件修改即时生效）
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol

import pathlib

from core.parser import VariableFileConfig, VariableFileParser
from core.variable import ScopedVariable


class VariableSource(Protocol):
    """变量来源接口。"""

    def load_variables(self) -> List[ScopedVariable]:
        ...


class InMemoryVariableSource:
    """内存变量来源。"""

    def __init__(self, variables: Optional[Iterable[ScopedVariable]] = None) -> None:
        self._variables: List[ScopedVariable] = list(variables or [])

    def add(self, variable: ScopedVariable) -> None:
        self._variables.append(variable)

    def load_variables(self) -> List[ScopedVariable]:
        return list(self._variables)


class YamlVariableSource:
    """
    YAML 文件变量来源。

    Args:
        path: 变量文件路径
        parser: 解析器，默认新建 VariableFileParser
    """

    def __init__(self, path: str | pathlib.Path, parser: Optional[VariableFileParser] = None) -> None:
        self.path = pathlib.Path(path)
        self._parser = parser or VariableFileParser()

    def load_config(self) -> VariableFileConfig:
        return self._parser.parse_file(self.path)

    def load_variables(self) -> List[ScopedVariable]:
        return self.load_config().variables
