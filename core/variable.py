"""
变量定义与求值会话模块

用于描述变量（常量或表达式），以及单次求值调用中的缓存与进行中集合。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Set


class VariableKind(Enum):
    """变量类型：常量或表达式。"""

    CONST = "const"
    EXPRESSION = "expression"

    @classmethod
    def from_str(cls, value: str) -> "VariableKind":
        """
        从持久化字符串解析变量类型（不区分大小写）。

        Raises:
            ValueError: 未知类型
        """
        normalized = str(value).strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"未知的变量类型: {value}，可选: const / expression")


@dataclass(frozen=True)
class VariableDefinition:
    """
    单个变量定义。

    Attributes:
        kind: 变量类型。
        source: CONST 时为字面值；EXPRESSION 时为可执行的 Python 代码。
    """

    kind: VariableKind
    source: str

    @classmethod
    def const(cls, value: str) -> "VariableDefinition":
        return cls(VariableKind.CONST, value)

    @classmethod
    def expression(cls, source: str) -> "VariableDefinition":
        return cls(VariableKind.EXPRESSION, source)

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "VariableDefinition":
        """从持久化结构 {"type": ..., "value": ...} 构造。"""
        return cls(VariableKind.from_str(data["type"]), str(data["value"]))

    def to_dict(self) -> Dict[str, str]:
        """转换为持久化结构。"""
        return {"type": self.kind.value, "value": self.source}


VariableMap = Mapping[str, VariableDefinition]


@dataclass
class EvaluationSession:
    """
    单次 evaluate() 调用的运行时状态。

    Attributes:
        cache: 已解析变量的结果缓存（每个变量最多执行一次）。
        in_progress: 正在解析的变量名集合，用于循环引用检测。
    """

    cache: Dict[str, str] = field(default_factory=dict)
    in_progress: Set[str] = field(default_factory=set)

    def begin(self, name: str) -> None:
        """标记变量开始解析。"""
        self.in_progress.add(name)

    def finish(self, name: str) -> None:
        """取消变量的进行中标记。"""
        self.in_progress.discard(name)

    def store(self, name: str, value: str) -> None:
        """写入缓存。"""
        self.cache[name] = value


@dataclass(frozen=True)
class ScopedVariable:
    """
    带作用域的变量定义（持久化层的一条记录）。

    workspace_id / client_id / contractor_id 为 None 表示对任意值生效。
    """

    name: str
    definition: VariableDefinition
    workspace_id: Optional[int] = None
    client_id: Optional[int] = None
    contractor_id: Optional[int] = None
