"""
变量文件解析器

负责：
- 从 YAML 文件中读取变量定义（例如 config/variables_demo.yaml）
- 解析出 ScopedVariable 列表与服务设置（timeout）

注意：
- 本模块只做配置解析，不做作用域筛选，也不执行表达式。
- 同名变量允许出现多次（作用域不同），由 services.effective 负责选择。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pathlib

import yaml

from .variable import ScopedVariable, VariableDefinition, VariableKind


@dataclass
class VariableFileConfig:
    """
    变量文件配置对象。

    Attributes:
        variables: 变量列表（顺序即文件中的顺序）。
        timeout: 单次求值的超时时间（秒），None 表示不限制。
    """

    variables: List[ScopedVariable] = field(default_factory=list)
    timeout: Optional[float] = None


class VariableFileParser:
    """
    变量文件解析器。

    支持：
    - 顶层键：timeout, variables
    - variables: 列表，每项包含 name, type, value, 以及可选的
      workspace_id, client_id, contractor_id
    """

    def parse_file(self, path: str | pathlib.Path) -> VariableFileConfig:
        """
        从 YAML 文件解析 VariableFileConfig。

        Args:
            path: 配置文件路径。
        """
        path_obj = pathlib.Path(path)
        with path_obj.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return self.parse_data(data)

    def parse_text(self, text: str) -> VariableFileConfig:
        """从 YAML 文本解析。"""
        return self.parse_data(yaml.safe_load(text) or {})

    def parse_data(self, data: Dict[str, Any]) -> VariableFileConfig:
        """从已加载的字典解析。"""
        if not isinstance(data, dict):
            raise ValueError(f"变量文件顶层必须是字典，实际为: {type(data).__name__}")

        timeout = data.get("timeout")
        return VariableFileConfig(
            variables=self._parse_variables(data),
            timeout=float(timeout) if timeout is not None else None,
        )

    # ------------------------------------------------------------------#
    # 内部解析工具
    # ------------------------------------------------------------------#
    def _parse_variables(self, data: Dict[str, Any]) -> List[ScopedVariable]:
        """解析 variables 列表。"""
        items_raw = data.get("variables", []) or []
        variables: List[ScopedVariable] = []

        for index, item in enumerate(items_raw):
            if not isinstance(item, dict):
                raise ValueError(f"第 {index} 个变量定义必须是字典: {item!r}")
            if "name" not in item or "value" not in item:
                raise ValueError(f"第 {index} 个变量定义缺少 name 或 value: {item!r}")

            name = str(item["name"])
            try:
                kind = VariableKind.from_str(item.get("type", "const"))
            except ValueError as exc:
                raise ValueError(f"变量 {name} 的类型无效: {exc}") from exc

            variables.append(
                ScopedVariable(
                    name=name,
                    definition=VariableDefinition(kind, str(item["value"])),
                    workspace_id=self._parse_scope_id(item, "workspace_id"),
                    client_id=self._parse_scope_id(item, "client_id"),
                    contractor_id=self._parse_scope_id(item, "contractor_id"),
                )
            )

        return variables

    @staticmethod
    def _parse_scope_id(item: Dict[str, Any], key: str) -> Optional[int]:
        """作用域 id：缺省或 null 表示任意。"""
        value = item.get(key)
        if value is None:
            return None
        return int(value)
