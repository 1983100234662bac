"""
生效变量选择

同名变量可以在不同作用域（全局 / workspace / client / contractor）各定义一份，
对给定上下文按特异性选出生效的那一份：contractor > client > workspace > 全局。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from core.variable import ScopedVariable, VariableDefinition


@dataclass(frozen=True)
class ExpressionContext:
    """
    表达式求值的业务上下文。

    不同上下文可能得到不同的生效变量。
    """

    workspace_id: Optional[int] = None
    client_id: Optional[int] = None
    contractor_id: Optional[int] = None


def _matches(context: ExpressionContext, variable: ScopedVariable) -> bool:
    """非空的作用域 id 必须与上下文一致。"""
    if variable.workspace_id is not None and variable.workspace_id != context.workspace_id:
        return False
    if variable.client_id is not None and variable.client_id != context.client_id:
        return False
    if variable.contractor_id is not None and variable.contractor_id != context.contractor_id:
        return False
    return True


def specificity_score(context: ExpressionContext, variable: ScopedVariable) -> int:
    """特异性得分：contractor 命中 3 分，client 2 分，workspace 1 分。"""
    score = 0
    if variable.contractor_id == context.contractor_id:
        score += 3
    if variable.client_id == context.client_id:
        score += 2
    if variable.workspace_id == context.workspace_id:
        score += 1
    return score


def select_effective_variables(
    context: ExpressionContext,
    variables: Iterable[ScopedVariable],
) -> Dict[str, ScopedVariable]:
    """
    为上下文选出每个变量名的生效定义。

    - 作用域与上下文不符的变量直接跳过
    - 同名变量保留得分最高的；得分相同时后出现的覆盖先出现的
    """
    effective: Dict[str, ScopedVariable] = {}
    for variable in variables:
        if not _matches(context, variable):
            continue
        existing = effective.get(variable.name)
        if existing is None or specificity_score(context, variable) >= specificity_score(
            context, existing
        ):
            effective[variable.name] = variable
    return effective


def to_definitions(effective: Dict[str, ScopedVariable]) -> Dict[str, VariableDefinition]:
    """去掉作用域信息，得到求值引擎使用的 {变量名: VariableDefinition}。"""
    return {name: variable.definition for name, variable in effective.items()}
