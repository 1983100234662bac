"""
生效变量选择测试

优先级：contractor > client > workspace > 全局。
"""

from core.variable import ScopedVariable, VariableDefinition
from services.effective import ExpressionContext, select_effective_variables, to_definitions


CONTEXT = ExpressionContext(workspace_id=1, client_id=101, contractor_id=1001)


def scoped(name, workspace_id=None, client_id=None, contractor_id=None, value=None):
    return ScopedVariable(
        name=name,
        definition=VariableDefinition.const(value or f"{workspace_id}/{client_id}/{contractor_id}"),
        workspace_id=workspace_id,
        client_id=client_id,
        contractor_id=contractor_id,
    )


GLOBAL = scoped("API_URL")
WORKSPACE = scoped("API_URL", 1)
CLIENT = scoped("API_URL", 1, 101)
CONTRACTOR = scoped("API_URL", 1, 101, 1001)


def test_contractor_wins():
    result = select_effective_variables(CONTEXT, [GLOBAL, WORKSPACE, CLIENT, CONTRACTOR])
    assert result == {"API_URL": CONTRACTOR}


def test_order_does_not_matter():
    result = select_effective_variables(CONTEXT, [CONTRACTOR, CLIENT, WORKSPACE, GLOBAL])
    assert result == {"API_URL": CONTRACTOR}


def test_fallback_chain():
    assert select_effective_variables(CONTEXT, [GLOBAL, WORKSPACE, CLIENT]) == {"API_URL": CLIENT}
    assert select_effective_variables(CONTEXT, [GLOBAL, WORKSPACE]) == {"API_URL": WORKSPACE}
    assert select_effective_variables(CONTEXT, [GLOBAL]) == {"API_URL": GLOBAL}


def test_multiple_names_independent():
    discount = scoped("DISCOUNT")
    result = select_effective_variables(CONTEXT, [CONTRACTOR, discount])
    assert result == {"API_URL": CONTRACTOR, "DISCOUNT": discount}


def test_empty_input():
    assert select_effective_variables(CONTEXT, []) == {}


def test_other_scopes_are_skipped():
    other_workspace = scoped("API_URL", 2)
    other_contractor = scoped("API_URL", 1, 101, 9999)
    result = select_effective_variables(CONTEXT, [GLOBAL, other_workspace, other_contractor])
    assert result == {"API_URL": GLOBAL}
    assert select_effective_variables(CONTEXT, [other_workspace]) == {}


def test_equal_specificity_later_wins():
    first = scoped("API_URL", value="first")
    second = scoped("API_URL", value="second")
    assert select_effective_variables(CONTEXT, [first, second]) == {"API_URL": second}


def test_to_definitions():
    result = to_definitions(select_effective_variables(CONTEXT, [CONTRACTOR]))
    assert result == {"API_URL": VariableDefinition.const("1/101/1001")}
