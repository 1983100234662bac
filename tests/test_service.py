"""
变量文件解析与表达式服务测试
"""

import asyncio
import pathlib

import pytest

from core.expression import UndefinedVariableError
from core.parser import VariableFileParser
from core.variable import ScopedVariable, VariableDefinition, VariableKind
from services.effective import ExpressionContext
from services.expression_service import ExpressionService
from services.source import InMemoryVariableSource, YamlVariableSource


DEMO_CONFIG = pathlib.Path(__file__).parent.parent / "config" / "variables_demo.yaml"
CONTEXT = ExpressionContext(workspace_id=1, client_id=101, contractor_id=1001)
ARGS = {"timeStart": "2023-01-01", "timeEnd": "2023-01-31"}


# ---------------------------------------------------------------------#
# VariableFileParser
# ---------------------------------------------------------------------#
def test_parse_demo_file():
    config = VariableFileParser().parse_file(DEMO_CONFIG)
    assert config.timeout == 2.0
    assert len(config.variables) == 6

    names = [variable.name for variable in config.variables]
    assert names.count("workspaceName") == 2

    user = next(variable for variable in config.variables if variable.name == "user")
    assert user.definition == VariableDefinition.const("uw1c1")
    assert (user.workspace_id, user.client_id, user.contractor_id) == (1, 101, 1001)

    detailed = next(variable for variable in config.variables if variable.name == "DETAILED_URL")
    assert detailed.definition.kind is VariableKind.EXPRESSION
    assert len(detailed.definition.source.strip().split("\n")) == 2


def test_parse_text_defaults():
    config = VariableFileParser().parse_text("variables:\n  - name: A\n    value: 1\n")
    assert config.timeout is None
    assert config.variables == [ScopedVariable("A", VariableDefinition.const("1"))]


def test_parse_empty_text():
    config = VariableFileParser().parse_text("")
    assert config.variables == []


@pytest.mark.parametrize(
    "text",
    [
        "- name: A",
        "variables:\n  - name: A",
        "variables:\n  - value: x",
        "variables:\n  - name: A\n    type: formula\n    value: x",
        "variables:\n  - just-a-string",
    ],
)
def test_parse_invalid(text):
    with pytest.raises(ValueError):
        VariableFileParser().parse_text(text)


def test_variable_kind_from_str():
    assert VariableKind.from_str("CONST") is VariableKind.CONST
    assert VariableKind.from_str(" expression ") is VariableKind.EXPRESSION
    with pytest.raises(ValueError):
        VariableKind.from_str("formula")


def test_definition_round_trip_shape():
    definition = VariableDefinition.from_dict({"type": "expression", "value": "vars.A"})
    assert definition.to_dict() == {"type": "expression", "value": "vars.A"}


# ---------------------------------------------------------------------#
# ExpressionService
# ---------------------------------------------------------------------#
def test_service_from_yaml():
    service = ExpressionService.from_yaml(DEMO_CONFIG)
    assert service.timeout == 2.0

    report = service.evaluate_sync(CONTEXT, "vars.REPORT_URL", ARGS)
    assert report == (
        "https://app.tmetric.com/#/reports/workspace1/tasks"
        "?range=2023-01-01-2023-01-31&user=uw1c1"
    )

    detailed = service.evaluate_sync(CONTEXT, "vars.DETAILED_URL", ARGS)
    assert detailed == (
        "https://app.tmetric.com/#/reports/workspace1/detailed"
        "?range=2023-01-01-2023-01-31&user=uw1c1"
    )


def test_service_context_changes_result():
    service = ExpressionService(YamlVariableSource(DEMO_CONFIG))
    other = ExpressionContext(workspace_id=2, client_id=201, contractor_id=2001)

    assert service.evaluate_sync(other, "vars.workspaceName", {}) == "workspace-default"
    assert "user" not in service.effective_variables(other)
    with pytest.raises(UndefinedVariableError) as exc_info:
        service.evaluate_sync(other, "vars.REPORT_URL", ARGS)
    assert exc_info.value.name == "user"


def test_service_in_memory_source():
    source = InMemoryVariableSource(
        [ScopedVariable("GREETING", VariableDefinition.const("hello"))]
    )
    source.add(
        ScopedVariable("GREETING", VariableDefinition.const("hi"), workspace_id=1)
    )
    service = ExpressionService(source)

    assert service.evaluate_sync(CONTEXT, 'f"{vars.GREETING}, {args.who}"', {"who": "bob"}) == "hi, bob"
    assert service.evaluate_sync(ExpressionContext(), "vars.GREETING") == "hello"


def test_service_timeout():
    class SlowApi:
        async def wait(self):
            await asyncio.sleep(1)
            return "late"

    source = InMemoryVariableSource([ScopedVariable("SLOW", VariableDefinition.expression("await api.wait()"))])
    service = ExpressionService(source, api=SlowApi(), timeout=0.05)
    with pytest.raises(asyncio.TimeoutError):
        service.evaluate_sync(CONTEXT, "vars.SLOW")


def test_service_async_evaluate():
    source = InMemoryVariableSource([ScopedVariable("A", VariableDefinition.const("a"))])
    service = ExpressionService(source, timeout=1.0)
    assert asyncio.run(service.evaluate(CONTEXT, "vars.A + vars.A")) == "aa"
