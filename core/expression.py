"""
表达式解析与变量求值

变量表达式使用 Python 代码编写，并作为异步函数体执行：
- 单行表达式自动补全 return，例如 f"{vars.BASE_URL}/tasks"
- 多行代码需要自行 return
- 变量引用：vars.NAME / vars["NAME"] / vars.get("NAME")（惰性解析，单次调用内缓存）
- 参数访问：args.NAME / args["NAME"] / args.get("NAME"[, default])
- 辅助接口：api（由调用方提供，原样传入，可 await）
"""

from __future__ import annotations

import ast
import textwrap
from functools import lru_cache
from types import CodeType
from typing import Any, Awaitable, Callable, Mapping, Optional

from .registry import FunctionRegistry
from .variable import EvaluationSession, VariableKind, VariableMap


EXPRESSION_FUNC_NAME = "__expression__"
EXPRESSION_FILENAME = "<expression>"
VARS_PARAM = "vars"
ARGS_PARAM = "args"
API_PARAM = "api"

# 根表达式没有变量名，错误信息中使用该标签
ROOT_LABEL = "<root>"

# ArgumentsAccessor.get 未传 default 的标记
_MISSING = object()


class ExpressionError(Exception):
    """表达式求值相关错误的基类。"""


class UndefinedVariableError(ExpressionError):
    """访问了未定义的变量。"""

    def __init__(self, name: str) -> None:
        super().__init__(f'变量未定义: "{name}"')
        self.name = name


class UndefinedArgumentError(ExpressionError):
    """访问了调用方未提供的参数。"""

    def __init__(self, name: str) -> None:
        super().__init__(f'参数未定义: "{name}"')
        self.name = name


class CircularReferenceError(ExpressionError):
    """
    变量循环引用。

    name 为触发本次解析链的根变量，而不是最内层的变量。
    """

    def __init__(self, name: str) -> None:
        super().__init__(f'检测到变量循环引用: "{name}"')
        self.name = name


class EvaluationRuntimeError(ExpressionError):
    """
    表达式代码执行时抛出的其他异常（语法错误、NameError、用户代码异常等）。

    Attributes:
        original: 原始异常（没有返回值时为 None）。
        variable: 出错的变量名，根表达式为 ROOT_LABEL。
    """

    def __init__(
        self,
        message: str,
        original: Optional[BaseException] = None,
        variable: str = ROOT_LABEL,
    ) -> None:
        super().__init__(f"表达式执行失败 ({variable}): {message}")
        self.message = message
        self.original = original
        self.variable = variable

    @classmethod
    def wrap(cls, exc: BaseException, variable: str) -> "EvaluationRuntimeError":
        return cls(f"{type(exc).__name__}: {exc}", original=exc, variable=variable)


def normalize_source(source: str) -> str:
    """
    把用户编写的表达式转换为合法的函数体。

    - 单行：没有以 "return " 开头时补全 "return "
    - 多行：原样返回（约定用户自行编写 return）

    先做 dedent，使整体缩进的多行代码也是合法的 Python。

    Examples:
        normalize_source('f"{vars.BASE_URL}/tasks"') -> 'return f"{vars.BASE_URL}/tasks"'
        normalize_source("return 1") -> "return 1"
    """
    trimmed = textwrap.dedent(source).strip()
    lines = trimmed.split("\n")
    if len(lines) == 1:
        if not lines[0].startswith("return "):
            return f"return {trimmed}"
        return trimmed
    return trimmed


class VariableReferenceTransformer(ast.NodeTransformer):
    """
    AST 节点转换器：将对 vars 的访问改写为 await vars.get(...)。

    转换规则：
    1. vars.NAME    -> await vars.get("NAME")
    2. vars[key]    -> await vars.get(key)
    3. vars.get(k)  -> await vars.get(k)
    4. 读取 vars 的生成器表达式 (x for ...) -> 列表推导 [x for ...]

    变量因此在表达式读取时才被解析，顺序与代码中的访问顺序一致。
    名为 get 的变量只能用 vars["get"] 访问；lambda 或普通 def 内部不能引用 vars。
    """

    def visit_Call(self, node: ast.Call) -> ast.AST:
        if self._is_vars_get(node.func):
            node.args = [self.visit(arg) for arg in node.args]
            node.keywords = [self.visit(keyword) for keyword in node.keywords]
            return ast.copy_location(ast.Await(value=node), node)
        self.generic_visit(node)
        return node

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        if self._is_vars_name(node.value) and isinstance(node.ctx, ast.Load):
            return self._await_get(ast.Constant(value=node.attr), node)
        self.generic_visit(node)
        return node

    def visit_Subscript(self, node: ast.Subscript) -> ast.AST:
        if self._is_vars_name(node.value) and isinstance(node.ctx, ast.Load):
            return self._await_get(self.visit(node.slice), node)
        self.generic_visit(node)
        return node

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> ast.AST:
        # 含 await 的生成器表达式会变成异步生成器，join/sum 等无法迭代，改写为列表推导
        self.generic_visit(node)
        if any(isinstance(child, ast.Await) for child in ast.walk(node)):
            return ast.copy_location(ast.ListComp(elt=node.elt, generators=node.generators), node)
        return node

    @staticmethod
    def _is_vars_name(node: ast.AST) -> bool:
        return isinstance(node, ast.Name) and node.id == VARS_PARAM

    @classmethod
    def _is_vars_get(cls, node: ast.AST) -> bool:
        return (
            isinstance(node, ast.Attribute)
            and node.attr == "get"
            and cls._is_vars_name(node.value)
        )

    @staticmethod
    def _await_get(key: ast.expr, node: ast.AST) -> ast.AST:
        call = ast.Call(
            func=ast.Attribute(
                value=ast.Name(id=VARS_PARAM, ctx=ast.Load()),
                attr="get",
                ctx=ast.Load(),
            ),
            args=[key],
            keywords=[],
        )
        return ast.copy_location(ast.Await(value=call), node)


@lru_cache(maxsize=256)
def compile_expression(source: str) -> CodeType:
    """
    编译表达式源码。

    结果是一个模块级代码对象，执行后在命名空间中定义：
        async def __expression__(vars, args, api): <函数体>

    编译结果按源码缓存，只缓存代码对象，不缓存求值结果。

    Raises:
        SyntaxError: 源码不是合法的 Python
    """
    body = ast.parse(normalize_source(source), filename=EXPRESSION_FILENAME, mode="exec")
    module = ast.parse(
        f"async def {EXPRESSION_FUNC_NAME}({VARS_PARAM}, {ARGS_PARAM}, {API_PARAM}):\n"
        "    pass\n",
        filename=EXPRESSION_FILENAME,
        mode="exec",
    )
    func = module.body[0]
    if body.body:
        func.body = body.body

    module = VariableReferenceTransformer().visit(module)
    ast.fix_missing_locations(module)
    return compile(module, filename=EXPRESSION_FILENAME, mode="exec")


def load_expression(source: str) -> Callable[..., Awaitable[Any]]:
    """
    编译并加载表达式函数。

    执行环境的 __builtins__ 只包含 FunctionRegistry 中注册的名称，
    其他裸标识符在执行时抛出 NameError。
    """
    code = compile_expression(source)
    namespace: dict[str, Any] = {"__builtins__": FunctionRegistry.build_builtins()}
    exec(code, namespace)
    return namespace[EXPRESSION_FUNC_NAME]


class VariablesAccessor:
    """
    变量访问器（表达式中的 vars）。

    支持：
    - await vars.get("NAME")：解析变量（vars.NAME / vars["NAME"] 会被改写成这种形式）
    - "NAME" in vars：只检查是否有定义，不触发解析
    """

    def __init__(self, resolver: "ExpressionResolver", root: Optional[str] = None) -> None:
        """
        Args:
            resolver: 本次求值共享的解析器
            root: 解析链的根变量名；为 None 时以被访问的变量名作为根（顶层访问）
        """
        self._resolver = resolver
        self._root = root

    async def get(self, name: str) -> str:
        root = name if self._root is None else self._root
        return await self._resolver.resolve(name, root)

    def __contains__(self, name: object) -> bool:
        return name in self._resolver.variables

    def __repr__(self) -> str:
        return f"<VariablesAccessor root={self._root!r}>"


class ArgumentsAccessor:
    """
    参数访问器（表达式中的 args）。

    支持：
    - args.NAME / args["NAME"] / args.get("NAME")
    - args.get("NAME", default)：参数不存在时返回 default
    - "NAME" in args
    名为 get 或以下划线开头的参数只能用 args["NAME"] 访问。
    参数不存在时抛出 UndefinedArgumentError。
    """

    def __init__(self, arguments: Mapping[str, Any]) -> None:
        self._arguments = arguments

    def get(self, name: str, default: Any = _MISSING) -> Any:
        if name in self._arguments:
            return self._arguments[name]
        if default is not _MISSING:
            return default
        raise UndefinedArgumentError(name)

    def __getattr__(self, name: str) -> Any:
        # 下划线开头的名称保持 Python 的默认行为，这类参数只能用 args["_name"] 访问
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._arguments

    def __repr__(self) -> str:
        return f"<ArgumentsAccessor keys={sorted(self._arguments)}>"


def coerce_result(value: Any, variable: str) -> str:
    """把表达式返回值转换为字符串；None 视为没有返回值。"""
    if value is None:
        raise EvaluationRuntimeError("表达式没有返回值（多行代码需要显式 return）", variable=variable)
    if isinstance(value, str):
        return value
    return str(value)


class ExpressionResolver:
    """
    变量解析器。

    同一次 evaluate() 调用内的所有解析共享一个 EvaluationSession：
    - cache：每个变量最多执行一次
    - in_progress：重复进入同一变量即为循环引用
    """

    def __init__(
        self,
        variables: VariableMap,
        arguments: Mapping[str, Any],
        api: Any = None,
        session: Optional[EvaluationSession] = None,
    ) -> None:
        """
        Args:
            variables: 变量定义 {变量名: VariableDefinition}，只读
            arguments: 运行时参数，只读
            api: 辅助接口对象，原样传给每个表达式
            session: 求值会话，默认新建
        """
        self.variables = variables
        self.arguments = arguments
        self.api = api
        self.session = session if session is not None else EvaluationSession()
        self._arguments_accessor = ArgumentsAccessor(arguments)

    async def resolve(self, name: str, root: Optional[str] = None) -> str:
        """
        解析单个变量。

        Args:
            name: 变量名
            root: 解析链的根变量名，用于循环引用的错误信息；默认与 name 相同

        Raises:
            CircularReferenceError: name 正在解析中
            UndefinedVariableError: name 没有定义
            EvaluationRuntimeError: 表达式代码执行失败
        """
        root = name if root is None else root
        session = self.session

        if name in session.in_progress:
            raise CircularReferenceError(root)

        if name in session.cache:
            return session.cache[name]

        definition = self.variables.get(name)
        if definition is None:
            raise UndefinedVariableError(name)

        session.begin(name)
        try:
            if definition.kind is VariableKind.CONST:
                result = definition.source
            else:
                result = await self.run(
                    definition.source,
                    VariablesAccessor(self, root),
                    variable=name,
                )
        finally:
            session.finish(name)

        session.store(name, result)
        return result

    async def run(
        self,
        source: str,
        variables_accessor: VariablesAccessor,
        variable: str = ROOT_LABEL,
    ) -> str:
        """
        执行一段表达式源码并返回字符串结果。

        本模块的错误原样向上传递；其他异常包装为 EvaluationRuntimeError。
        """
        try:
            func = load_expression(source)
            value = await func(variables_accessor, self._arguments_accessor, self.api)
        except ExpressionError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise EvaluationRuntimeError.wrap(exc, variable) from exc
        return coerce_result(value, variable)
