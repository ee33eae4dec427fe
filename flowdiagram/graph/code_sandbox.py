"""
Code Sandbox - Default runner for script nodes.

A script is the body of a function that receives the shared ``context``:

    context["count"] = context.get("count", 0) + 1

or returns a replacement context:

    return {"count": context.get("count", 0) + 1}

Returning nothing keeps the (possibly mutated) context.

The script text is parsed as-is and only its common leading indentation is
removed (textwrap.dedent), so a multi-line string literal keeps its content
unless every line of the script, the literal included, shares that indent.

Scripts run with a reduced builtins table and may only import modules on a
small allow-list. This keeps honest mistakes contained; it is NOT a
security boundary, so only run diagrams you trust.
"""

import ast
import builtins
import importlib
import logging
import textwrap
from collections.abc import Callable, Iterable
from typing import Any

from flowdiagram.errors import ScriptExecutionError

logger = logging.getLogger(__name__)
script_logger = logging.getLogger("flowdiagram.script")

_ENTRY_POINT = "__flow_script__"

SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "callable",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "format",
    "frozenset",
    "getattr",
    "hasattr",
    "hash",
    "int",
    "isinstance",
    "issubclass",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "pow",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "str",
    "sum",
    "tuple",
    "type",
    "zip",
    "ArithmeticError",
    "AssertionError",
    "Exception",
    "IndexError",
    "KeyError",
    "LookupError",
    "RuntimeError",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)

SAFE_MODULES = frozenset(
    {"collections", "datetime", "decimal", "functools", "itertools", "json", "math", "random", "re", "statistics", "string", "time"}
)


def _script_print(*args: Any, sep: str = " ", **_: Any) -> None:
    """``print`` for scripts: routed to the flowdiagram.script logger."""
    script_logger.info(sep.join(str(arg) for arg in args))


def _make_safe_import(allowed: Iterable[str]) -> Callable[..., Any]:
    allowed = frozenset(allowed)

    def _safe_import(name, globals=None, locals=None, fromlist=(), level=0):
        root = name.split(".", 1)[0]
        if level != 0 or root not in allowed:
            raise ImportError(f"Import of '{name}' is not allowed in scripts")
        module = importlib.import_module(name)
        return module if fromlist else importlib.import_module(root)

    return _safe_import


class PythonScriptRunner:
    """
    Runs script node code as Python.

    Compiled scripts are cached per source text, so re-running a diagram
    only compiles each script once.

    Example:
        runner = PythonScriptRunner()
        runner("return {'n': 1}", {})          # -> {'n': 1}
        runner("context['n'] = 2", ctx)        # -> None, ctx mutated
    """

    def __init__(
        self,
        restrict_builtins: bool = True,
        allowed_modules: Iterable[str] = SAFE_MODULES,
        extra_globals: dict[str, Any] | None = None,
    ):
        self.restrict_builtins = restrict_builtins
        self.allowed_modules = frozenset(allowed_modules)
        self.extra_globals = dict(extra_globals or {})
        self._cache: dict[str, Callable[[dict[str, Any]], Any]] = {}

    def _builtins(self) -> dict[str, Any]:
        if not self.restrict_builtins:
            return {**vars(builtins), "print": _script_print}
        table = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
        table["print"] = _script_print
        table["__import__"] = _make_safe_import(self.allowed_modules)
        return table

    def compile(self, code: str) -> Callable[[dict[str, Any]], Any]:
        """Compile ``code`` into a function of ``context``."""
        cached = self._cache.get(code)
        if cached is not None:
            return cached

        # The script is parsed on its own and grafted into the function, so its
        # source text (string literals included) is never re-indented.
        module = ast.parse(f"def {_ENTRY_POINT}(context):\n    pass\n", "<script>")
        try:
            body = ast.parse(textwrap.dedent(code), "<script>").body
            module.body[0].body = body or [ast.Pass()]
            compiled = compile(ast.fix_missing_locations(module), "<script>", "exec")
        except SyntaxError as e:
            line = f" (line {e.lineno})" if e.lineno else ""
            raise ScriptExecutionError(f"SyntaxError: {e.msg}{line}") from e

        namespace: dict[str, Any] = {"__builtins__": self._builtins(), **self.extra_globals}
        exec(compiled, namespace)
        func = namespace[_ENTRY_POINT]
        self._cache[code] = func
        return func

    def __call__(self, code: str, context: dict[str, Any]) -> Any:
        func = self.compile(code)
        try:
            return func(context)
        except Exception as e:
            raise ScriptExecutionError(str(e)) from e
