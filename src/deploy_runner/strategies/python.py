from __future__ import annotations

import operator
import re
import shlex
from typing import Iterable, Optional

from loguru import logger

from ..context import ExecutionContext
from ..errors import ConfigError
from .base import CheckStrategy

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)*)")
_SPECIFIER_RE = re.compile(r"\s*(>=|<=|==|!=|>|<)?\s*(\d+(?:\.\d+)*)\s*")
_OPERATORS = {
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
}


def parse_version(text: str) -> Optional[tuple[int, ...]]:
    """Version found in `text` (e.g. the output of `python3 --version`), or None."""
    match = _VERSION_RE.search(text)
    if match is None:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def version_satisfies(version: tuple[int, ...], constraint: str) -> bool:
    """Check `version` against a comma-separated constraint such as `>=3.10,<4`.

    A bare version means `>=`. Missing components compare as zero.

    Raises:
        ConfigError: When the constraint cannot be parsed.
    """
    for specifier in constraint.split(","):
        if not specifier.strip():
            continue
        match = _SPECIFIER_RE.fullmatch(specifier)
        if match is None:
            raise ConfigError(f"Invalid Python version constraint '{constraint}'")
        compare = _OPERATORS[match.group(1) or ">="]
        wanted = tuple(int(part) for part in match.group(2).split("."))
        width = max(len(version), len(wanted))
        padded = version + (0,) * (width - len(version))
        wanted = wanted + (0,) * (width - len(wanted))
        if not compare(padded, wanted):
            return False
    return True


class PythonStrategy(CheckStrategy):
    """Checks if the server is ready to receive a Python application."""

    language = "Python"
    description = "Checks if the server is ready to receive a Python application"

    def __init__(
        self,
        python: str = "python3",
        binaries: Iterable[str] = (),
        modules: Iterable[str] = (),
        requires_python: Optional[str] = None,
    ) -> None:
        self.python = python
        self.binaries = list(binaries)
        self.modules = list(modules)
        self.requires_python = requires_python

    def check(self, ctx: ExecutionContext) -> list[str]:
        if not self.binary_exists(ctx, self.python):
            # Nothing else can be checked without an interpreter
            return [self.python]

        missing: list[str] = []
        result = ctx.run(f"{self.python} --version", with_output=False)
        if result.succeeded:
            logger.info("[{}] {} found: {}", ctx.connection_name, self.language, result.output.strip())
        if self.requires_python:
            current = parse_version(result.output) if result.succeeded else None
            if current is None or not version_satisfies(current, self.requires_python):
                logger.warning(
                    "[{}] {} {} does not satisfy {}",
                    ctx.connection_name,
                    self.language,
                    ".".join(map(str, current)) if current else "(unknown version)",
                    self.requires_python,
                )
                missing.append(f"{self.python}{self.requires_python}")

        missing.extend(binary for binary in self.binaries if not self.binary_exists(ctx, binary))
        for module in self.modules:
            probe = ctx.run(f"{self.python} -c {shlex.quote('import ' + module)}", with_output=False)
            if not probe.succeeded:
                missing.append(f"module:{module}")
        return missing
