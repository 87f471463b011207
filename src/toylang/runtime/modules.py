"""
Module loading for toylang.

`import a.b.c` resolves to a/b/c.toy under each configured module path.
A module runs once, in its own global context; the importer receives an
Instance whose properties are the module's top-level bindings.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .values import Value, Instance
from .context import Context, SourceFile
from .builtins import root_context
from ..config import InterpreterConfig
from ..errors import ToyError, error_module_not_found, error_module_unreadable
from ..parser import parse

logger = logging.getLogger(__name__)


class ModuleLoader:
    """
    Resolves, runs and caches modules.

    Usage:
        loader = ModuleLoader(InterpreterConfig(module_paths=["lib"]))
        module = loader.load("util.strings", context)
    """

    def __init__(self, config: Optional[InterpreterConfig] = None):
        self.config = config if config is not None else InterpreterConfig()
        self._modules: Dict[str, Instance] = {}

    def resolve(self, name: str) -> Path:
        """Find the source file for a dotted module name."""
        relative = Path(*name.split(".")).with_suffix(self.config.module_suffix)
        searched: List[str] = []
        for base in self.config.module_paths:
            candidate = Path(base) / relative
            if candidate.is_file():
                return candidate
            searched.append(str(candidate))
        raise error_module_not_found(name, searched)

    def load(self, name: str, importer: Context) -> Value:
        """
        Return the module instance for name, running the module on first use.

        Returns a Thrown if the module's top level throws.
        """
        cached = self._modules.get(name)
        if cached is not None:
            return cached

        path = self.resolve(name)
        logger.debug("loading module %s from %s", name, path)
        try:
            source = path.read_text(encoding=self.config.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise error_module_unreadable(name, str(path), e) from e
        program = parse(source, str(path))

        # cached before running: a circular import sees the partial module
        module = Instance(importer.builtin_class("Object"))
        self._modules[name] = module

        context = root_context(importer.environment, SourceFile.from_source(str(path), source))
        builtins = dict(context.variables)
        try:
            done = program.evaluate(context)
        except ToyError:
            del self._modules[name]
            raise
        if done.is_thrown:
            del self._modules[name]
            return done.thrown_node

        for key, value in context.variables.items():
            if builtins.get(key) is not value:
                module.set_property(key, value)
        return module

    def loaded_modules(self) -> List[str]:
        """Names of the modules loaded so far, in load order."""
        return list(self._modules)
