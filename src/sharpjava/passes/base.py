"""
Base Pass System

Every transformation over the IR is a pass: it takes a ProgramIR and returns
a new one. Analysis results live in the shared PassContext, never on the pass
instance, so passes stay stateless between runs.
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import List, Type, Any, Dict, Optional, Set

from ..ir.nodes import ProgramIR
from ..shared.errors import ErrorReporter
from ..utils.config import DUMP_IR_PER_PASS_ENV

logger = logging.getLogger("sharpjava.passes.base")


class PassContext:
    """
    Compilation context shared by every pass of one run.

    Holds the diagnostics reporter, the source texts (for snippets in
    diagnostics) and per-pass analysis results. ``strict`` tells passes
    whether constructs the backend cannot render are an error or are left
    for it to stub out.
    """

    def __init__(self, reporter: Optional[ErrorReporter] = None, strict: bool = True):
        self.source_files: Dict[str, str] = {}
        self.reporter: ErrorReporter = reporter if reporter is not None else ErrorReporter(self.source_files)
        self._analysis_results: Dict[Type['BasePass'], Any] = {}
        self.strict = strict

    def add_source(self, name: str, text: str) -> None:
        self.source_files[name] = text
        self.reporter.source_files[name] = text

    def get_analysis(self, pass_class: Type['BasePass']) -> Any:
        """Get analysis results from a pass"""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def has_analysis(self, pass_class: Type['BasePass']) -> bool:
        return pass_class in self._analysis_results

    def set_analysis(self, pass_class: Type['BasePass'], results: Any) -> None:
        """Store analysis results"""
        self._analysis_results[pass_class] = results


class BasePass(ABC):
    """
    Base class for all passes.

    - Explicit dependencies via ``requires``
    - Pass results stored in PassContext (not in pass)
    - Immutable IR (passes return new IR)
    """
    requires: List[Type['BasePass']] = []  # Dependencies (empty by default)

    @abstractmethod
    def run(self, ir: ProgramIR, ctx: PassContext) -> ProgramIR:
        """
        Run pass on IR.

        Returns: New IR (passes create new IR nodes, the input is left untouched)
        """
        raise NotImplementedError


class PassManager:
    """
    Pass manager with dependency resolution.

    Passes run in topological order of their ``requires`` lists; registration
    order breaks ties.
    """

    def __init__(self):
        self.passes: List[Type[BasePass]] = []
        self._dependency_graph: Dict[Type[BasePass], Set[Type[BasePass]]] = {}

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        """Register a pass"""
        self.passes.append(pass_class)
        self._dependency_graph[pass_class] = set(pass_class.requires)

    def run_all(self, ir: ProgramIR, ctx: PassContext, dump_ir: Optional[bool] = None) -> ProgramIR:
        """
        Run all passes in dependency order.

        Args:
            ir: Input IR
            ctx: Shared pass context
            dump_ir: Log the IR S-expression after each pass. Defaults to the
                ``SHARPJAVA_DUMP_IR_PER_PASS`` environment switch.
        """
        if dump_ir is None:
            dump_ir = bool(os.environ.get(DUMP_IR_PER_PASS_ENV))

        for pass_class in self._topological_sort():
            pass_name = pass_class.__name__
            started = time.perf_counter()
            ir = pass_class().run(ir, ctx)
            logger.debug("%s finished in %.2f ms", pass_name, (time.perf_counter() - started) * 1000)

            if dump_ir:
                from ..ir.serialization import serialize_ir
                logger.info("IR after %s:\n%s", pass_name, serialize_ir(ir))

        return ir

    def _topological_sort(self) -> List[Type[BasePass]]:
        """Topological sort of passes by dependencies"""
        for pass_class, deps in self._dependency_graph.items():
            missing = [d.__name__ for d in deps if d not in self._dependency_graph]
            if missing:
                raise RuntimeError(f"{pass_class.__name__} requires unregistered pass(es): {', '.join(missing)}")

        in_degree = {p: len(self._dependency_graph[p]) for p in self.passes}
        queue = [p for p, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            pass_class = queue.pop(0)
            result.append(pass_class)

            for other_pass in self.passes:
                if pass_class in self._dependency_graph[other_pass]:
                    in_degree[other_pass] -= 1
                    if in_degree[other_pass] == 0:
                        queue.append(other_pass)

        if len(result) != len(self.passes):
            raise RuntimeError("Circular dependency detected in passes")

        return result
