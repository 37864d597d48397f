"""
Backend Interface

A backend turns a (validated, optionally folded) ProgramIR into target
source text and knows how target files are named.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ..ir.nodes import ProgramIR
from ..shared.errors import ErrorReporter


class Backend(ABC):
    """
    Backend interface.

    - All backends implement same interface
    - Backend trusts the IR it is given (validation happens upstream)
    - Backend instances hold configuration only, so one instance can serve many runs
    """

    #: Extension (with leading dot) of the files this backend writes
    file_extension: str = ""

    #: File name used when there is no source path to derive one from
    default_output_name: str = ""

    @abstractmethod
    def codegen(self, program: ProgramIR, reporter: Optional[ErrorReporter] = None) -> str:
        """
        Generate target code from IR.

        Returns the complete text of one target file. Non-fatal diagnostics
        go to ``reporter`` when one is given.
        """
        raise NotImplementedError

    def output_path(self, source_path: Optional[Union[str, Path]] = None) -> Path:
        """Target file path for ``source_path``: same stem, this backend's extension."""
        if not source_path:
            return Path(self.default_output_name)
        return Path(source_path).with_suffix(self.file_extension)
