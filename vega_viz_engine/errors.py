from __future__ import annotations
from typing import Optional


class VizEngineError(Exception): ...
class SpecParseError(VizEngineError): ...
class SpecValidationError(VizEngineError): ...
class CompileError(VizEngineError): ...
class UnsupportedCombinationError(CompileError): ...
class LoweringError(CompileError): ...


class MissingRequiredFieldError(SpecValidationError):
    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"missing required field: {field}")


class ReservedNameError(SpecValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"data source name {name!r} is used internally by the chart; pick another source name")


class UnsupportedKindError(VizEngineError):
    def __init__(self, kind: Optional[str]):
        self.kind = kind
        super().__init__(f"Unsupported display type: {kind}")


class SpecIntegrityError(RuntimeError):
    """A spec entry names something that was never added. Always a compiler bug."""
