"""
Error taxonomy.

InternalError           programming defect (missing parameter, impossible state)
ConfigurationError      linkage missing or inconsistent
ConfigurationDataError  stored data (fabric or cluster side) is structurally invalid
ProcessingError         a plan failed part way through
FabricError             the Liqid Director returned an error or garbage

Kubernetes API failures surface as kubernetes.client.exceptions.ApiException.
"""

from __future__ import annotations

from typing import Any, Optional


class LiqidK8sError(Exception):
    """Base class for all integration exceptions."""


class InternalError(LiqidK8sError):
    """Raised for conditions which indicate a defect in the calling code."""


class ConfigurationError(LiqidK8sError):
    """Raised when the linkage between Kubernetes and the fabric is missing or wrong."""


class ConfigurationDataError(LiqidK8sError):
    """Raised when data stored in the fabric or in Kubernetes cannot be interpreted."""


class ProcessingError(LiqidK8sError):
    """Raised when processing cannot continue."""


class PlanExecutionError(ProcessingError):
    """Raised when a step of a plan fails. Earlier steps remain applied."""

    def __init__(self, step: int, action: Any, cause: BaseException) -> None:
        super().__init__(f"Step {step} ({action}) failed: {cause}")
        self.step = step
        self.action = action
        self.cause = cause


class FabricError(LiqidK8sError):
    """Raised when a call to the Liqid Director fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404
