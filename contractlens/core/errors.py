from __future__ import annotations


class ContractLensError(Exception):
    """Base error for ContractLens."""


class ReportWindowError(ContractLensError):
    """Invalid report window; raised before any source is fetched."""


class ReportSourceError(ContractLensError):
    """A required report source failed, so the report cannot be assembled."""

    def __init__(self, source: str, cause: BaseException | None = None) -> None:
        self.source = source
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"required report source '{source}' failed{detail}")


class ReportDeadlineError(ContractLensError):
    """Report assembly exceeded its deadline; in-flight fetches were cancelled."""
