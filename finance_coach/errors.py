"""Domain errors raised by the analytics services.

Two families:

- ``InvalidRequest``: bad or out-of-range parameters.
- ``NoDataError``: the request is fine but no usable history exists.

Both carry a machine-readable ``code`` and a human ``hint``.
"""

from __future__ import annotations

from typing import Any, Dict


class FinanceCoachError(Exception):
    code = "error"

    def __init__(self, hint: str, code: str | None = None):
        super().__init__(hint)
        self.hint = hint
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "hint": self.hint}


class InvalidRequest(FinanceCoachError, ValueError):
    code = "invalid_request"


class NoDataError(FinanceCoachError):
    code = "no_data"
