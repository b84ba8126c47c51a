from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from ..models import Severity


class LineFormatter:
    """Default formatter.

    Pydantic records render as compact JSON; messages as
    ``"<SEVERITY> <msg>"`` with the exception appended; anything else via str().
    """

    def format(self, obj: Any) -> str:
        if isinstance(obj, BaseModel):
            return obj.model_dump_json()
        return str(obj)

    def format_message(
        self, severity: Severity, msg: str, exc: Optional[BaseException] = None
    ) -> str:
        line = f"{Severity.parse(severity).name} {msg}"
        if exc is not None:
            line += f" | {type(exc).__name__}: {exc}"
        return line

    def __repr__(self) -> str:
        return "LineFormatter()"
