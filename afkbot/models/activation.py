"""Pydantic models for the server activation workflow."""

from __future__ import annotations

import math
import re
from typing import Optional

from pydantic import BaseModel, Field

_LEADING_NUMBER = re.compile(r"\d+")


class QueuePosition(BaseModel):
    """Position in the Aternos start queue; infinity when unknown."""

    value: float = math.inf
    eta_text: Optional[str] = None

    @property
    def known(self) -> bool:
        return not math.isinf(self.value)

    @classmethod
    def parse(cls, text: Optional[str], eta_text: Optional[str] = None) -> "QueuePosition":
        """Parse the first integer in a display string like "2000/6100"."""
        match = _LEADING_NUMBER.search(text or "")
        value = float(int(match.group(0))) if match else math.inf
        return cls(value=value, eta_text=eta_text)

    def __str__(self) -> str:
        pos = str(int(self.value)) if self.known else "unknown"
        return f"{pos} (ETA: {self.eta_text})" if self.eta_text else pos


class ActivationResult(BaseModel):
    """Outcome of one activation run, as reported by the standalone entry point."""

    success: bool
    status: Optional[str] = None
    error: Optional[str] = Field(default=None, description="Message of the unrecovered error")
