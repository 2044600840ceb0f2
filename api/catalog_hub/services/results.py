# catalog_hub/services/results.py
"""
Result types returned by the business services.

Business-rule failures are values, not exceptions: callers branch on
``kind`` to tell "not allowed" apart from "system error".
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional

OK = "ok"
REJECTED = "rejected"
SYSTEM = "system"


@dataclass(frozen=True)
class RuleDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "RuleDecision":
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> "RuleDecision":
        return cls(False, reason)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceResult:
    success: bool
    kind: str = OK
    value: Any = None
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Any = None) -> "ServiceResult":
        return cls(True, OK, value=value)

    @classmethod
    def rejected(cls, reason: str, errors: Optional[List[str]] = None) -> "ServiceResult":
        return cls(False, REJECTED, error=reason, errors=list(errors or [reason]))

    @classmethod
    def system_error(cls, message: str) -> "ServiceResult":
        return cls(False, SYSTEM, error=message, errors=[message])

    @property
    def is_rejected(self) -> bool:
        return self.kind == REJECTED

    @property
    def is_system_error(self) -> bool:
        return self.kind == SYSTEM
