"""
Typed exceptions for the Marlin AHP and its batch engine.

Every error carries a machine code, a human message and a small context
dict, so callers can branch on the kind of failure without parsing text.

  - AHPError (base)
  - NonSquareMatrix, DomainTooLarge          (structural)
  - ChallengeDegenerate, InvalidCombiners    (protocol invariant)
  - RoundOrderError, InvalidBatch            (caller sequencing)
  - IndexTooLarge                            (SRS too small for a circuit)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AHPErrorCode(str, Enum):
    """Canonical error codes for the AHP."""

    UNKNOWN = "UNKNOWN"

    NON_SQUARE_MATRIX = "NON_SQUARE_MATRIX"
    DOMAIN_TOO_LARGE = "DOMAIN_TOO_LARGE"

    CHALLENGE_DEGENERATE = "CHALLENGE_DEGENERATE"
    INVALID_COMBINERS = "INVALID_COMBINERS"

    ROUND_ORDER = "ROUND_ORDER"
    INVALID_BATCH = "INVALID_BATCH"
    INDEX_TOO_LARGE = "INDEX_TOO_LARGE"


@dataclass
class AHPError(Exception):
    """
    Base structured error for the AHP.

    Fields:
      code:  stable machine code
      msg:   human-readable summary
      ctx:   small dict of contextual fields (sizes, round names, ids)
      cause: optional underlying exception
    """

    code: AHPErrorCode | str = AHPErrorCode.UNKNOWN
    msg: str = "AHP error"
    ctx: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        parts = [f"[{self.code.value if isinstance(self.code, AHPErrorCode) else self.code}] {self.msg}"]
        if self.ctx:
            parts.append(f"ctx={self.ctx}")
        if self.cause:
            parts.append(f"cause={self.cause!r}")
        return " ".join(parts)


def _subclass_init(code: AHPErrorCode, default_msg: str):
    def __init__(self, msg: str = default_msg, *, ctx: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None) -> None:
        AHPError.__init__(self, code=code, msg=msg, ctx=dict(ctx or {}), cause=cause)

    return __init__


class NonSquareMatrix(AHPError):
    """Constraint count differs from variable count."""

    __init__ = _subclass_init(AHPErrorCode.NON_SQUARE_MATRIX, "constraint matrices are not square")


class DomainTooLarge(AHPError):
    """An evaluation domain exceeds the field's two-adicity."""

    __init__ = _subclass_init(AHPErrorCode.DOMAIN_TOO_LARGE, "evaluation domain is too large")


class ChallengeDegenerate(AHPError):
    """A challenge landed on the constraint domain (v_H(x) = 0).

    Recoverable: rerun the session with fresh prover randomness.
    """

    __init__ = _subclass_init(AHPErrorCode.CHALLENGE_DEGENERATE, "challenge lies in the constraint domain")


class InvalidCombiners(AHPError):
    """More than one circuit-level combiner was derived for a circuit."""

    __init__ = _subclass_init(AHPErrorCode.INVALID_COMBINERS, "unexpected number of circuit combiners")


class RoundOrderError(AHPError):
    """A round ran before its predecessor, or twice."""

    __init__ = _subclass_init(AHPErrorCode.ROUND_ORDER, "AHP rounds executed out of order")


class InvalidBatch(AHPError):
    """Empty batch, or a circuit with zero instances."""

    __init__ = _subclass_init(AHPErrorCode.INVALID_BATCH, "invalid batch composition")


class IndexTooLarge(AHPError):
    """The SRS cannot commit to this circuit's polynomials."""

    __init__ = _subclass_init(AHPErrorCode.INDEX_TOO_LARGE, "circuit needs a larger SRS")
