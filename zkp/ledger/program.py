"""
프로그램과 전이 (Programs and transitions)
===========================================

한 트랜잭션은 전이(transition)의 목록이다. 전이 하나는 프로그램 함수
한 번의 호출이며, 검증자가 보는 것은 입력/출력의 공개 부분뿐이다.

  ┌──────────────────────────────────────────────────────────┐
  │  Transition                                               │
  │    locator   = "credits.aleo/fee"                         │
  │    inputs    = [record(sn), public(fee)]                  │
  │    outputs   = [record(cm)]                               │
  │                                                           │
  │  verifier_inputs() = [1, sn, fee, cm]                     │
  │                       ↑  입력의 공개 값 → 출력의 공개 값   │
  └──────────────────────────────────────────────────────────┘

**종류 (kind)**:
  constant, public        값이 그대로 공개된다
  private                 값의 해시만 남는다 (검증자 입력 아님)
  record                  입력은 일련번호(sn), 출력은 커밋먼트(cm)
  external_record         다른 프로그램 소유 레코드의 해시 (검증자 입력 아님)

InputID 는 증명자 쪽 정보이다. 레코드 입력이면 (cm, γ, sn) 을 담아
Inclusion 이 멤버십 증인을 만들 수 있게 한다.
"""

import hashlib
from collections import namedtuple

from zkp.ledger.hash import hash_two, record_commitment, serial_number
from zkp.marlin.field import FR

KINDS = ("constant", "public", "private", "record", "external_record")

# 검증자 공개 입력에 들어가는 종류
PUBLIC_KINDS = ("constant", "public", "record")


class Locator(namedtuple("Locator", ["program_id", "function_name"])):
    """program_id/function_name."""

    __slots__ = ()

    def __str__(self):
        return f"{self.program_id}/{self.function_name}"

    @classmethod
    def from_str(cls, text):
        program_id, sep, function_name = str(text).partition("/")
        if not sep or not program_id or not function_name or "/" in function_name:
            raise ValueError(f"invalid locator {text!r}, expected 'program/function'")
        if "." not in program_id:
            raise ValueError(f"invalid program id {program_id!r}, expected 'name.network'")
        return cls(program_id, function_name)


def _check_kind(kind):
    if kind not in KINDS:
        raise ValueError(f"unknown kind {kind!r}")


class Input(namedtuple("Input", ["kind", "value"])):
    __slots__ = ()

    def __new__(cls, kind, value):
        _check_kind(kind)
        return super().__new__(cls, kind, FR(value))

    @property
    def is_public(self):
        return self.kind in PUBLIC_KINDS


class Output(namedtuple("Output", ["kind", "value"])):
    __slots__ = ()

    def __new__(cls, kind, value):
        _check_kind(kind)
        return super().__new__(cls, kind, FR(value))

    @property
    def is_public(self):
        return self.kind in PUBLIC_KINDS


class InputID(namedtuple("InputID", ["kind", "value", "commitment", "gamma"])):
    """전이 입력 하나에 대한 증명자 쪽 식별자."""

    __slots__ = ()

    def __new__(cls, kind, value, commitment=None, gamma=None):
        _check_kind(kind)
        return super().__new__(cls, kind, FR(value), commitment, gamma)

    @classmethod
    def record(cls, commitment, gamma, serial_number):
        return cls("record", serial_number, FR(commitment), FR(gamma))

    @property
    def serial_number(self):
        return self.value if self.kind == "record" else None


class Record(namedtuple("Record", ["owner", "amount", "nonce"])):
    """평문 레코드. owner 는 address(private_key) 이다."""

    __slots__ = ()

    def commitment(self):
        return record_commitment(self.owner, self.amount, self.nonce)

    def gamma(self, private_key):
        return hash_two(private_key, self.commitment())

    def serial_number(self, private_key):
        return serial_number(self.commitment(), self.gamma(private_key))


def address(private_key):
    """비밀 키에서 주소를 유도한다."""
    return hash_two(private_key, 0)


class Transition:
    """프로그램 함수 한 번의 호출 결과 (공개 부분)."""

    def __init__(self, locator, inputs, outputs):
        self.locator = locator
        self.inputs = tuple(inputs)
        self.outputs = tuple(outputs)
        self.id = self._compute_id()

    def _compute_id(self):
        h = hashlib.sha256()
        h.update(str(self.locator).encode())
        for tag, items in ((b"in", self.inputs), (b"out", self.outputs)):
            for item in items:
                h.update(tag + item.kind.encode() + int(item.value).to_bytes(32, "big"))
        return h.hexdigest()

    def verifier_inputs(self):
        """[1, 공개 입력 값..., 공개 출력 값...]."""
        values = [FR(1)]
        values += [inp.value for inp in self.inputs if inp.is_public]
        values += [out.value for out in self.outputs if out.is_public]
        return values

    def serial_numbers(self):
        return [inp.value for inp in self.inputs if inp.kind == "record"]

    def commitments(self):
        return [out.value for out in self.outputs if out.kind == "record"]

    def __eq__(self, other):
        return isinstance(other, Transition) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Transition({self.locator}, id={self.id[:12]})"


class Execution:
    """증명된 전이 목록."""

    def __init__(self, transitions, global_state_root, proof):
        self.transitions = list(transitions)
        self.global_state_root = FR(global_state_root)
        self.proof = proof

    def __repr__(self):
        return f"Execution({len(self.transitions)} transitions)"


class Fee:
    """증명된 수수료 전이 하나."""

    def __init__(self, transition, global_state_root, proof):
        self.transition = transition
        self.global_state_root = FR(global_state_root)
        self.proof = proof

    @property
    def transitions(self):
        return [self.transition]

    def num_record_inputs(self):
        return len(self.transition.serial_numbers())

    def __repr__(self):
        return f"Fee({self.transition!r})"
