"""
Process: 함수 실행과 키 관리
=============================

프로그램 함수를 실행해 Trace 에 넣을 재료를 만든다.

  ┌──────────────────────────────────────────────────────────────┐
  │  synthesize_keys(locator)                                     │
  │     더미 입력으로 합성 → Circuit → setup → (pk, vk)  (캐시)    │
  │                                                               │
  │  execute(locator, inputs, private_key, rng)                   │
  │     실제 입력으로 합성 → 제약 만족 확인                        │
  │     → Response(transition, input_ids, (pk, assignment),       │
  │                records)                                       │
  │                                                               │
  │  verifier_inputs(transitions)                                 │
  │     → {Locator: (vk, [transition.verifier_inputs(), ...])}    │
  └──────────────────────────────────────────────────────────────┘

사용 예시:
    >>> process = Process(network)
    >>> response = process.execute("credits.aleo/fee", [record, 10], private_key=sk)
    >>> trace.insert_transition(response.input_ids, response.transition, response.task)
"""

import logging
import secrets
from collections import namedtuple

from zkp.ledger.circuits import hash_two_gadget, record_commitment_gadget
from zkp.ledger.hash import hash_two
from zkp.ledger.program import Input, InputID, Locator, Output, Record, Transition
from zkp.ledger.programs import FUNCTIONS
from zkp.marlin.field import CURVE_ORDER
from zkp.marlin.indexer import Circuit, setup
from zkp.marlin.r1cs import ConstraintSystem

logger = logging.getLogger(__name__)

Response = namedtuple("Response", ["transition", "input_ids", "task", "records"])


class FunctionContext:
    """함수 합성 중의 입력/출력 기록."""

    def __init__(self, private_key, rng):
        self.cs = ConstraintSystem()
        self.private_key = private_key
        self.rng = rng
        self.inputs = []
        self.input_ids = []
        self.outputs = []
        self.records = []

    def _declare_input(self, kind, value, input_id=None):
        if self.outputs:
            raise ValueError("inputs must be declared before outputs")
        self.inputs.append(Input(kind, value))
        self.input_ids.append(input_id or InputID(kind, value))

    # ── 입력 ──

    def public_input(self, value):
        var = self.cs.alloc_input(value)
        self._declare_input("public", value)
        return var

    def private_input(self, value):
        var = self.cs.alloc(value)
        self._declare_input("private", hash_two(value, 0))
        return var

    def record_input(self, record):
        """레코드를 소비한다. (owner, amount) 변수를 돌려준다."""
        cs = self.cs
        sk = cs.alloc(self.private_key)
        owner = cs.alloc(record.owner)
        amount = cs.alloc(record.amount)
        nonce = cs.alloc(record.nonce)

        # ── 소유권: owner = address(sk) ──
        cs.enforce_equal(hash_two_gadget(cs, sk, 0), owner)

        # ── 일련번호: sn = H(cm, H(sk, cm)) ──
        cm = record_commitment_gadget(cs, owner, amount, nonce)
        gamma = hash_two_gadget(cs, sk, cm)
        sn = hash_two_gadget(cs, cm, gamma)
        sn_value = cs.value(sn)
        cs.enforce_equal(sn, cs.alloc_input(sn_value))

        self._declare_input(
            "record", sn_value, InputID.record(cs.value(cm), cs.value(gamma), sn_value)
        )
        return owner, amount

    # ── 출력 ──

    def public_output(self, lc):
        value = self.cs.value(lc)
        self.cs.enforce_equal(lc, self.cs.alloc_input(value))
        self.outputs.append(Output("public", value))

    def record_output(self, owner, amount):
        """새 레코드를 만든다. 평문은 records 에 남는다."""
        cs = self.cs
        nonce_value = self.rng.randrange(CURVE_ORDER)
        nonce = cs.alloc(nonce_value)
        cm = record_commitment_gadget(cs, owner, amount, nonce)
        cm_value = cs.value(cm)
        cs.enforce_equal(cm, cs.alloc_input(cm_value))
        self.outputs.append(Output("record", cm_value))
        self.records.append(Record(int(cs.value(owner)), int(cs.value(amount)), nonce_value))


def _locator(locator):
    return locator if isinstance(locator, Locator) else Locator.from_str(locator)


class Process:
    """등록된 프로그램 함수와 그 키."""

    def __init__(self, network, functions=None):
        self.network = network
        self.functions = dict(FUNCTIONS if functions is None else functions)
        self._keys = {}

    def function(self, locator):
        try:
            return self.functions[locator]
        except KeyError:
            raise ValueError(f"unknown function {locator}") from None

    def _synthesize(self, function, inputs, private_key, rng):
        ctx = FunctionContext(private_key, rng)
        function.synthesize(ctx, *inputs)
        return ctx

    def synthesize_keys(self, locator):
        """(ProvingKey, VerifyingKey) for the function (cached)."""
        locator = _locator(locator)
        if locator not in self._keys:
            function = self.function(locator)
            ctx = self._synthesize(function, function.dummy_inputs, 0, secrets.SystemRandom())
            circuit = Circuit.from_constraint_system(ctx.cs)
            self._keys[locator] = setup(circuit, self.network.srs)
            logger.debug("synthesized keys for %s", locator)
        return self._keys[locator]

    def execute(self, locator, inputs, private_key=0, rng=None):
        """함수를 실제 입력으로 실행한다.

        Raises:
            ValueError: 모르는 함수, 제약 불만족
        """
        locator = _locator(locator)
        proving_key, _ = self.synthesize_keys(locator)
        ctx = self._synthesize(
            self.function(locator), inputs, private_key, rng or secrets.SystemRandom()
        )
        unsatisfied = ctx.cs.which_is_unsatisfied()
        if unsatisfied is not None:
            raise ValueError(f"{locator} is not satisfied at constraint {unsatisfied}")

        transition = Transition(locator, ctx.inputs, ctx.outputs)
        assignment = ctx.cs.to_assignment(proving_key.id)
        logger.debug("executed %s -> transition %s", locator, transition.id[:12])
        return Response(transition, ctx.input_ids, (proving_key, assignment), ctx.records)

    def verifier_inputs(self, transitions):
        """Locator → (VerifyingKey, [공개 입력 벡터, ...]), 전이 순서대로."""
        mapping = {}
        for transition in transitions:
            _, vk = self.synthesize_keys(transition.locator)
            mapping.setdefault(transition.locator, (vk, []))[1].append(transition.verifier_inputs())
        return mapping
