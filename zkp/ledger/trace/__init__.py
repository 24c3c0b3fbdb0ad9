"""
Batch Trace
============

트랜잭션 하나를 증명하기 위한 세션. 전이의 증인을 모으고, 원장에서
멤버십 증인을 준비한 뒤, 모든 회로를 Marlin 일괄 증명 하나로 묶는다.

  ┌─────────────────────────────────────────────────────────────────┐
  │  Collecting                                                      │
  │    insert_transition(input_ids, transition, (pk, assignment))    │
  │        × N                                                       │
  │        │ prepare(query) / prepare_async(query)                   │
  │        ▼                                                         │
  │  Prepared   (inclusion_assignments, global_state_root 기록됨)     │
  │        │ prove_execution(locator, rng) | prove_fee(rng)          │
  │        ▼                                                         │
  │  Execution | Fee                                                 │
  └─────────────────────────────────────────────────────────────────┘

**일괄 증명 매핑**:
  Locator → (ProvingKey, [Assignment, ...])      전이 순서대로
  + network.inclusion_locator → (Inclusion 키, [레코드 입력마다 증인])

**검증**:
  Locator → (VerifyingKey, [공개 입력, ...]) 에 Inclusion 공개 입력
  [1, root, sn] 을 합쳐 verify_batch 를 한 번 부른다. 실패는 배치 단위의
  VerificationError 하나이다.

prepare 는 한 번만 할 수 있고, prepare 이후에는 전이를 더할 수 없다.
"""

import logging

from zkp.ledger.errors import (
    ConsistencyError,
    MissingProofError,
    SequencingError,
    VerificationError,
    WriteOnceError,
)
from zkp.ledger.network import Network
from zkp.ledger.program import Execution, Fee
from zkp.ledger.trace.inclusion import Inclusion
from zkp.ledger.trace.once import WriteOnceCell
from zkp.marlin.errors import AHPError
from zkp.marlin.indexer import ProvingKey, VerifyingKey

logger = logging.getLogger(__name__)


class Trace:
    """전이 증인을 모아 일괄 증명하는 세션.

    속성:
        transitions: 삽입된 전이 (삽입 순서)
        transition_tasks: Locator → (ProvingKey, [Assignment, ...])
        inclusion_tasks: Inclusion
        inclusion_assignments: WriteOnceCell
        global_state_root: WriteOnceCell
    """

    def __init__(self, network=None):
        self.network = network or Network()
        self.transitions = []
        self.transition_tasks = {}
        self.inclusion_tasks = Inclusion()
        self.inclusion_assignments = WriteOnceCell("inclusion_assignments")
        self.global_state_root = WriteOnceCell("global_state_root")

    def is_fee(self):
        return len(self.transitions) == 1 and self.transitions[0].locator == self.network.fee_locator

    def _is_prepared(self):
        return self.inclusion_assignments.is_set() or self.global_state_root.is_set()

    # ── 1. 수집 ──

    def insert_transition(self, input_ids, transition, task):
        """전이 하나와 그 증인을 추가한다.

        Args:
            input_ids: 전이 입력마다 InputID
            transition: Transition
            task: (ProvingKey, Assignment)
        """
        if self._is_prepared():
            raise SequencingError("Cannot insert a transition into a trace that is already prepared")
        proving_key, assignment = task
        locator = transition.locator

        stored = self.transition_tasks.get(locator)
        key = stored[0] if stored is not None else proving_key
        if stored is not None and proving_key.id != key.id:
            raise ConsistencyError(f"proving key for {locator} differs from the one already stored")
        if assignment.circuit_id != key.id:
            raise ConsistencyError(f"assignment for {locator} was not made for its proving key")

        self.inclusion_tasks.insert_transition(input_ids, transition)

        if stored is None:
            self.transition_tasks[locator] = (proving_key, [assignment])
        else:
            stored[1].append(assignment)
        self.transitions.append(transition)
        logger.debug("inserted transition %s (%s)", transition.id[:12], locator)

    # ── 2. 준비 ──

    def _check_unprepared(self):
        for cell in (self.inclusion_assignments, self.global_state_root):
            if cell.is_set():
                raise WriteOnceError(f"{cell.name} has already been set")

    def _store(self, assignments, global_state_root):
        self.inclusion_assignments.set(assignments)
        self.global_state_root.set(global_state_root)

    def prepare(self, query):
        """원장에서 멤버십 증인과 전역 상태 루트를 가져온다."""
        self._check_unprepared()
        if self.is_fee():
            result = self.inclusion_tasks.prepare_fee(self.transitions[0], query)
        else:
            result = self.inclusion_tasks.prepare_execution(self.transitions, query)
        self._store(*result)

    async def prepare_async(self, query):
        self._check_unprepared()
        if self.is_fee():
            result = await self.inclusion_tasks.prepare_fee_async(self.transitions[0], query)
        else:
            result = await self.inclusion_tasks.prepare_execution_async(self.transitions, query)
        self._store(*result)

    # ── 3. 증명 ──

    def _prepared_values(self):
        if not self._is_prepared():
            raise SequencingError("Trace must be prepared before proving")
        return self.inclusion_assignments.get(), self.global_state_root.get()

    def prove_execution(self, locator, rng=None):
        if self.is_fee():
            raise SequencingError("Cannot prove an execution for a fee trace")
        if not self.transitions:
            raise SequencingError("Cannot prove an execution without transitions")
        assignments, global_state_root = self._prepared_values()
        global_state_root, proof = Trace.prove_batch(
            locator, self.transition_tasks, assignments, global_state_root, rng, self.network
        )
        return Execution(self.transitions, global_state_root, proof)

    def prove_fee(self, rng=None):
        if not self.is_fee():
            raise SequencingError("Cannot prove a fee for a trace that is not a fee")
        assignments, global_state_root = self._prepared_values()
        if len(assignments) != 1:
            raise ConsistencyError("Expected exactly one inclusion assignment for the fee")
        global_state_root, proof = Trace.prove_batch(
            self.network.fee_locator, self.transition_tasks, assignments,
            global_state_root, rng, self.network,
        )
        return Fee(self.transitions[0], global_state_root, proof)

    @staticmethod
    def prove_batch(locator, tasks, inclusion_assignments, global_state_root, rng, network):
        """전이 증인과 멤버십 증인을 증명 하나로 묶는다.

        Returns:
            tuple: (global_state_root, Proof)
        """
        if global_state_root == 0:
            raise ConsistencyError("The global state root must be non-zero")
        for assignment in inclusion_assignments:
            if assignment.global_state_root != global_state_root:
                raise ConsistencyError("Inclusion assignment has a different global state root")

        batch = {key: (pk, list(assignments)) for key, (pk, assignments) in tasks.items()}
        if inclusion_assignments:
            inclusion_pk, _ = network.inclusion_keys()
            batch[network.inclusion_locator] = (
                inclusion_pk,
                [assignment.to_circuit_assignment(network) for assignment in inclusion_assignments],
            )
        logger.info("proving %s: %d functions, %d inclusions",
                    locator, len(tasks), len(inclusion_assignments))
        proof = ProvingKey.prove_batch(str(locator), batch, rng)
        return global_state_root, proof

    # ── 4. 검증 ──

    @staticmethod
    def verify_execution_proof(locator, verifier_inputs, execution, network):
        """Raises VerificationError("Execution is invalid - ...") on failure."""
        if execution.proof is None:
            raise MissingProofError("Expected the execution to contain a proof")
        Trace._verify_batch(locator, verifier_inputs, execution, network, "Execution")

    @staticmethod
    def verify_fee_proof(verifier_inputs, fee, network):
        """Raises VerificationError("Fee is invalid - ...") on failure."""
        if fee.proof is None:
            raise MissingProofError("Expected the fee to contain a proof")
        if fee.global_state_root == 0:
            raise ConsistencyError("Fee global state root must be non-zero")
        if fee.num_record_inputs() != 1:
            raise ConsistencyError("Fee must contain exactly one input record")
        Trace._verify_batch(network.fee_locator, verifier_inputs, fee, network, "Fee")

    @staticmethod
    def _verify_batch(locator, verifier_inputs, transaction, network, what):
        batch = {key: (vk, list(inputs)) for key, (vk, inputs) in verifier_inputs.items()}
        inclusion_inputs = Inclusion.prepare_verifier_inputs(
            transaction.global_state_root, transaction.transitions
        )
        if inclusion_inputs:
            _, inclusion_vk = network.inclusion_keys()
            batch[network.inclusion_locator] = (inclusion_vk, inclusion_inputs)
        try:
            valid = VerifyingKey.verify_batch(str(locator), batch, transaction.proof)
        except AHPError as e:
            raise VerificationError(f"{what} is invalid - {e}") from e
        if not valid:
            raise VerificationError(f"{what} is invalid - batch proof rejected")
        logger.info("%s %s verified", what.lower(), locator)
