"""
Inclusion: 레코드 멤버십 증인
==============================

레코드를 소비하는 전이는 그 레코드가 원장에 있다는 것을 함께 증명해야
한다. 전이 회로는 일련번호 sn 만 공개하므로, 별도의 Inclusion 회로가
"sn 은 전역 상태 루트 아래 어떤 커밋먼트 cm 에서 나왔다" 를 증명한다.

  ┌─────────────────────────────────────────────────────────────┐
  │  insert_transition(input_ids, transition)                    │
  │     레코드 입력마다 작업 (transition_id, cm, γ, sn) 을 쌓는다 │
  │                                                              │
  │  prepare_execution / prepare_fee (query)                     │
  │     root ← query.current_state_root()                        │
  │     작업마다 path ← query.get_state_path_for_commitment(cm)   │
  │     path.global_state_root == root 확인                      │
  │     → ([InclusionAssignment...], root)                       │
  │                                                              │
  │  prepare_verifier_inputs(root, transitions)                  │
  │     레코드 입력마다 [1, root, sn]                             │
  └─────────────────────────────────────────────────────────────┘

external_record 입력은 멤버십을 검사하지 않는다.
"""

import logging

from zkp.ledger.circuits import synthesize_inclusion
from zkp.ledger.errors import InclusionError
from zkp.marlin.field import FR
from zkp.marlin.r1cs import ConstraintSystem

logger = logging.getLogger(__name__)


class InclusionAssignment:
    """레코드 하나의 멤버십 증인."""

    def __init__(self, state_path, commitment, gamma, serial_number):
        self.state_path = state_path
        self.commitment = FR(commitment)
        self.gamma = FR(gamma)
        self.serial_number = FR(serial_number)

    @property
    def global_state_root(self):
        return self.state_path.global_state_root

    def to_circuit_assignment(self, network):
        """Inclusion 회로의 증인을 합성한다."""
        pk, _ = network.inclusion_keys()
        if len(self.state_path.siblings) != network.state_tree_depth:
            raise InclusionError(
                f"state path has depth {len(self.state_path.siblings)}, "
                f"network expects {network.state_tree_depth}"
            )
        cs = ConstraintSystem()
        synthesize_inclusion(
            cs, self.global_state_root, self.serial_number, self.commitment, self.gamma,
            self.state_path.siblings, self.state_path.directions,
        )
        if not cs.is_satisfied():
            raise InclusionError(
                f"inclusion witness unsatisfied at constraint {cs.which_is_unsatisfied()}"
            )
        return cs.to_assignment(pk.id)

    def __repr__(self):
        return f"InclusionAssignment(sn={str(int(self.serial_number))[:12]})"


class Inclusion:

    def __init__(self):
        # (transition_id, commitment, gamma, serial_number)
        self.tasks = []

    def insert_transition(self, input_ids, transition):
        if len(input_ids) != len(transition.inputs):
            raise InclusionError(
                f"transition {transition.id[:12]} has {len(transition.inputs)} inputs, "
                f"got {len(input_ids)} input ids"
            )
        tasks = []
        for index, (input_id, inp) in enumerate(zip(input_ids, transition.inputs)):
            if input_id.kind != inp.kind:
                raise InclusionError(
                    f"input {index} is {inp.kind}, input id is {input_id.kind}"
                )
            if inp.kind != "record":
                continue
            if input_id.serial_number != inp.value:
                raise InclusionError(f"input {index} serial number does not match its input id")
            tasks.append((transition.id, input_id.commitment, input_id.gamma, input_id.serial_number))
        self.tasks.extend(tasks)

    def _check_transitions(self, transitions):
        ids = {transition.id for transition in transitions}
        for transition_id, *_ in self.tasks:
            if transition_id not in ids:
                raise InclusionError(f"no transition {transition_id[:12]} for an inclusion task")

    def _assignment(self, task, path, global_state_root):
        _, commitment, gamma, serial_number = task
        if path.global_state_root != global_state_root:
            raise InclusionError("state path root does not match the current global state root")
        if path.leaf != commitment:
            raise InclusionError("state path does not lead to the record commitment")
        return InclusionAssignment(path, commitment, gamma, serial_number)

    # ── 블로킹 ──

    def prepare_execution(self, transitions, query):
        self._check_transitions(transitions)
        global_state_root = query.current_state_root()
        assignments = [
            self._assignment(task, query.get_state_path_for_commitment(task[1]), global_state_root)
            for task in self.tasks
        ]
        logger.debug("prepared %d inclusion assignments", len(assignments))
        return assignments, global_state_root

    def prepare_fee(self, transition, query):
        if len(self.tasks) != 1:
            raise InclusionError("Inclusion expected the fee to contain an input record")
        return self.prepare_execution([transition], query)

    # ── 비동기 ──

    async def prepare_execution_async(self, transitions, query):
        self._check_transitions(transitions)
        global_state_root = await query.current_state_root_async()
        assignments = []
        for task in self.tasks:
            path = await query.get_state_path_for_commitment_async(task[1])
            assignments.append(self._assignment(task, path, global_state_root))
        logger.debug("prepared %d inclusion assignments", len(assignments))
        return assignments, global_state_root

    async def prepare_fee_async(self, transition, query):
        if len(self.tasks) != 1:
            raise InclusionError("Inclusion expected the fee to contain an input record")
        return await self.prepare_execution_async([transition], query)

    # ── 검증자 입력 ──

    @staticmethod
    def prepare_verifier_inputs(global_state_root, transitions):
        """레코드 입력마다 [1, root, sn], 전이 순서대로."""
        return [
            [FR(1), FR(global_state_root), serial_number]
            for transition in transitions
            for serial_number in transition.serial_numbers()
        ]
