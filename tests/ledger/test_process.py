"""
Process 와 트랜잭션 End-to-End 테스트
======================================

program -> Process.execute -> Trace -> prepare -> prove -> verify 전체 흐름.

테스트 범위:
  - 함수 실행: 전이 공개 입력 = 회로 공개 입력, 새 레코드 커밋먼트
  - 실제 입력 합성과 키 합성의 회로가 같다
  - 제약 불만족 / 모르는 함수 → ValueError
  - 실행 증명: 여러 함수 × 여러 인스턴스 + 레코드 멤버십, 검증 성공
  - 수수료 증명: 검증 성공
  - 레코드 입력이 없는 실행: 멤버십 증인 없이 증명, 검증
  - 잘못된 루트, 조작된 공개 입력/증인, 곡선 밖의 점 → VerificationError
"""

import asyncio
import copy
import random

import pytest
from py_ecc import optimized_bn128 as bn128

from zkp.ledger.errors import VerificationError
from zkp.ledger.process import FunctionContext, Process
from zkp.ledger.program import Execution, Fee, Locator, Record, address
from zkp.ledger.programs import fee, noop
from zkp.ledger.storage import BlockStorage
from zkp.ledger.trace import Trace
from zkp.ledger.trace.query import Query
from zkp.marlin.field import FR
from zkp.marlin.indexer import Circuit

SK = 77
OWNER = int(address(SK))
SPLIT = Locator("credits.aleo", "split")
NOOP = Locator("noop.aleo", "noop")
TRANSFER = Locator("credits.aleo", "transfer_public")


@pytest.fixture(scope="module")
def process(network):
    return Process(network)


@pytest.fixture(scope="module")
def ledger():
    records = [Record(OWNER, 100, 11), Record(OWNER, 50, 12)]
    storage = BlockStorage(depth=2)
    storage.insert_commitments([r.commitment() for r in records])
    yield records, storage, Query(storage)
    storage.close()


# =====================================================================
# 함수 실행
# =====================================================================

class TestExecute:
    def test_fee_response(self, process, ledger):
        records, _, _ = ledger
        response = process.execute("credits.aleo/fee", [records[0], 7], private_key=SK, rng=random.Random(1))
        transition = response.transition
        pk, assignment = response.task

        assert transition.locator == Locator("credits.aleo", "fee")
        assert [inp.kind for inp in transition.inputs] == ["record", "public"]
        assert [out.kind for out in transition.outputs] == ["record"]
        assert transition.serial_numbers() == [records[0].serial_number(SK)]
        assert assignment.circuit_id == pk.id
        assert assignment.public_inputs == transition.verifier_inputs()

        (change,) = response.records
        assert change.owner == OWNER
        assert change.amount == 93
        assert transition.commitments() == [change.commitment()]

        input_id = response.input_ids[0]
        assert input_id.commitment == records[0].commitment()
        assert input_id.serial_number == records[0].serial_number(SK)

    def test_real_synthesis_matches_keys(self, process, ledger):
        records, _, _ = ledger
        pk, _ = process.synthesize_keys("credits.aleo/fee")
        ctx = FunctionContext(SK, random.Random(2))
        fee(ctx, records[1], 3)
        assert ctx.cs.is_satisfied()
        assert Circuit.from_constraint_system(ctx.cs).id == pk.id

    def test_noop_has_no_constraints(self, process):
        ctx = FunctionContext(0, random.Random(0))
        noop(ctx, 4, 5)
        assert ctx.cs.num_constraints == 0
        assert process.execute(NOOP, [4, 5]).transition.verifier_inputs() == [FR(1), FR(4), FR(5)]

    def test_keys_cached(self, process):
        assert process.synthesize_keys(NOOP) is process.synthesize_keys("noop.aleo/noop")

    def test_wrong_owner(self, process, ledger):
        records, _, _ = ledger
        with pytest.raises(ValueError):
            process.execute("credits.aleo/fee", [records[0], 7], private_key=SK + 1)

    def test_transfer_zero_amount(self, process):
        with pytest.raises(ValueError):
            process.execute(TRANSFER, [10, 0])

    def test_unknown_function(self, process):
        with pytest.raises(ValueError):
            process.execute("credits.aleo/mint", [1])

    def test_inputs_before_outputs(self):
        ctx = FunctionContext(0, random.Random(0))
        ctx.public_output(ctx.public_input(1))
        with pytest.raises(ValueError):
            ctx.public_input(2)

    def test_verifier_inputs_grouped(self, process):
        t1 = process.execute(NOOP, [1, 2]).transition
        t2 = process.execute(NOOP, [3, 4]).transition
        mapping = process.verifier_inputs([t1, t2])
        vk, inputs = mapping[NOOP]
        assert vk.id == process.synthesize_keys(NOOP)[1].id
        assert inputs == [t1.verifier_inputs(), t2.verifier_inputs()]


# =====================================================================
# End-to-End
# =====================================================================

@pytest.fixture(scope="module")
def execution(process, ledger, network):
    records, _, query = ledger
    rng = random.Random(10)
    trace = Trace(network)
    calls = [
        (SPLIT, [records[0], 30]),
        (NOOP, [0, 1]),
        (TRANSFER, [20, 8]),
        (NOOP, [1, 1]),
    ]
    for locator, inputs in calls:
        response = process.execute(locator, inputs, private_key=SK, rng=rng)
        trace.insert_transition(response.input_ids, response.transition, response.task)
    trace.prepare(query)
    return trace.prove_execution(SPLIT, rng)


@pytest.fixture(scope="module")
def fee_proof(process, ledger, network):
    records, _, query = ledger
    rng = random.Random(11)
    trace = Trace(network)
    response = process.execute("credits.aleo/fee", [records[1], 5], private_key=SK, rng=rng)
    trace.insert_transition(response.input_ids, response.transition, response.task)
    assert trace.is_fee()
    asyncio.run(trace.prepare_async(query))
    return trace.prove_fee(rng)


class TestExecutionProof:
    def test_verifies(self, execution, process, network, ledger):
        _, storage, _ = ledger
        assert execution.global_state_root == storage.current_state_root()
        assert len(execution.transitions) == 4
        Trace.verify_execution_proof(
            SPLIT, process.verifier_inputs(execution.transitions), execution, network
        )

    def test_proof_covers_inclusion(self, execution, network):
        inclusion_pk, _ = network.inclusion_keys()
        assert dict(execution.proof.batch_sizes)[inclusion_pk.id] == 1

    def test_wrong_root(self, execution, process, network):
        forged = Execution(execution.transitions, execution.global_state_root + 1, execution.proof)
        with pytest.raises(VerificationError, match="^Execution is invalid - "):
            Trace.verify_execution_proof(
                SPLIT, process.verifier_inputs(forged.transitions), forged, network
            )

    def test_tampered_public_input(self, execution, process, network):
        verifier_inputs = process.verifier_inputs(execution.transitions)
        _, inputs = verifier_inputs[TRANSFER]
        inputs[0] = list(inputs[0])
        inputs[0][-1] = inputs[0][-1] + 1
        with pytest.raises(VerificationError):
            Trace.verify_execution_proof(SPLIT, verifier_inputs, execution, network)

    def test_off_curve_opening_proof(self, execution, process, network):
        proof = copy.deepcopy(execution.proof)
        proof.w_gamma = (bn128.FQ(1), bn128.FQ(1), bn128.FQ(1))
        forged = Execution(execution.transitions, execution.global_state_root, proof)
        with pytest.raises(VerificationError, match="^Execution is invalid - "):
            Trace.verify_execution_proof(
                SPLIT, process.verifier_inputs(forged.transitions), forged, network
            )

    def test_non_field_sigma(self, execution, process, network):
        proof = copy.deepcopy(execution.proof)
        cid = next(iter(proof.sigmas))
        proof.sigmas[cid] = [None, None, None]
        forged = Execution(execution.transitions, execution.global_state_root, proof)
        with pytest.raises(VerificationError, match="^Execution is invalid - "):
            Trace.verify_execution_proof(
                SPLIT, process.verifier_inputs(forged.transitions), forged, network
            )

    def test_wrong_locator(self, execution, process, network):
        with pytest.raises(VerificationError):
            Trace.verify_execution_proof(
                NOOP, process.verifier_inputs(execution.transitions), execution, network
            )


class TestFeeProof:
    def test_verifies(self, fee_proof, process, network):
        assert isinstance(fee_proof, Fee)
        Trace.verify_fee_proof(process.verifier_inputs(fee_proof.transitions), fee_proof, network)

    def test_wrong_root(self, fee_proof, process, network):
        forged = Fee(fee_proof.transition, fee_proof.global_state_root + 1, fee_proof.proof)
        with pytest.raises(VerificationError, match="^Fee is invalid - "):
            Trace.verify_fee_proof(process.verifier_inputs(forged.transitions), forged, network)


# =====================================================================
# 레코드 입력이 없는 실행 (멤버십 증인 없음)
# =====================================================================

@pytest.fixture(scope="module")
def empty_query():
    storage = BlockStorage(depth=2)
    yield Query(storage)
    storage.close()


def public_only_execution(process, network, query, tamper=False):
    rng = random.Random(12)
    trace = Trace(network)
    response = process.execute(TRANSFER, [20, 8], rng=rng)
    _, assignment = response.task
    if tamper:
        assignment.private_inputs[0] = assignment.private_inputs[0] + 1
    trace.insert_transition(response.input_ids, response.transition, response.task)
    trace.prepare(query)
    return trace, trace.prove_execution(TRANSFER, rng)


class TestPublicOnlyExecution:
    def test_verifies_without_inclusion(self, process, network, empty_query):
        trace, execution = public_only_execution(process, network, empty_query)
        assert not trace.is_fee()
        assert trace.inclusion_assignments.get() == []
        assert execution.global_state_root != 0
        assert execution.global_state_root == empty_query.current_state_root()

        inclusion_pk, _ = network.inclusion_keys()
        assert inclusion_pk.id not in dict(execution.proof.batch_sizes)
        Trace.verify_execution_proof(
            TRANSFER, process.verifier_inputs(execution.transitions), execution, network
        )

    def test_tampered_witness(self, process, network, empty_query):
        _, execution = public_only_execution(process, network, empty_query, tamper=True)
        with pytest.raises(VerificationError, match="^Execution is invalid - "):
            Trace.verify_execution_proof(
                TRANSFER, process.verifier_inputs(execution.transitions), execution, network
            )
