"""
Marlin 일괄 증명 End-to-End 테스트
===================================

circuit -> SRS -> setup -> prove_batch -> verify_batch 전체 파이프라인.

테스트 범위:
  - 단일 회로, 단일 인스턴스
  - 여러 회로 × 여러 인스턴스 한 번에
  - 매핑 삽입 순서와 무관
  - 건전성: 공개 입력 변경, 평가값/커밋먼트/σ/열기 증명 조작, 레이블 변경
  - 곡선 밖의 점, 체 원소가 아닌 스칼라 → 예외 없이 False
  - 잘못된 증인으로 만든 증명은 검증 실패
  - 구성 불일치 (인스턴스 수, 다른 회로 키)
"""

import copy
import random

import pytest
from py_ecc import optimized_bn128 as bn128

from zkp.marlin.field import FR, G1, ec_add, is_g1_point
from zkp.marlin.indexer import Circuit, ProvingKey, VerifyingKey, setup
from zkp.marlin.r1cs import ConstraintSystem
from zkp.marlin.srs import SRS


def cubic(x):
    """x³ + x + 5 = out."""
    cs = ConstraintSystem()
    out = cs.alloc_input(x ** 3 + x + 5)
    xv = cs.alloc(x)
    x2 = cs.mul(xv, xv)
    x3 = cs.mul(x2, xv)
    cs.enforce_equal(x3 + xv + 5, out)
    return cs


def product(a, b):
    """a · b = c, a 와 c 공개."""
    cs = ConstraintSystem()
    av = cs.alloc_input(a)
    cv = cs.alloc_input(a * b)
    bv = cs.alloc(b)
    cs.enforce(av, bv, cv)
    cs.enforce_boolean(cs.alloc(1))
    return cs


# ─────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def keys():
    cubic_circuit = Circuit.from_constraint_system(cubic(0))
    product_circuit = Circuit.from_constraint_system(product(0, 0))
    srs = SRS.generate(
        max(cubic_circuit.max_degree(), product_circuit.max_degree()), seed=2024
    )
    return {
        "cubic": setup(cubic_circuit, srs),
        "product": setup(product_circuit, srs),
    }


def _assignment(keys, name, cs):
    pk, _ = keys[name]
    return cs.to_assignment(pk.id)


@pytest.fixture(scope="module")
def single(keys):
    pk, vk = keys["cubic"]
    asg = _assignment(keys, "cubic", cubic(3))
    proof = ProvingKey.prove_batch("single", {"cubic": (pk, [asg])}, random.Random(1))
    return {"proof": proof, "verifier": {"cubic": (vk, [asg.public_inputs])}}


@pytest.fixture(scope="module")
def batch(keys):
    cubic_pk, cubic_vk = keys["cubic"]
    product_pk, product_vk = keys["product"]
    cubic_asgs = [_assignment(keys, "cubic", cubic(x)) for x in (3, 4)]
    product_asgs = [_assignment(keys, "product", product(6, 7))]
    proof = ProvingKey.prove_batch(
        "batch",
        {"f": (cubic_pk, cubic_asgs), "g": (product_pk, product_asgs)},
        random.Random(2),
    )
    verifier = {
        "f": (cubic_vk, [a.public_inputs for a in cubic_asgs]),
        "g": (product_vk, [a.public_inputs for a in product_asgs]),
    }
    return {"proof": proof, "verifier": verifier}


# =====================================================================
# 완전성
# =====================================================================

class TestCompleteness:
    def test_single(self, single):
        assert VerifyingKey.verify_batch("single", single["verifier"], single["proof"])

    def test_batch(self, batch):
        assert VerifyingKey.verify_batch("batch", batch["verifier"], batch["proof"])

    def test_batch_insertion_order(self, batch):
        reordered = dict(reversed(list(batch["verifier"].items())))
        assert VerifyingKey.verify_batch("batch", reordered, batch["proof"])

    def test_proof_shape(self, batch, keys):
        proof = batch["proof"]
        cubic_pk, _ = keys["cubic"]
        product_pk, _ = keys["product"]
        assert [cid for cid, _ in proof.batch_sizes] == sorted([cubic_pk.id, product_pk.id])
        assert dict(proof.batch_sizes) == {cubic_pk.id: 2, product_pk.id: 1}
        assert set(proof.sigmas) == {cubic_pk.id, product_pk.id}

    def test_same_circuit_under_two_keys(self, keys):
        pk, vk = keys["cubic"]
        a3 = _assignment(keys, "cubic", cubic(3))
        a5 = _assignment(keys, "cubic", cubic(5))
        proof = ProvingKey.prove_batch(
            "merged", {"x": (pk, [a3]), "y": (pk, [a5])}, random.Random(3)
        )
        assert dict(proof.batch_sizes) == {pk.id: 2}
        verifier = {"x": (vk, [a3.public_inputs]), "y": (vk, [a5.public_inputs])}
        assert VerifyingKey.verify_batch("merged", verifier, proof)


# =====================================================================
# 건전성
# =====================================================================

class TestSoundness:
    def test_wrong_public_input(self, batch):
        verifier = dict(batch["verifier"])
        vk, inputs = verifier["f"]
        verifier["f"] = (vk, [[FR(1), FR(36)], inputs[1]])
        assert not VerifyingKey.verify_batch("batch", verifier, batch["proof"])

    def test_swapped_instances(self, batch):
        verifier = dict(batch["verifier"])
        vk, inputs = verifier["f"]
        verifier["f"] = (vk, list(reversed(inputs)))
        assert not VerifyingKey.verify_batch("batch", verifier, batch["proof"])

    def test_wrong_label(self, batch):
        assert not VerifyingKey.verify_batch("other", batch["verifier"], batch["proof"])

    def test_tampered_evaluation(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(iter(proof.evaluations))
        proof.evaluations[label] = proof.evaluations[label] + 1
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_tampered_commitment(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(iter(proof.commitments))
        proof.commitments[label] = ec_add(proof.commitments[label], G1)
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_tampered_shifted_commitment(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(iter(proof.shifted))
        proof.shifted[label] = ec_add(proof.shifted[label], G1)
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_tampered_sigma(self, batch):
        proof = copy.deepcopy(batch["proof"])
        cid = next(iter(proof.sigmas))
        sigmas = list(proof.sigmas[cid])
        sigmas[1] = sigmas[1] + 1
        proof.sigmas[cid] = sigmas
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_swapped_opening_proofs(self, batch):
        proof = copy.deepcopy(batch["proof"])
        proof.w_beta, proof.w_gamma = proof.w_gamma, proof.w_beta
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_missing_opening_proof(self, batch):
        proof = copy.deepcopy(batch["proof"])
        proof.w_gamma = None
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_off_curve_opening_proof(self, batch):
        proof = copy.deepcopy(batch["proof"])
        proof.w_beta = (bn128.FQ(1), bn128.FQ(1), bn128.FQ(1))
        assert not is_g1_point(proof.w_beta)
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_off_curve_commitment(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(lbl for lbl, point in proof.commitments.items() if point[2] != 0)
        x, y, z = proof.commitments[label]
        proof.commitments[label] = (x, y + 1, z)
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_malformed_point(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(iter(proof.shifted))
        proof.shifted[label] = (1, 2)
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_non_field_sigma(self, batch):
        proof = copy.deepcopy(batch["proof"])
        cid = next(iter(proof.sigmas))
        proof.sigmas[cid] = [None] + list(proof.sigmas[cid])[1:]
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_non_field_evaluation(self, batch):
        proof = copy.deepcopy(batch["proof"])
        label = next(iter(proof.evaluations))
        proof.evaluations[label] = "0"
        assert not VerifyingKey.verify_batch("batch", batch["verifier"], proof)

    def test_unsatisfied_witness(self, keys):
        pk, vk = keys["cubic"]
        cs = cubic(3)
        cs.private_values[2] = FR(28)
        asg = cs.to_assignment(pk.id)
        proof = ProvingKey.prove_batch("bad", {"f": (pk, [asg])}, random.Random(4))
        assert not VerifyingKey.verify_batch("bad", {"f": (vk, [asg.public_inputs])}, proof)

    def test_wrong_public_input_for_honest_witness(self, keys):
        pk, vk = keys["cubic"]
        cs = cubic(3)
        cs.public_values[1] = FR(36)
        asg = cs.to_assignment(pk.id)
        proof = ProvingKey.prove_batch("bad", {"f": (pk, [asg])}, random.Random(5))
        assert not VerifyingKey.verify_batch("bad", {"f": (vk, [asg.public_inputs])}, proof)


# =====================================================================
# 구성 오류
# =====================================================================

class TestComposition:
    def test_instance_count_mismatch(self, batch):
        verifier = dict(batch["verifier"])
        vk, inputs = verifier["f"]
        verifier["f"] = (vk, inputs[:1])
        assert not VerifyingKey.verify_batch("batch", verifier, batch["proof"])

    def test_missing_circuit(self, batch):
        verifier = {"f": batch["verifier"]["f"]}
        assert not VerifyingKey.verify_batch("batch", verifier, batch["proof"])

    def test_empty_batch(self, batch):
        assert not VerifyingKey.verify_batch("batch", {}, batch["proof"])

    def test_too_many_public_inputs(self, single):
        vk, _ = single["verifier"]["cubic"]
        verifier = {"cubic": (vk, [[FR(1), FR(35), FR(0), FR(0), FR(9)]])}
        assert not VerifyingKey.verify_batch("single", verifier, single["proof"])

    def test_prove_rejects_foreign_assignment(self, keys):
        pk, _ = keys["cubic"]
        product_asg = _assignment(keys, "product", product(2, 3))
        with pytest.raises(ValueError):
            ProvingKey.prove_batch("x", {"f": (pk, [product_asg])})

    def test_prove_rejects_empty(self):
        with pytest.raises(ValueError):
            ProvingKey.prove_batch("x", {})
