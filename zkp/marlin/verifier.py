"""
Marlin Verifier
================

Marlin 일괄 증명을 검증한다.

**검증 과정**:
  0. 증명 형식 확인 (모든 점이 G1 위에 있는지, 스칼라가 체 원소인지)
  1. 배치 구성 확인 (회로 ID, 인스턴스 수)
  2. Fiat-Shamir 트랜스크립트 재생 → AHP 상태 기계로 α, η, 결합자, β, r, γ 복원
  3. query set 평가값 흡수 → ξ, u
  4. 스칼라 검사 (회로 결합자로 묶음)
     - rowcheck:  Σ c_i (z_A z_B - z_C)(β) = h_0(β)·v_H(β)
     - 외부 합검사: q_1(β) = h_1(β)·v_H(β) + β·g_1(β)
     - 내부 합검사: a_M(γ) - b_M(γ)·(γ·g_M(γ) + σ_M/|K|) = h_M(γ)·v_K(γ)
       (행렬은 1, r_B, r_C 로 묶음)
  5. 페어링 검사 (β, γ 일괄 열기를 u 로 묶음)

**핵심 방정식**:
  z_i(β) = ŵ_i(β)·v_{H_x}(β) + x̂_i(β)     (x̂ 는 검증자가 공개 입력으로 계산)
  t(β) = σ_A + η_B·σ_B + η_C·σ_C
  q_1(β) = r(α,β)·Σ c_i (z_A + η_B z_B + η_C z_C)(β) - t(β)·Σ c_i z_i(β)

구조 불일치나 검사 실패는 False 를 돌려주고 이유를 로그로 남긴다.
AHP 의 구조 오류(NonSquareMatrix 등)와 ChallengeDegenerate 는 그대로 전파된다.

사용 예시:
    >>> from zkp.marlin.verifier import verify_batch
    >>> verify_batch("execution", {"f": (vk, [public_inputs])}, proof)
"""

import logging
import time

from zkp.marlin.ahp.verifier import (
    INNER_POLYS,
    circuit_label,
    degree_bounds,
    first_round,
    fourth_round,
    matrix_label,
    opening_order,
    query_set,
    second_round,
    third_round,
    witness_label,
    WITNESS_POLYS,
)
from zkp.marlin.batch import batch_info, group_by_circuit, new_transcript, pad_public_inputs
from zkp.marlin.field import FR, is_g1_point
from zkp.marlin.kzg import batch_check, shifted_evaluation

logger = logging.getLogger(__name__)


class _Reject(Exception):
    """검증 실패 사유 (내부용)."""


def verify_batch(label, mapping, proof):
    """Marlin 일괄 증명을 검증한다.

    Args:
        label: 증명 때와 같은 배치 레이블
        mapping: 키 → (VerifyingKey, [공개 입력 벡터, ...])
        proof: Proof

    Returns:
        bool: 검증 성공 여부
    """
    start = time.perf_counter()
    try:
        _verify(label, mapping, proof)
    except _Reject as e:
        logger.warning("batch %r rejected: %s", str(label), e)
        return False
    logger.info("verified batch %r in %.2fs", str(label), time.perf_counter() - start)
    return True


def _check_encoding(proof):
    """증명 안의 점과 스칼라 형식을 검사한다. 곡선 밖의 점은 페어링까지 가지 않는다."""
    for table_name in ("commitments", "shifted"):
        for lbl, point in getattr(proof, table_name).items():
            if not is_g1_point(point):
                raise _Reject(f"{table_name}[{lbl}] is not a G1 point")
    for point_name, witness in (("beta", proof.w_beta), ("gamma", proof.w_gamma)):
        if witness is not None and not is_g1_point(witness):
            raise _Reject(f"opening proof at {point_name} is not a G1 point")
    for cid, sigmas in proof.sigmas.items():
        if not isinstance(sigmas, (list, tuple)) or not all(_is_scalar(s) for s in sigmas):
            raise _Reject(f"inner sums for {str(cid)[:12]} are not field elements")
    for lbl, value in proof.evaluations.items():
        if not _is_scalar(value):
            raise _Reject(f"evaluation {lbl} is not a field element")


def _is_scalar(value):
    return isinstance(value, (int, FR)) and not isinstance(value, bool)


def _verify(label, mapping, proof):
    if not mapping:
        raise _Reject("empty batch")
    groups = group_by_circuit(mapping)

    # ── Step 0: 증명 형식 ──
    _check_encoding(proof)

    # ── Step 1: 배치 구성 ──
    expected = [(vk.id, len(inputs)) for vk, inputs in groups]
    if [tuple(entry) for entry in proof.batch_sizes] != expected:
        raise _Reject("batch composition does not match proof")
    srs = groups[0][0].srs
    for vk, _ in groups:
        if vk.srs.max_degree != srs.max_degree:
            raise _Reject("verifying keys use different SRS")

    public_inputs = {}
    for vk, inputs in groups:
        try:
            public_inputs[vk.id] = [
                pad_public_inputs(vector, vk.index_info.num_public_inputs) for vector in inputs
            ]
        except ValueError as e:
            raise _Reject(str(e)) from e

    # ── Step 2: 트랜스크립트 재생 ──
    transcript = new_transcript(label, groups, public_inputs)

    def absorb(lbl, shifted=False):
        table = proof.shifted if shifted else proof.commitments
        if lbl not in table:
            raise _Reject(f"missing commitment {lbl}")
        suffix = b"/shifted" if shifted else b""
        transcript.append_point(lbl.encode() + suffix, table[lbl])

    for vk, inputs in groups:
        for i in range(len(inputs)):
            for name in WITNESS_POLYS:
                absorb(witness_label(vk.id, name, i))
    first_msg, state = first_round(
        batch_info(groups), {vk: len(inputs) for vk, inputs in groups}, transcript
    )

    for vk, _ in groups:
        absorb(circuit_label(vk.id, "h_0"))
        absorb(circuit_label(vk.id, "g_1"))
        absorb(circuit_label(vk.id, "g_1"), shifted=True)
        absorb(circuit_label(vk.id, "h_1"))
    second_msg, state = second_round(state, transcript)

    for vk, _ in groups:
        sigmas = proof.sigmas.get(vk.id)
        if sigmas is None or len(sigmas) != 3:
            raise _Reject(f"missing inner sums for {vk.id[:12]}")
        for m, sigma in zip(("a", "b", "c"), sigmas):
            transcript.append_scalar(matrix_label(vk.id, m, "sigma").encode(), sigma)
            absorb(matrix_label(vk.id, m, "g"))
            absorb(matrix_label(vk.id, m, "g"), shifted=True)
            absorb(matrix_label(vk.id, m, "h"))
    third_msg, state = third_round(state, transcript)
    state = fourth_round(state, transcript)

    qs, state = query_set(state)
    evals = {}
    for lbl, _ in qs.entries:
        if lbl not in proof.evaluations:
            raise _Reject(f"missing evaluation {lbl}")
        evals[lbl] = FR(proof.evaluations[lbl])
        transcript.append_scalar(lbl.encode(), evals[lbl])
    xi = transcript.challenge_scalar(b"xi")
    u = transcript.challenge_scalar(b"u")

    # ── Step 3: 스칼라 검사 ──
    alpha, beta, gamma = first_msg.alpha, second_msg.beta, state.gamma
    etas = (FR(1), first_msg.eta_b, first_msg.eta_c)
    rowcheck = FR(0)
    outer = FR(0)
    inner = FR(0)
    for vk, _ in groups:
        cid = vk.id
        domains = state.circuit_domains[cid]
        h_domain = domains.constraint_domain
        x_domain = domains.input_domain
        combiners = first_msg.batch_combiners[cid]
        v_h_alpha = h_domain.evaluate_vanishing_polynomial(alpha)
        v_h_beta = h_domain.evaluate_vanishing_polynomial(beta)
        v_x_beta = x_domain.evaluate_vanishing_polynomial(beta)

        # rowcheck + 외부 합검사
        row_sum = FR(0)
        z_m_sum = FR(0)
        z_sum = FR(0)
        for i, c_i in enumerate(combiners.instance_combiners):
            z_a = evals[witness_label(cid, "z_a", i)]
            z_b = evals[witness_label(cid, "z_b", i)]
            z_c = evals[witness_label(cid, "z_c", i)]
            w = evals[witness_label(cid, "w", i)]
            x_hat = x_domain.evaluate_interpolation(public_inputs[cid][i], beta)
            row_sum = row_sum + c_i * (z_a * z_b - z_c)
            z_m_sum = z_m_sum + c_i * (z_a + etas[1] * z_b + etas[2] * z_c)
            z_sum = z_sum + c_i * (w * v_x_beta + x_hat)

        sigmas = [FR(s) for s in proof.sigmas[cid]]
        t_beta = etas[0] * sigmas[0] + etas[1] * sigmas[1] + etas[2] * sigmas[2]
        q_1 = h_domain.eval_kernel(alpha, beta) * z_m_sum - t_beta * z_sum

        circuit_row = row_sum - evals[circuit_label(cid, "h_0")] * v_h_beta
        circuit_outer = (q_1 - evals[circuit_label(cid, "h_1")] * v_h_beta
                         - beta * evals[circuit_label(cid, "g_1")])

        # 내부 합검사
        circuit_inner = FR(0)
        for weight, m, sigma in zip((FR(1), third_msg.r_b, third_msg.r_c), ("a", "b", "c"), sigmas):
            k_domain = getattr(domains, f"non_zero_{m}_domain")
            row, col, val, g, h = (evals[matrix_label(cid, m, name)] for name in INNER_POLYS)
            a_val = v_h_alpha * v_h_beta * val
            b_val = (alpha - row) * (beta - col)
            f_val = gamma * g + sigma / FR(k_domain.size)
            residual = a_val - b_val * f_val - h * k_domain.evaluate_vanishing_polynomial(gamma)
            circuit_inner = circuit_inner + weight * residual

        cc = combiners.circuit_combiner
        rowcheck = rowcheck + cc * circuit_row
        outer = outer + cc * circuit_outer
        inner = inner + cc * circuit_inner

    if rowcheck != 0:
        raise _Reject("rowcheck failed")
    if outer != 0:
        raise _Reject("outer sumcheck failed")
    if inner != 0:
        raise _Reject("inner sumcheck failed")

    # ── Step 4: 페어링 검사 ──
    bounds = degree_bounds(state)
    index_comms = {}
    for vk, _ in groups:
        for m in ("a", "b", "c"):
            row_c, col_c, val_c = vk.commitments[m]
            index_comms[matrix_label(vk.id, m, "row")] = row_c
            index_comms[matrix_label(vk.id, m, "col")] = col_c
            index_comms[matrix_label(vk.id, m, "val")] = val_c

    openings = []
    for point_name, witness in (("beta", proof.w_beta), ("gamma", proof.w_gamma)):
        if witness is None:
            raise _Reject(f"missing opening proof at {point_name}")
        point = qs.points[point_name]
        comms = []
        values = []
        for lbl, shifted in opening_order(qs, point_name, bounds):
            if shifted:
                comms.append(proof.shifted[lbl])
                values.append(shifted_evaluation(evals[lbl], point, bounds[lbl], srs))
            else:
                comms.append(index_comms[lbl] if lbl in index_comms else proof.commitments[lbl])
                values.append(evals[lbl])
        openings.append((comms, values, point, xi, witness))

    if not batch_check(openings, u, srs):
        raise _Reject("pairing check failed")
