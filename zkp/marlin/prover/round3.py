"""
Marlin Prover Round 3: 내부 합검사 (Inner Sumcheck)
====================================================

  ┌──────────────────────────────────────────────────────────┐
  │  입력:  α, β, 인덱스 다항식 row_M, col_M, val_M (K_M 위)   │
  │  Prover → Verifier: σ_M, [g_M]₁, [x^(D-d)·g_M]₁, [h_M]₁   │
  │                     (회로·행렬마다)                        │
  │  Verifier → Prover: r_B, r_C, 그리고 γ                    │
  └──────────────────────────────────────────────────────────┘

외부 합검사에서 검증자는 t(β) = Σ_M η_M · t_M(β) 를 알아야 한다.
t_M(β) 는 K_M 위의 합으로 쓸 수 있다.

  f_M(κ) = v_H(α)·v_H(β)·val_M(κ) / ((α - row_M(κ))(β - col_M(κ)))
  σ_M = Σ_{κ∈K_M} f_M(κ) = t_M(β)

**합검사**:
  f_M(x) = x·g_M(x) + σ_M / |K_M|,      deg g_M ≤ |K_M| - 2

**분모 제거**:
  a_M(x) = v_H(α)·v_H(β)·val_M(x)
  b_M(x) = (α - row_M(x))·(β - col_M(x))
  a_M(x) - b_M(x)·f_M(x) = h_M(x)·v_K(x)

사용:
    이 모듈은 직접 호출하지 않고, prover.prove_batch()를 통해 실행된다.
"""

from zkp.marlin.ahp.verifier import fourth_round, matrix_label, third_round
from zkp.marlin.field import FR
from zkp.marlin.polynomial import Polynomial


def execute(state):
    """Round 3을 실행한다.

    Args:
        state: ProverState — α, β 를 읽고 σ_M, g_M, h_M 을 커밋한 뒤
               r_B, r_C, γ 를 받는다.
    """
    alpha = state.first_message.alpha
    beta = state.second_message.beta

    for pk, _ in state.groups:
        circuit = pk.circuit
        cid = circuit.id
        h_domain = state.ahp_state.circuit_domains[cid].constraint_domain
        v_ab = (h_domain.evaluate_vanishing_polynomial(alpha)
                * h_domain.evaluate_vanishing_polynomial(beta))

        sigmas = []
        for m, idx in circuit.index().items():
            k_domain = idx.domain

            # ── 1. f_M 평가값, σ_M ──
            f_evals = [
                v_ab * val / ((alpha - row) * (beta - col))
                for row, col, val in zip(idx.row_evals, idx.col_evals, idx.val_evals)
            ]
            sigma = FR(0)
            for f in f_evals:
                sigma = sigma + f
            sigmas.append(sigma)

            # ── 2. g_M ──
            f_poly = k_domain.interpolate(f_evals)
            g_poly = Polynomial(f_poly.coeffs[1:])

            # ── 3. h_M ──
            a_poly = idx.val * v_ab
            b_poly = (Polynomial([alpha]) - idx.row) * (Polynomial([beta]) - idx.col)
            h_poly, _ = (a_poly - b_poly * f_poly).divide_by_vanishing(k_domain.size)

            # ── 4. 인덱스 다항식 (γ 에서 열기 위해) ──
            state.polys[matrix_label(cid, m, "row")] = idx.row
            state.polys[matrix_label(cid, m, "col")] = idx.col
            state.polys[matrix_label(cid, m, "val")] = idx.val

            # ── 5. 커밋 + 흡수 ──
            state.transcript.append_scalar(matrix_label(cid, m, "sigma").encode(), sigma)
            state.commit(matrix_label(cid, m, "g"), g_poly)
            state.commit_shifted(matrix_label(cid, m, "g"), k_domain.size - 2)
            state.commit(matrix_label(cid, m, "h"), h_poly)

        state.proof.sigmas[cid] = sigmas

    # ── 6. AHP round 3, 4 ──
    state.third_message, state.ahp_state = third_round(state.ahp_state, state.transcript)
    state.ahp_state = fourth_round(state.ahp_state, state.transcript)
