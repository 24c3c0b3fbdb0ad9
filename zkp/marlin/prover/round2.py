"""
Marlin Prover Round 2: rowcheck 와 외부 합검사 (Outer Sumcheck)
================================================================

  ┌───────────────────────────────────────────────────────┐
  │  입력:  α, η_B, η_C, 인스턴스 결합자 c_i               │
  │  Prover → Verifier: [h_0]₁, [g_1]₁, [x^(D-d)·g_1]₁, [h_1]₁│
  │  Verifier → Prover: β                                 │
  └───────────────────────────────────────────────────────┘

**Rowcheck** (회로마다, 인스턴스를 c_i 로 묶음):
  Σ_i c_i · (ẑ_A,i(x)·ẑ_B,i(x) - ẑ_C,i(x)) = h_0(x) · v_H(x)

**외부 합검사** (lincheck):
  t(κ) = Σ_M η_M Σ_i r(α, ω^i) · M[i, var(κ)]     (κ ∈ H)
  q_1(x) = r(α, x) · Σ_i c_i Σ_M η_M ẑ_M,i(x) - t(x) · Σ_i c_i ẑ_i(x)
  ẑ_i(x) = ŵ_i(x) · v_{H_x}(x) + x̂_i(x)

  Σ_{h∈H} q_1(h) = 0 이면 q_1(x) = h_1(x)·v_H(x) + x·g_1(x),  deg g_1 ≤ |H| - 2

사용:
    이 모듈은 직접 호출하지 않고, prover.prove_batch()를 통해 실행된다.
"""

from zkp.marlin.ahp.verifier import circuit_label, second_round, witness_label
from zkp.marlin.field import FR
from zkp.marlin.polynomial import Polynomial


def execute(state):
    """Round 2을 실행한다.

    Args:
        state: ProverState — Round 1 의 증인 다항식과 α 를 읽고,
               h_0, g_1, h_1 을 커밋한 뒤 β 를 받는다.
    """
    msg = state.first_message
    etas = {"a": FR(1), "b": msg.eta_b, "c": msg.eta_c}

    for pk, assignments in state.groups:
        circuit = pk.circuit
        cid = circuit.id
        domains = state.ahp_state.circuit_domains[cid]
        h_domain = domains.constraint_domain
        n = h_domain.size
        combiners = msg.batch_combiners[cid].instance_combiners

        # ── 1. rowcheck ──
        row_poly = Polynomial.zero()
        for i, c_i in enumerate(combiners):
            z_a = state.polys[witness_label(cid, "z_a", i)]
            z_b = state.polys[witness_label(cid, "z_b", i)]
            z_c = state.polys[witness_label(cid, "z_c", i)]
            row_poly = row_poly + (z_a * z_b - z_c) * c_i
        h_0, _ = row_poly.divide_by_vanishing(n)

        # ── 2. t(x) ──
        t_poly = h_domain.interpolate(_t_evaluations(circuit, h_domain, msg.alpha, etas))

        # ── 3. q_1(x) ──
        v_x = Polynomial.vanishing(circuit.nx)
        z_m_comb = Polynomial.zero()
        z_comb = Polynomial.zero()
        for i, c_i in enumerate(combiners):
            z_m = (state.polys[witness_label(cid, "z_a", i)]
                   + state.polys[witness_label(cid, "z_b", i)] * etas["b"]
                   + state.polys[witness_label(cid, "z_c", i)] * etas["c"])
            z_m_comb = z_m_comb + z_m * c_i
            z_hat = state.polys[witness_label(cid, "w", i)] * v_x + state.x_hats[cid][i]
            z_comb = z_comb + z_hat * c_i
        q_1 = h_domain.kernel_polynomial(msg.alpha) * z_m_comb - t_poly * z_comb

        # ── 4. q_1 = h_1·v_H + x·g_1 ──
        h_1, remainder = q_1.divide_by_vanishing(n)
        g_1 = Polynomial(remainder.coeffs[1:])

        # ── 5. 커밋 + 흡수 ──
        state.commit(circuit_label(cid, "h_0"), h_0)
        state.commit(circuit_label(cid, "g_1"), g_1)
        state.commit_shifted(circuit_label(cid, "g_1"), n - 2)
        state.commit(circuit_label(cid, "h_1"), h_1)

    # ── 6. AHP round 2 ──
    state.second_message, state.ahp_state = second_round(state.ahp_state, state.transcript)


def _t_evaluations(circuit, h_domain, alpha, etas):
    """t(κ) 를 H 의 지수 순서로 계산한다."""
    elements = h_domain.elements()
    v_alpha = h_domain.evaluate_vanishing_polynomial(alpha)
    # r(α, ω^i) = v_H(α) / (α - ω^i)
    kernel = [v_alpha / (alpha - elements[i]) for i in range(h_domain.size)]
    evals = [FR(0)] * h_domain.size
    for m, eta in etas.items():
        for row, col, value in circuit.matrices[m]:
            exp = circuit.var_exponents[col]
            evals[exp] = evals[exp] + eta * value * kernel[row]
    return evals
