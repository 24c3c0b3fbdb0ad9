"""
Marlin Prover Round 1: 증인(Witness) 다항식 커밋먼트
======================================================

  ┌─────────────────────────────────────────────────┐
  │  Prover → Verifier: [ŵ]₁, [ẑ_A]₁, [ẑ_B]₁, [ẑ_C]₁│
  │                     (회로·인스턴스마다)           │
  │  Verifier → Prover: α, η_B, η_C, 배치 결합자      │
  └─────────────────────────────────────────────────┘

**과정**:
  1. z 를 H 위에 배치한다 (공개 변수는 H_x, 비공개 변수는 나머지).
  2. x̂(x): H_x 위에서 공개 입력을 보간한다.
  3. ŵ(x): H \\ H_x 위에서 (z(h) - x̂(h)) / v_{H_x}(h), H_x 위에서 0.
     그러면 H 위에서 z(h) = ŵ(h)·v_{H_x}(h) + x̂(h).
  4. ẑ_M(x): H 위에서 (Mz)_i 를 보간한다 (M = A, B, C).
  5. 블라인딩: p(x) + ρ·v_H(x). H 위의 값은 변하지 않는다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove_batch()를 통해 실행된다.
"""

from zkp.marlin.ahp.verifier import first_round, witness_label
from zkp.marlin.domain import EvaluationDomain
from zkp.marlin.field import FR, CURVE_ORDER
from zkp.marlin.polynomial import Polynomial


def execute(state):
    """Round 1을 실행한다.

    Args:
        state: ProverState — 증인 다항식을 기록하고 AHP 상태를 만든다.
    """
    batch_sizes = {}
    for pk, assignments in state.groups:
        circuit = pk.circuit
        h_domain = EvaluationDomain(circuit.n)
        x_domain = EvaluationDomain(circuit.nx)
        h_elements = h_domain.elements()
        stride = circuit.n // circuit.nx

        state.x_hats[circuit.id] = []
        for i, assignment in enumerate(assignments):
            # ── 1. z 배치, Mz ──
            z = circuit.z_vector(assignment)
            products = circuit.matrix_vector_products(assignment)

            # ── 2. x̂ ──
            x_hat = x_domain.interpolate(circuit.pad_public_inputs(assignment.public_inputs))
            state.x_hats[circuit.id].append(x_hat)
            x_hat_on_h = h_domain.fft(x_hat.coeffs)

            # ── 3. ŵ ──
            w_evals = [FR(0)] * circuit.n
            for e in range(circuit.n):
                if e % stride == 0:
                    continue
                v_x = h_elements[(e * circuit.nx) % circuit.n] - FR(1)
                w_evals[e] = (z[e] - x_hat_on_h[e]) / v_x
            w_poly = _add_blinding(h_domain.interpolate(w_evals), circuit.n, state.rng)

            # ── 4. ẑ_A, ẑ_B, ẑ_C ──
            z_polys = {
                m: _add_blinding(h_domain.interpolate(products[m]), circuit.n, state.rng)
                for m in ("a", "b", "c")
            }

            # ── 5. 커밋 + 흡수 ──
            state.commit(witness_label(circuit.id, "w", i), w_poly)
            state.commit(witness_label(circuit.id, "z_a", i), z_polys["a"])
            state.commit(witness_label(circuit.id, "z_b", i), z_polys["b"])
            state.commit(witness_label(circuit.id, "z_c", i), z_polys["c"])

        batch_sizes[pk] = len(assignments)

    # ── 6. AHP round 1 ──
    state.first_message, state.ahp_state = first_round(state.info, batch_sizes, state.transcript)


def _add_blinding(poly, n, rng):
    """poly(x) + ρ·(x^n - 1)."""
    rho = FR(rng.randrange(CURVE_ORDER))
    return poly + Polynomial.vanishing(n) * rho
