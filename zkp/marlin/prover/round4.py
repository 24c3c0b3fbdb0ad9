"""
Marlin Prover Round 4: 평가값 + KZG 일괄 열기
==============================================

  ┌─────────────────────────────────────────────────┐
  │  AHP query set → (다항식, β | γ) 목록            │
  │  Prover → Verifier: 평가값들                     │
  │  Verifier → Prover: ξ, u  (Fiat-Shamir)         │
  │  Prover → Verifier: [W_β]₁, [W_γ]₁              │
  └─────────────────────────────────────────────────┘

평가값은 query set 순서대로 흡수한다. 차수 제한 동반 다항식의 값은
검증자가 x^(D-d)·p(z) 로 계산하므로 보내지 않는다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove_batch()를 통해 실행된다.
"""

from zkp.marlin.ahp.verifier import degree_bounds, opening_order, query_set
from zkp.marlin.kzg import open_batch


def execute(state):
    """Round 4을 실행한다.

    Args:
        state: ProverState — query set 을 평가하고 W_β, W_γ 를 기록한다.
    """
    qs, state.ahp_state = query_set(state.ahp_state)

    # ── 1. 평가값 ──
    for label, point_name in qs.entries:
        value = state.polys[label].evaluate(qs.points[point_name])
        state.proof.evaluations[label] = value
        state.transcript.append_scalar(label.encode(), value)

    # ── 2. 열기 챌린지 ξ ──
    xi = state.transcript.challenge_scalar(b"xi")

    # ── 3. u: 검증자의 추출을 따라가 트랜스크립트를 맞춘다 (값은 검증자만 쓴다) ──
    state.transcript.challenge_scalar(b"u")

    # ── 4. 일괄 열기 ──
    bounds = degree_bounds(state.ahp_state)
    witnesses = {}
    for point_name in ("beta", "gamma"):
        polys = []
        for label, shifted in opening_order(qs, point_name, bounds):
            poly = state.polys[label]
            if shifted:
                poly = poly.shift(state.srs.max_degree - bounds[label])
            polys.append(poly)
        witnesses[point_name] = open_batch(polys, qs.points[point_name], xi, state.srs)

    state.proof.w_beta = witnesses["beta"]
    state.proof.w_gamma = witnesses["gamma"]
