"""
KZG 다항식 커밋먼트 스킴
=========================

Kate-Zaverucha-Goldberg (KZG) 커밋먼트는 Marlin 을 비대화식 논증으로
컴파일하는 다항식 커밋먼트이다.

**커밋먼트**: C = p(τ)·G1

**열기 증명 (Opening Proof)**:
  "p(z) = y" 임을 증명:
  1. q(x) = (p(x) - y) / (x - z)
  2. π = q(τ)·G1
  3. 검증: e(C - y·G1, G2) == e(π, τ·G2 - z·G2)

**일괄 열기 (Batch Opening)**:
  같은 점 z 에서 여러 다항식 p₀, p₁, ... 을 열 때 챌린지 ξ 로 묶는다.
    P(x) = Σ ξᵏ · pₖ(x),   C = Σ ξᵏ · Cₖ,   y = Σ ξᵏ · yₖ
  서로 다른 점 (β, γ) 의 열기는 챌린지 u 로 한 번의 페어링 검사에 합친다.

    e(W_β + u·W_γ, [τ]₂)
      == e(β·W_β + u·γ·W_γ + (C_β - y_β·G1) + u·(C_γ - y_γ·G1), G2)

사용 예시:
    >>> C = commit(poly, srs)
    >>> W = open_batch([poly], FR(7), FR(1), srs)
    >>> batch_check([([C], [poly.evaluate(FR(7))], FR(7), FR(1), W)], FR(1), srs)
"""

from zkp.marlin.field import (
    FR, G1, Z1, ec_mul, ec_add, ec_neg, ec_pairing, ec_lincomb,
)
from zkp.marlin.polynomial import Polynomial, divide_by_linear


def commit(poly, srs):
    """다항식을 KZG 커밋한다: C = Σᵢ cᵢ · [τⁱ]₁.

    Raises:
        ValueError: 다항식 차수가 SRS 최대 차수를 초과할 때
    """
    if poly.degree > srs.max_degree:
        raise ValueError(
            f"다항식 차수 {poly.degree}가 SRS 최대 차수 {srs.max_degree}를 초과합니다"
        )
    return ec_lincomb(srs.g1_powers, poly.coeffs)


def commit_shifted(poly, degree_bound, srs):
    """차수 제한 동반 커밋먼트: commit(x^(D - d) · p(x)).

    Args:
        poly: deg ≤ degree_bound 인 다항식
        degree_bound: d
        srs: SRS (D = srs.max_degree)

    Raises:
        ValueError: deg p > d
    """
    if poly.degree > degree_bound:
        raise ValueError(f"다항식 차수 {poly.degree}가 제한 {degree_bound}를 넘습니다")
    return commit(poly.shift(srs.max_degree - degree_bound), srs)


def shifted_evaluation(evaluation, point, degree_bound, srs):
    """x^(D - d) · p(x) 의 point 에서의 값."""
    return FR(point) ** (srs.max_degree - degree_bound) * evaluation


def combine_polynomials(polys, challenge):
    """Σ ξᵏ · pₖ(x)."""
    combined = Polynomial.zero()
    factor = FR(1)
    for poly in polys:
        combined = combined + poly * factor
        factor = factor * challenge
    return combined


def create_witness(poly, point, srs):
    """단일 다항식 열기 증명 π = commit((p(x) - p(z)) / (x - z))."""
    quotient, _ = divide_by_linear(poly, FR(point))
    return commit(quotient, srs)


def open_batch(polys, point, challenge, srs):
    """같은 점에서 여러 다항식을 ξ 로 묶어 하나의 열기 증명을 만든다."""
    return create_witness(combine_polynomials(polys, challenge), point, srs)


def verify_opening(commitment, proof, point, evaluation, srs):
    """KZG 단일 열기 증명을 검증한다.

    e(C - y·G1, G2) == e(π, [τ - z]₂)
    """
    point = FR(point)
    tau_minus_z_g2 = ec_add(srs.g2_powers[1], ec_neg(ec_mul(srs.g2_powers[0], point)))
    c_minus_y = ec_add(commitment, ec_neg(ec_mul(G1, FR(evaluation))))
    lhs = ec_pairing(srs.g2_powers[0], c_minus_y)
    rhs = ec_pairing(tau_minus_z_g2, proof)
    return lhs == rhs


def batch_check(openings, challenge, srs):
    """여러 점의 일괄 열기를 한 번의 페어링 등식으로 검사한다.

    Args:
        openings: [(commitments, evaluations, point, ξ, witness), ...]
        challenge: 점들 사이를 묶는 u
        srs: SRS

    Returns:
        bool
    """
    lhs_point = Z1
    rhs_point = Z1
    factor = FR(1)
    for commitments, evaluations, point, xi, witness in openings:
        if len(commitments) != len(evaluations):
            return False
        powers = []
        p = FR(1)
        for _ in commitments:
            powers.append(p)
            p = p * xi
        combined_comm = ec_lincomb(commitments, powers)
        combined_eval = FR(0)
        for y, power in zip(evaluations, powers):
            combined_eval = combined_eval + y * power

        # ── z·W + C - y·G1 ──
        term = ec_add(ec_mul(witness, point), combined_comm)
        term = ec_add(term, ec_neg(ec_mul(G1, combined_eval)))

        lhs_point = ec_add(lhs_point, ec_mul(witness, factor))
        rhs_point = ec_add(rhs_point, ec_mul(term, factor))
        factor = factor * challenge

    lhs = ec_pairing(srs.g2_powers[1], lhs_point)
    rhs = ec_pairing(srs.g2_powers[0], rhs_point)
    return lhs == rhs
