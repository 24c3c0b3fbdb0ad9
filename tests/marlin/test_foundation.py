"""
Foundation module tests: field.py, polynomial.py, domain.py, transcript.py, kzg.py
"""
import pytest

from zkp.marlin.field import (
    FR, CURVE_ORDER, G1, G2, Z1,
    ec_mul, ec_add, ec_neg, ec_eq, ec_pairing, ec_lincomb, normalize, is_g1_point,
    get_root_of_unity, get_roots_of_unity,
)
from zkp.marlin.polynomial import Polynomial, fft, ifft, divide_by_linear
from zkp.marlin.domain import EvaluationDomain, next_power_of_2
from zkp.marlin.transcript import Transcript
from zkp.marlin.srs import SRS
from zkp.marlin.kzg import (
    commit, commit_shifted, shifted_evaluation, create_witness,
    open_batch, verify_opening, batch_check,
)


@pytest.fixture(scope="module")
def srs():
    return SRS.generate(max_degree=16, seed=7)


# =====================================================================
# FR / EC
# =====================================================================

class TestFieldAndCurve:
    def test_modular_reduction(self):
        assert FR(CURVE_ORDER + 7) == FR(7)

    def test_division_inverse(self):
        a = FR(12345)
        assert a * (FR(1) / a) == FR(1)

    def test_inverse_of_zero_is_zero(self):
        # py_ecc 는 0 의 역원을 0 으로 돌려준다. 호출자가 먼저 검사해야 한다.
        assert FR(1) / FR(0) == FR(0)

    def test_ec_mul_reduces_scalar(self):
        assert ec_eq(ec_mul(G1, CURVE_ORDER + 3), ec_mul(G1, 3))

    def test_ec_add_neg_is_infinity(self):
        p = ec_mul(G1, 5)
        assert normalize(ec_add(p, ec_neg(p))) is None

    def test_lincomb_skips_zero(self):
        p = ec_mul(G1, 2)
        q = ec_mul(G1, 3)
        assert ec_eq(ec_lincomb([p, q], [FR(0), FR(4)]), ec_mul(G1, 12))

    def test_lincomb_empty_is_infinity(self):
        assert normalize(ec_lincomb([], [])) is None
        assert normalize(Z1) is None

    def test_is_g1_point(self):
        assert is_g1_point(ec_mul(G1, 9))
        assert is_g1_point(Z1)
        x, y, z = ec_mul(G1, 9)
        assert not is_g1_point((x, y + 1, z))
        assert not is_g1_point((x, y))
        assert not is_g1_point((1, 2, 1))
        assert not is_g1_point(G2)

    def test_pairing_bilinearity(self):
        assert ec_pairing(ec_mul(G2, 3), ec_mul(G1, 5)) == ec_pairing(G2, ec_mul(G1, 15))

    def test_root_of_unity_order(self):
        w = get_root_of_unity(8)
        assert w ** 8 == FR(1)
        assert w ** 4 != FR(1)

    def test_root_of_unity_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            get_root_of_unity(6)

    def test_roots_of_unity_distinct(self):
        roots = get_roots_of_unity(8)
        assert len({int(r) for r in roots}) == 8


# =====================================================================
# Polynomial
# =====================================================================

class TestPolynomial:
    def test_trim_and_degree(self):
        p = Polynomial([1, 2, 0, 0])
        assert p.degree == 1
        assert Polynomial([0, 0]).is_zero()

    def test_shift(self):
        p = Polynomial([1, 2])
        shifted = p.shift(3)
        assert shifted.coeffs == [FR(0), FR(0), FR(0), FR(1), FR(2)]
        x = FR(5)
        assert shifted.evaluate(x) == x ** 3 * p.evaluate(x)

    def test_shift_of_zero_is_zero(self):
        assert Polynomial.zero().shift(4).is_zero()

    def test_divide_by_vanishing(self):
        q = Polynomial([3, 0, 1])
        r = Polynomial([5, 7, 11])
        p = q * Polynomial.vanishing(4) + r
        quotient, remainder = p.divide_by_vanishing(4)
        assert quotient == q
        assert remainder == r

    def test_divide_by_vanishing_low_degree(self):
        p = Polynomial([1, 2, 3])
        quotient, remainder = p.divide_by_vanishing(4)
        assert quotient.is_zero()
        assert remainder == p

    def test_divide_by_linear(self):
        p = Polynomial([4, 0, 2, 1])
        z = FR(9)
        quotient, value = divide_by_linear(p, z)
        assert value == p.evaluate(z)
        x = FR(13)
        assert quotient.evaluate(x) * (x - z) == p.evaluate(x) - value

    def test_fft_roundtrip(self):
        omega = get_root_of_unity(8)
        coeffs = [FR(i * i + 1) for i in range(8)]
        assert ifft(fft(coeffs, omega), omega) == coeffs


# =====================================================================
# EvaluationDomain
# =====================================================================

class TestEvaluationDomain:
    def test_new_rounds_up(self):
        domain = EvaluationDomain.new(5)
        assert domain.size == 8
        assert domain.log_size == 3

    def test_new_minimum_size(self):
        assert EvaluationDomain.new(0).size == 1

    def test_new_too_large(self):
        assert EvaluationDomain.new((1 << 28) + 1) is None

    def test_next_power_of_2(self):
        assert [next_power_of_2(n) for n in (1, 2, 3, 9)] == [1, 2, 4, 16]

    def test_vanishing_on_elements(self):
        domain = EvaluationDomain(8)
        for h in domain.elements():
            assert domain.evaluate_vanishing_polynomial(h) == 0
        assert domain.evaluate_vanishing_polynomial(FR(3)) != 0

    def test_lagrange_kronecker(self):
        domain = EvaluationDomain(4)
        for i in range(4):
            for j in range(4):
                expected = FR(1) if i == j else FR(0)
                assert domain.evaluate_lagrange(i, domain.element(j)) == expected

    def test_evaluate_interpolation_matches_polynomial(self):
        domain = EvaluationDomain(4)
        evals = [FR(1), FR(35), FR(0), FR(9)]
        x = FR(123456789)
        assert domain.evaluate_interpolation(evals, x) == domain.interpolate(evals).evaluate(x)

    def test_kernel_polynomial_matches_eval_kernel(self):
        domain = EvaluationDomain(8)
        x = FR(17)
        y = FR(29)
        assert domain.kernel_polynomial(x).evaluate(y) == domain.eval_kernel(x, y)

    def test_eval_kernel_diagonal(self):
        domain = EvaluationDomain(8)
        x = FR(17)
        assert domain.eval_kernel(x, x) == domain.kernel_polynomial(x).evaluate(x)

    def test_fft_pads(self):
        domain = EvaluationDomain(4)
        p = Polynomial([1, 2])
        evals = domain.fft(p.coeffs)
        assert evals == [p.evaluate(h) for h in domain.elements()]

    def test_fft_rejects_too_many_coeffs(self):
        with pytest.raises(ValueError):
            EvaluationDomain(2).fft([FR(1), FR(2), FR(3)])


# =====================================================================
# Transcript
# =====================================================================

class TestTranscript:
    def test_deterministic(self):
        t1 = Transcript(b"test")
        t2 = Transcript(b"test")
        for t in (t1, t2):
            t.append_message(b"label", "batch")
            t.append_scalar(b"x", FR(42))
            t.append_point(b"p", ec_mul(G1, 3))
        assert t1.extract(3) == t2.extract(3)

    def test_different_history_differs(self):
        t1 = Transcript(b"test")
        t2 = Transcript(b"test")
        t1.append_scalar(b"x", FR(1))
        t2.append_scalar(b"x", FR(2))
        assert t1.extract(1) != t2.extract(1)

    def test_extract_zero_keeps_state(self):
        t1 = Transcript()
        t2 = Transcript()
        assert t1.extract(0) == []
        assert t1.extract(2) == t2.extract(2)

    def test_point_representation_independent(self):
        # 같은 점의 다른 야코비안 표현은 같은 챌린지를 낸다
        p = ec_mul(G1, 6)
        q = ec_add(ec_mul(G1, 2), ec_mul(G1, 4))
        t1 = Transcript()
        t2 = Transcript()
        t1.append_point(b"p", p)
        t2.append_point(b"p", q)
        assert t1.challenge_scalar(b"c") == t2.challenge_scalar(b"c")


# =====================================================================
# KZG
# =====================================================================

class TestKZG:
    def test_commit_opening(self, srs):
        p = Polynomial([3, 1, 4, 1, 5])
        z = FR(11)
        proof = create_witness(p, z, srs)
        assert verify_opening(commit(p, srs), proof, z, p.evaluate(z), srs)
        assert not verify_opening(commit(p, srs), proof, z, p.evaluate(z) + 1, srs)

    def test_commit_rejects_large_degree(self, srs):
        with pytest.raises(ValueError):
            commit(Polynomial([1] * 18), srs)

    def test_commit_shifted_rejects_degree_over_bound(self, srs):
        with pytest.raises(ValueError):
            commit_shifted(Polynomial([1, 2, 3, 4]), 2, srs)

    def test_shifted_opening(self, srs):
        p = Polynomial([2, 7, 1])
        bound = 4
        z = FR(5)
        shifted_comm = commit_shifted(p, bound, srs)
        shifted_poly = p.shift(srs.max_degree - bound)
        proof = create_witness(shifted_poly, z, srs)
        value = shifted_evaluation(p.evaluate(z), z, bound, srs)
        assert verify_opening(shifted_comm, proof, z, value, srs)

    def test_batch_check_two_points(self, srs):
        polys_a = [Polynomial([1, 2, 3]), Polynomial([4, 5])]
        polys_b = [Polynomial([6, 0, 0, 7])]
        xi = FR(99)
        u = FR(1234)
        za = FR(3)
        zb = FR(8)
        openings = [
            ([commit(p, srs) for p in polys_a], [p.evaluate(za) for p in polys_a],
             za, xi, open_batch(polys_a, za, xi, srs)),
            ([commit(p, srs) for p in polys_b], [p.evaluate(zb) for p in polys_b],
             zb, xi, open_batch(polys_b, zb, xi, srs)),
        ]
        assert batch_check(openings, u, srs)

        bad = list(openings)
        comms, values, point, challenge, witness = bad[1]
        bad[1] = (comms, [values[0] + 1], point, challenge, witness)
        assert not batch_check(bad, u, srs)
