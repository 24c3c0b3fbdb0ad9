"""
Marlin 기반 모듈: 다항식(Polynomial) 클래스 및 FFT
===================================================

이 모듈은 Marlin 증명자/검증자에서 사용되는 모든 다항식 연산을 제공한다.

**Polynomial 클래스**:
  계수(coefficient) 표현 기반 다항식. p(x) = c₀ + c₁·x + c₂·x² + ...
  산술 연산자(+, -, *, 스칼라곱)와 평가(evaluation)를 지원한다.

**FFT/IFFT (Number Theoretic Transform)**:
  유한체 위의 다항식을 평가 표현 ↔ 계수 표현으로 변환.
  재귀적 Cooley-Tukey radix-2 알고리즘을 사용한다.

**나눗셈**:
  - Polynomial.divide_by_vanishing: x^n - 1 로 나누기 (희소 제수, O(deg))
    Marlin 의 rowcheck, 합검사(sumcheck)에서 몫/나머지 분리에 쓰인다.

사용 예시:
    >>> from zkp.marlin.polynomial import Polynomial, fft, ifft
    >>> p = Polynomial([FR(1), FR(2), FR(3)])  # 1 + 2x + 3x²
    >>> p.evaluate(FR(2))  # 1 + 4 + 12 = FR(17)
"""

from zkp.marlin.field import FR


# ─────────────────────────────────────────────────────────────────────
# Polynomial 클래스
# ─────────────────────────────────────────────────────────────────────

class Polynomial:
    """유한체 FR 위의 다항식.

    계수 리스트로 표현: coeffs = [c₀, c₁, c₂, ...] → c₀ + c₁x + c₂x² + ...

    Marlin 에서의 역할:
    - 증인 다항식 ŵ(x), ẑ_A(x), ẑ_B(x), ẑ_C(x)
    - 인덱스 다항식 row(x), col(x), val(x)
    - 합검사 다항식 g(x), h(x)
    """

    def __init__(self, coeffs=None):
        if coeffs is None:
            self.coeffs = [FR(0)]
        else:
            self.coeffs = [c if isinstance(c, FR) else FR(c) for c in coeffs]
            if not self.coeffs:
                self.coeffs = [FR(0)]
        self._trim()

    def _trim(self):
        """최고차 계수가 0인 항을 제거하여 정규화한다."""
        while len(self.coeffs) > 1 and self.coeffs[-1] == 0:
            self.coeffs.pop()

    @property
    def degree(self):
        """다항식의 차수. 영 다항식의 차수는 0으로 정의한다."""
        return len(self.coeffs) - 1

    def is_zero(self):
        """영 다항식인지 확인."""
        return len(self.coeffs) == 1 and self.coeffs[0] == 0

    def evaluate(self, point):
        """다항식을 주어진 점에서 평가한다 (Horner's method)."""
        if not isinstance(point, FR):
            point = FR(point)
        result = FR(0)
        for coeff in reversed(self.coeffs):
            result = result * point + coeff
        return result

    def __add__(self, other):
        """다항식 덧셈: p(x) + q(x)."""
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        max_len = max(len(self.coeffs), len(other.coeffs))
        result = []
        for i in range(max_len):
            a = self.coeffs[i] if i < len(self.coeffs) else FR(0)
            b = other.coeffs[i] if i < len(other.coeffs) else FR(0)
            result.append(a + b)
        return Polynomial(result)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        """다항식 뺄셈: p(x) - q(x)."""
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return self + (-other)

    def __rsub__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return other.__sub__(self)

    def __neg__(self):
        return Polynomial([-c for c in self.coeffs])

    def __mul__(self, other):
        """다항식 곱셈 또는 스칼라곱.

        다항식 × 다항식: O(n²) 나이브 곱셈
        """
        if isinstance(other, (int, FR)):
            if isinstance(other, int):
                other = FR(other)
            return Polynomial([c * other for c in self.coeffs])
        if self.is_zero() or other.is_zero():
            return Polynomial.zero()
        result = [FR(0)] * (len(self.coeffs) + len(other.coeffs) - 1)
        for i, a in enumerate(self.coeffs):
            if a == 0:
                continue
            for j, b in enumerate(other.coeffs):
                result[i + j] = result[i + j] + a * b
        return Polynomial(result)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __eq__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        if not isinstance(other, Polynomial):
            return False
        return self.coeffs == other.coeffs

    def __repr__(self):
        terms = []
        for i, c in enumerate(self.coeffs):
            if c == 0:
                continue
            if i == 0:
                terms.append(str(int(c)))
            elif i == 1:
                terms.append(f"{int(c)}*x")
            else:
                terms.append(f"{int(c)}*x^{i}")
        return "Poly(" + " + ".join(terms) + ")" if terms else "Poly(0)"

    def __len__(self):
        return len(self.coeffs)

    def shift(self, k):
        """x^k · p(x). 차수 제한 커밋먼트(degree bound)에 사용한다."""
        if self.is_zero():
            return Polynomial.zero()
        return Polynomial([FR(0)] * k + list(self.coeffs))

    def divide_by_vanishing(self, n):
        """소거 다항식 x^n - 1 로 나눈다.

        x^n ≡ 1 (mod x^n - 1) 이므로 k ≥ n 인 계수 c_k 를
        몫의 k-n 자리에 더하고, 같은 값을 k-n 자리로 내려보낸다.

        Args:
            n: 도메인 크기

        Returns:
            tuple: (몫 Polynomial, 나머지 Polynomial)
        """
        rem = list(self.coeffs)
        if len(rem) <= n:
            return Polynomial.zero(), Polynomial(rem)
        quotient = [FR(0)] * (len(rem) - n)
        for k in range(len(rem) - 1, n - 1, -1):
            c = rem[k]
            if c == 0:
                continue
            quotient[k - n] = quotient[k - n] + c
            rem[k - n] = rem[k - n] + c
            rem[k] = FR(0)
        return Polynomial(quotient), Polynomial(rem[:n])

    @classmethod
    def zero(cls):
        return cls([FR(0)])

    @classmethod
    def one(cls):
        return cls([FR(1)])

    @classmethod
    def x(cls):
        """항등 다항식 p(x) = x."""
        return cls([FR(0), FR(1)])

    @classmethod
    def vanishing(cls, n):
        """소거 다항식 Z_H(x) = x^n - 1."""
        coeffs = [FR(0)] * (n + 1)
        coeffs[0] = FR(-1)
        coeffs[n] = FR(1)
        return cls(coeffs)


# ─────────────────────────────────────────────────────────────────────
# FFT / IFFT (Number Theoretic Transform)
# ─────────────────────────────────────────────────────────────────────

def fft(coeffs, omega):
    """Fast Fourier Transform (NTT): 계수 → 평가값.

    입력 길이는 2의 거듭제곱이어야 한다.

    Args:
        coeffs: [c₀, c₁, ..., c_{n-1}] FR 원소 리스트
        omega: n차 원시 단위근

    Returns:
        list[FR]: [p(1), p(ω), ..., p(ω^{n-1})]
    """
    n = len(coeffs)
    if n == 1:
        return [coeffs[0] if isinstance(coeffs[0], FR) else FR(coeffs[0])]

    omega_sq = omega * omega
    even_vals = fft(coeffs[0::2], omega_sq)
    odd_vals = fft(coeffs[1::2], omega_sq)

    # 버터플라이 결합
    result = [FR(0)] * n
    omega_k = FR(1)
    half = n // 2
    for k in range(half):
        t = omega_k * odd_vals[k]
        result[k] = even_vals[k] + t
        result[k + half] = even_vals[k] - t
        omega_k = omega_k * omega
    return result


def ifft(evals, omega):
    """Inverse FFT (INTT): 평가값 → 계수.

    역 단위근 ω^{-1}로 FFT를 수행한 후 n으로 나눈다.
    """
    n = len(evals)
    coeffs = fft(evals, FR(1) / omega)
    n_inv = FR(1) / FR(n)
    return [c * n_inv for c in coeffs]


# ─────────────────────────────────────────────────────────────────────
# 다항식 나눗셈 (Polynomial Division)
# ─────────────────────────────────────────────────────────────────────

def divide_by_linear(poly, point):
    """(p(x) - p(z)) / (x - z) 를 합성 나눗셈(synthetic division)으로 계산한다.

    KZG 열기 증명의 몫 다항식에 사용한다.

    Returns:
        tuple: (몫 Polynomial, p(z))
    """
    coeffs = poly.coeffs
    n = len(coeffs)
    if n == 1:
        return Polynomial.zero(), coeffs[0]
    quotient = [FR(0)] * (n - 1)
    acc = FR(0)
    for i in range(n - 1, 0, -1):
        acc = acc * point + coeffs[i]
        quotient[i - 1] = acc
    value = acc * point + coeffs[0]
    return Polynomial(quotient), value
