"""
평가 도메인 (Evaluation Domain)
================================

곱셈 부분군 H = {1, ω, ω², ..., ω^(n-1)} 과 그 위의 연산을 묶는다.

  ┌──────────────────────────────────────────────────────┐
  │  EvaluationDomain.new(요청 크기)                      │
  │    → 크기 = next_power_of_2(요청 크기)                │
  │    → 크기 > 2^28 이면 None (필드가 지원하지 않음)      │
  └──────────────────────────────────────────────────────┘

Marlin 에서 쓰는 다섯 개의 도메인:
  - H   (constraint domain): 제약/변수 인덱스
  - K_A, K_B, K_C (non-zero domains): 행렬의 0 아닌 원소 인덱스
  - H_x (input domain): 공개 입력. H 의 부분군이다.

**소거 다항식**: v_H(x) = x^n - 1, H 위의 모든 점에서 0.
**라그랑주 커널**: r(x, y) = (x^n - y^n) / (x - y).
"""

from zkp.marlin.field import FR, TWO_ADICITY, get_root_of_unity
from zkp.marlin.polynomial import Polynomial, fft, ifft


def next_power_of_2(n):
    """n 이상인 가장 작은 2의 거듭제곱."""
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p


class EvaluationDomain:
    """크기 n 의 곱셈 부분군.

    속성:
        size: 도메인 크기 n (2의 거듭제곱)
        log_size: log₂ n
        group_gen: 생성자 ω
    """

    def __init__(self, size):
        self.size = size
        self.log_size = size.bit_length() - 1
        self.group_gen = get_root_of_unity(size)
        self.size_inv = FR(1) / FR(size)
        self._elements = None

    @classmethod
    def new(cls, num_coeffs):
        """num_coeffs 개의 계수를 담을 수 있는 도메인을 만든다.

        Returns:
            EvaluationDomain 또는 None (2-adicity 를 초과하는 경우)
        """
        size = next_power_of_2(max(num_coeffs, 1))
        if size.bit_length() - 1 > TWO_ADICITY:
            return None
        return cls(size)

    def __eq__(self, other):
        return isinstance(other, EvaluationDomain) and self.size == other.size

    def __hash__(self):
        return hash(self.size)

    def __repr__(self):
        return f"EvaluationDomain(size={self.size})"

    def element(self, i):
        """ω^i."""
        return self.group_gen ** (i % self.size)

    def elements(self):
        """[1, ω, ..., ω^(n-1)] (캐시된다)."""
        if self._elements is None:
            elems = []
            current = FR(1)
            for _ in range(self.size):
                elems.append(current)
                current = current * self.group_gen
            self._elements = elems
        return list(self._elements)

    def evaluate_vanishing_polynomial(self, x):
        """v_H(x) = x^n - 1."""
        return FR(x) ** self.size - FR(1)

    def fft(self, coeffs):
        """계수 → H 위의 평가값 (길이가 모자라면 0 으로 채운다)."""
        coeffs = list(coeffs)
        if len(coeffs) > self.size:
            raise ValueError(f"계수 {len(coeffs)}개는 도메인 크기 {self.size}를 넘습니다")
        coeffs += [FR(0)] * (self.size - len(coeffs))
        return fft(coeffs, self.group_gen)

    def ifft(self, evals):
        """H 위의 평가값 → 계수."""
        evals = list(evals)
        if len(evals) != self.size:
            raise ValueError(f"평가값 {len(evals)}개가 도메인 크기 {self.size}와 다릅니다")
        return ifft(evals, self.group_gen)

    def interpolate(self, evals):
        return Polynomial(self.ifft(evals))

    def evaluate_lagrange(self, i, x):
        """L_i(x) = (ω^i / n) · v_H(x) / (x - ω^i).

        x 가 도메인 원소이면 크로네커 델타를 돌려준다.
        """
        x = FR(x)
        w_i = self.element(i)
        if x == w_i:
            return FR(1)
        z = self.evaluate_vanishing_polynomial(x)
        if z == 0:
            return FR(0)
        return w_i * self.size_inv * z / (x - w_i)

    def evaluate_interpolation(self, evals, x):
        """Σ evals[i] · L_i(x). 공개 입력 다항식 x̂(β) 계산에 사용한다."""
        total = FR(0)
        for i, v in enumerate(evals):
            if v == 0:
                continue
            total = total + FR(v) * self.evaluate_lagrange(i, x)
        return total

    def eval_kernel(self, x, y):
        """r(x, y) = (x^n - y^n) / (x - y), x = y 이면 n·x^(n-1)."""
        x = FR(x)
        y = FR(y)
        if x == y:
            return FR(self.size) * x ** (self.size - 1)
        return (x ** self.size - y ** self.size) / (x - y)

    def kernel_polynomial(self, x):
        """r(x, Y) 를 Y 에 대한 다항식으로: Σ_{k<n} x^(n-1-k) · Y^k."""
        x = FR(x)
        coeffs = [FR(0)] * self.size
        power = FR(1)
        for k in range(self.size - 1, -1, -1):
            coeffs[k] = power
            power = power * x
        return Polynomial(coeffs)
