"""
Marlin 기반 모듈: 유한체(Finite Field) 및 타원곡선 연산
========================================================

이 모듈은 Marlin AHP, KZG 커밋먼트, 원장(ledger) 회로 전체에서 사용되는
기본 대수적 도구를 정의한다.

**유한체 FR**:
  bn128 타원곡선의 스칼라 필드 (scalar field).
  - 위수(order) p ≈ 2^254, 소수체(prime field)
  - p - 1 = 2^28 × m (m은 홀수) → 최대 2^28차 단위근까지 지원
  - TWO_ADICITY = 28 을 넘는 도메인은 만들 수 없다 (DomainTooLarge)

**타원곡선 연산**:
  py_ecc.optimized_bn128 의 야코비안(Jacobian) 좌표 연산을 사용한다.
  점은 (X, Y, Z) 3-튜플이고, 무한원점은 Z = 0 인 점이다.
  커밋먼트가 수십 개씩 만들어지므로 아핀 좌표 구현보다 훨씬 빠르다.

사용 예시:
    >>> from zkp.marlin.field import FR, G1, ec_mul
    >>> a = FR(3)
    >>> P = ec_mul(G1, a * FR(7))  # 21·G1
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import optimized_bn128 as bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 연산을 제공한다.
    FR.one(), FR.zero() 는 상속받은 클래스 메서드이다.

    주의:
        py_ecc 의 역원 계산은 0의 역원을 0으로 돌려준다.
        0으로 나눌 가능성이 있는 곳에서는 호출자가 먼저 검사해야 한다.
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기)
CURVE_ORDER = bn128.curve_order

# p - 1 을 나누는 2의 최대 거듭제곱 지수
TWO_ADICITY = 28

# FR* 의 생성자 (단위근 유도용)
MULTIPLICATIVE_GENERATOR = 5


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

# G1, G2 생성자 (야코비안 좌표)
G1 = bn128.G1
G2 = bn128.G2

# G1 항등원 (무한원점)
Z1 = bn128.Z1


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point.

    Args:
        point: G1 또는 G2 위의 점
        scalar: 정수 또는 FR 원소

    Returns:
        scalar · point (같은 그룹의 점)
    """
    return bn128.multiply(point, int(scalar) % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return bn128.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원: -point."""
    return bn128.neg(point)


def is_g1_point(point):
    """G1 위의 야코비안 점인지 확인한다 (형식 + 곡선 방정식).

    bn128 G1 은 보조인자(cofactor)가 1 이므로 곡선 위의 점이면 곧 G1 원소이다.
    증명처럼 외부에서 들어온 점은 페어링 전에 이 검사를 거쳐야 한다.
    """
    if not isinstance(point, tuple) or len(point) != 3:
        return False
    if not all(isinstance(c, bn128.FQ) for c in point):
        return False
    return bn128.is_on_curve(point, bn128.b)


def ec_eq(p1, p2):
    """두 점이 같은 점인지 비교한다 (야코비안 좌표는 표현이 유일하지 않다)."""
    return bn128.eq(p1, p2)


def is_infinity(point):
    """무한원점 여부."""
    return point[2] == 0


def normalize(point):
    """야코비안 점을 아핀 좌표 (x, y) 정수 쌍으로 변환한다.

    무한원점은 None 을 돌려준다. 트랜스크립트 직렬화와 저장에 사용한다.
    """
    if is_infinity(point):
        return None
    x, y = bn128.normalize(point)
    return int(x), int(y)


def ec_lincomb(points, scalars):
    """Σ scalarᵢ · pointᵢ 를 계산한다 (0 스칼라는 건너뛴다)."""
    result = Z1
    for point, scalar in zip(points, scalars):
        s = int(scalar) % CURVE_ORDER
        if s == 0 or is_infinity(point):
            continue
        result = ec_add(result, bn128.multiply(point, s))
    return result


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    주의:
        py_ecc 페어링의 인자 순서는 (G2, G1)이다.
    """
    return bn128.pairing(g2_point, g1_point)


# ─────────────────────────────────────────────────────────────────────
# 단위근 (Roots of Unity)
# ─────────────────────────────────────────────────────────────────────

def get_root_of_unity(n):
    """n차 원시 단위근(primitive n-th root of unity) ω를 반환한다.

    ω = g^((p-1)/n), g = FR(5).

    Args:
        n: 단위근의 차수 (2의 거듭제곱, ≤ 2^28)

    Raises:
        ValueError: n이 2의 거듭제곱이 아니거나 2^28을 초과할 때
    """
    if n < 1 or (n & (n - 1)) != 0:
        raise ValueError(f"n은 2의 거듭제곱이어야 합니다: {n}")
    if n > (1 << TWO_ADICITY):
        raise ValueError(f"n은 2^{TWO_ADICITY} 이하여야 합니다: {n}")
    if n == 1:
        return FR(1)
    return FR(MULTIPLICATIVE_GENERATOR) ** ((CURVE_ORDER - 1) // n)


def get_roots_of_unity(n):
    """[1, ω, ω², ..., ω^(n-1)] 을 반환한다."""
    omega = get_root_of_unity(n)
    roots = []
    current = FR(1)
    for _ in range(n):
        roots.append(current)
        current = current * omega
    return roots
