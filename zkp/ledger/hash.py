"""
대수적 해시 (Algebraic Hash)
=============================

회로 안에서 싸게 계산할 수 있는 2-입력 해시.

  x₀ = l
  xₖ = (xₖ₋₁ + r + cₖ)^5        (k = 1, 2)
  H(l, r) = x₂ + l

x ↦ x^5 는 bn128 스칼라 필드에서 전단사이다 (gcd(5, p-1) = 1).
라운드마다 제약 3개 (t², t⁴, t⁴·t) 로 표현된다 (zkp.ledger.circuits).

교육용 구성이며 실제 Poseidon 같은 해시의 안전성을 주장하지 않는다.

사용 예시:
    >>> from zkp.ledger.hash import hash_two, record_commitment
    >>> cm = record_commitment(owner, amount, nonce)
    >>> sn = serial_number(cm, gamma)
"""

import hashlib

from zkp.marlin.field import FR, CURVE_ORDER


def _round_constant(i):
    digest = hashlib.sha256(f"zkp.ledger.hash/round/{i}".encode()).digest()
    return FR(int.from_bytes(digest, "big") % CURVE_ORDER)


ROUND_CONSTANTS = [_round_constant(i) for i in range(2)]

# 빈 머클 잎
EMPTY_LEAF = FR(0)


def hash_two(left, right):
    """H(l, r)."""
    left = FR(left)
    right = FR(right)
    x = left
    for c in ROUND_CONSTANTS:
        x = (x + right + c) ** 5
    return x + left


def record_commitment(owner, amount, nonce):
    """cm = H(H(owner, amount), nonce)."""
    return hash_two(hash_two(owner, amount), nonce)


def serial_number(commitment, gamma):
    """sn = H(cm, γ). γ 는 소비자만 아는 비밀이다."""
    return hash_two(commitment, gamma)
