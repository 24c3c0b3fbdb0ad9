"""
원장 가젯 (Ledger gadgets)
===========================

zkp.ledger.hash 의 계산을 R1CS 로 옮긴 가젯과, 그것으로 만든
상태 경로(inclusion) 회로.

**해시 가젯** (라운드당 제약 3개):

  t   = x + r + c          (선형, 제약 없음)
  s₂  = t · t
  s₄  = s₂ · s₂
  x'  = s₄ · t             마지막 라운드는  s₄ · t = out - l

**머클 한 단계** (dir ∈ {0, 1}, 1 이면 현재 노드가 오른쪽 자식):

  dir · dir = dir
  d = dir · (sib - cur)
  (l, r) = (cur + d, sib - d)    dir = 0 → (cur, sib), dir = 1 → (sib, cur)
  cur' = H(l, r)

**Inclusion 회로** (깊이 D 고정):

  공개:   [1, root, sn]
  비공개: cm, γ, 형제 노드 D 개, 방향 비트 D 개
  제약:   merkle_root(cm, path) = root
          H(cm, γ) = sn

제약 구조는 값과 무관하므로 더미 값으로 한 번 합성해 키를 만들고,
증명할 때 실제 값으로 다시 합성한다.
"""

from zkp.ledger.hash import EMPTY_LEAF, ROUND_CONSTANTS
from zkp.marlin.indexer import Circuit
from zkp.marlin.r1cs import ConstraintSystem


def hash_two_gadget(cs, left, right):
    """H(left, right) 를 계산하는 변수를 돌려준다."""
    x = left
    last = len(ROUND_CONSTANTS) - 1
    for k, c in enumerate(ROUND_CONSTANTS):
        t = x + right + c
        t2 = cs.mul(t, t)
        t4 = cs.mul(t2, t2)
        if k == last:
            out = cs.alloc(cs.value(t4) * cs.value(t) + cs.value(left))
            cs.enforce(t4, t, out - left)
            return out
        x = cs.mul(t4, t)


def record_commitment_gadget(cs, owner, amount, nonce):
    """cm = H(H(owner, amount), nonce)."""
    return hash_two_gadget(cs, hash_two_gadget(cs, owner, amount), nonce)


def merkle_root_gadget(cs, leaf, siblings, directions):
    """잎에서 루트까지 올라가며 계산한 루트 변수를 돌려준다."""
    cur = leaf
    for sibling_value, direction in zip(siblings, directions):
        sibling = cs.alloc(sibling_value)
        bit = cs.alloc(direction)
        cs.enforce_boolean(bit)
        d = cs.mul(bit, sibling - cur)
        cur = hash_two_gadget(cs, cur + d, sibling - d)
    return cur


def synthesize_inclusion(cs, root, serial_number, commitment, gamma, siblings, directions):
    """Inclusion 회로를 cs 에 합성한다."""
    root_var = cs.alloc_input(root)
    sn_var = cs.alloc_input(serial_number)
    cm = cs.alloc(commitment)
    gamma_var = cs.alloc(gamma)

    # ── 1. 멤버십 ──
    computed_root = merkle_root_gadget(cs, cm, siblings, directions)
    cs.enforce_equal(computed_root, root_var)

    # ── 2. 일련번호 ──
    computed_sn = hash_two_gadget(cs, cm, gamma_var)
    cs.enforce_equal(computed_sn, sn_var)
    return cs


def inclusion_circuit(depth):
    """깊이 depth 의 Inclusion 회로 (키 생성용, 더미 값)."""
    cs = ConstraintSystem()
    synthesize_inclusion(
        cs, EMPTY_LEAF, EMPTY_LEAF, EMPTY_LEAF, EMPTY_LEAF,
        [EMPTY_LEAF] * depth, [0] * depth,
    )
    return Circuit.from_constraint_system(cs)
