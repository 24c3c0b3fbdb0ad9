"""
Marlin AHP 검증자 상태 기계 (Verifier State Machine)
=====================================================

증명자와 검증자가 똑같이 실행하는 결정론적 챌린지 유도 절차이다.
여러 회로, 회로마다 여러 인스턴스를 한 번에 묶어(batch) 처리한다.

  ┌──────────────────────────────────────────────────────────────┐
  │  Init                                                         │
  │   │ first_round:  α, η_B, η_C  + 회로별 배치 결합자            │
  │   ▼                                                           │
  │  R1                                                           │
  │   │ second_round: β                                           │
  │   ▼                                                           │
  │  R2                                                           │
  │   │ third_round:  r_B, r_C                                    │
  │   ▼                                                           │
  │  R3                                                           │
  │   │ fourth_round: γ                                           │
  │   ▼                                                           │
  │  R4 ── query_set ──▶ (다항식 레이블, 평가점) 목록 (종료)        │
  └──────────────────────────────────────────────────────────────┘

**배치 결합자 (batch combiners)**:
  회로는 내용 해시 ID 순서(정규 순서)로 순회한다.
  - 인스턴스 결합자: 첫 번째는 항상 1, 나머지 (인스턴스 수 - 1) 개는 추출
  - 회로 결합자: 정규 순서의 첫 회로는 1 (추출 비용 없음),
    그 뒤의 회로는 하나씩 추출

**결정론 계약**:
  같은 기술자, 같은 배치 구성, 같은 흡수 이력이면 모든 라운드가 같은
  챌린지를 낸다. 추출 횟수나 순서가 한 번이라도 어긋나면 트랜스크립트가
  갈라져 올바른 증명도 검증되지 않는다.

**상태**:
  VerifierState 는 불변이다. 각 라운드는 필드 하나를 채운 새 상태를
  돌려준다. 이미 채워진 필드를 다시 채우거나 라운드를 건너뛰면
  RoundOrderError.

**퇴화 챌린지**:
  α 또는 β 가 제약 도메인 위의 점이면 (v_H(x) = 0) 이후 다항식 항등식이
  퇴화한다. 프로세스를 중단하지 않고 ChallengeDegenerate 를 던진다.
"""

import logging
from collections import namedtuple

from zkp.marlin.domain import EvaluationDomain
from zkp.marlin.errors import (
    ChallengeDegenerate,
    DomainTooLarge,
    InvalidBatch,
    InvalidCombiners,
    NonSquareMatrix,
    RoundOrderError,
)
from zkp.marlin.field import FR

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# 메시지와 상태
# ─────────────────────────────────────────────────────────────────────

BatchCombiners = namedtuple("BatchCombiners", ["circuit_combiner", "instance_combiners"])

FirstMessage = namedtuple("FirstMessage", ["alpha", "eta_b", "eta_c", "batch_combiners"])
FirstMessage.__doc__ = """α, η_B, η_C 와 회로 ID → BatchCombiners (정규 순서)."""

SecondMessage = namedtuple("SecondMessage", ["beta"])

ThirdMessage = namedtuple("ThirdMessage", ["r_b", "r_c"])

CircuitDomains = namedtuple("CircuitDomains", [
    "constraint_domain",
    "non_zero_a_domain",
    "non_zero_b_domain",
    "non_zero_c_domain",
    "input_domain",
])


class VerifierState(namedtuple("VerifierState", [
    "batch_sizes",
    "domains",
    "circuit_domains",
    "first_round_message",
    "second_round_message",
    "third_round_message",
    "gamma",
])):
    """AHP 세션 상태 (불변 스냅샷).

    속성:
        batch_sizes: ((회로, 인스턴스 수), ...) 정규 순서, round 1 이후 고정
        domains: 기술자에서 만든 CircuitDomains
        circuit_domains: 회로 ID → CircuitDomains
        first/second/third_round_message: 해당 라운드 전에는 None
        gamma: round 4 전에는 None
    """

    __slots__ = ()

    @property
    def constraint_domain(self):
        return self.domains.constraint_domain

    @property
    def non_zero_a_domain(self):
        return self.domains.non_zero_a_domain

    @property
    def non_zero_b_domain(self):
        return self.domains.non_zero_b_domain

    @property
    def non_zero_c_domain(self):
        return self.domains.non_zero_c_domain

    @property
    def input_domain(self):
        return self.domains.input_domain

    def circuits(self):
        return [circuit for circuit, _ in self.batch_sizes]

    def instances(self, circuit_id):
        for circuit, count in self.batch_sizes:
            if circuit.id == circuit_id:
                return count
        raise KeyError(circuit_id)

    def _advance(self, previous, field_name, value):
        if previous is not None and getattr(self, previous) is None:
            raise RoundOrderError(ctx={"missing": previous, "setting": field_name})
        if getattr(self, field_name) is not None:
            raise RoundOrderError(f"{field_name} is already set", ctx={"setting": field_name})
        return self._replace(**{field_name: value})


class QuerySet(namedtuple("QuerySet", ["entries", "points"])):
    """entries: ((다항식 레이블, 평가점 이름), ...), points: 이름 → FR."""

    __slots__ = ()

    def at(self, point_name):
        return [label for label, name in self.entries if name == point_name]


# ─────────────────────────────────────────────────────────────────────
# 다항식 레이블
# ─────────────────────────────────────────────────────────────────────

def witness_label(circuit_id, name, instance):
    """인스턴스 증인 다항식: w, z_a, z_b, z_c."""
    return f"{circuit_id}/{name}/{instance}"


def circuit_label(circuit_id, name):
    """회로 단위 다항식: h_0, g_1, h_1."""
    return f"{circuit_id}/{name}"


def matrix_label(circuit_id, matrix, name):
    """행렬 단위 다항식: row, col, val, g, h."""
    return f"{circuit_id}/{matrix}/{name}"


WITNESS_POLYS = ("w", "z_a", "z_b", "z_c")
OUTER_POLYS = ("h_0", "g_1", "h_1")
INNER_POLYS = ("row", "col", "val", "g", "h")


# ─────────────────────────────────────────────────────────────────────
# 도메인 구성
# ─────────────────────────────────────────────────────────────────────

def build_domains(info, domain_cls=EvaluationDomain):
    """기술자 하나에서 다섯 도메인을 만든다.

    Raises:
        DomainTooLarge: 어느 하나라도 필드가 지원하는 크기를 넘을 때
    """
    requests = (
        ("constraint_domain", info.num_constraints),
        ("non_zero_a_domain", info.num_non_zero_a),
        ("non_zero_b_domain", info.num_non_zero_b),
        ("non_zero_c_domain", info.num_non_zero_c),
        ("input_domain", info.num_public_inputs),
    )
    built = {}
    for name, size in requests:
        domain = domain_cls.new(size)
        if domain is None:
            raise DomainTooLarge(ctx={"domain": name, "requested": size})
        built[name] = domain
    return CircuitDomains(**built)


def _check_square(info, circuit_id=None):
    if not info.is_square():
        ctx = {"constraints": info.num_constraints, "variables": info.num_variables}
        if circuit_id is not None:
            ctx["circuit"] = circuit_id
        raise NonSquareMatrix(ctx=ctx)


def _check_not_in_domain(challenge, name, state):
    domains = [state.constraint_domain] + [d.constraint_domain for d in state.circuit_domains.values()]
    for domain in domains:
        if domain.evaluate_vanishing_polynomial(challenge) == 0:
            raise ChallengeDegenerate(ctx={"challenge": name, "domain_size": domain.size})


def canonical_order(batch_sizes):
    """(회로, 인스턴스 수) 를 회로 ID 순으로 정렬한다.

    Raises:
        InvalidBatch: 빈 배치, 인스턴스 0개, 중복 ID
    """
    items = list(batch_sizes.items()) if hasattr(batch_sizes, "items") else list(batch_sizes)
    if not items:
        raise InvalidBatch("batch is empty")
    seen = set()
    for circuit, count in items:
        if count < 1:
            raise InvalidBatch(ctx={"circuit": circuit.id, "instances": count})
        if circuit.id in seen:
            raise InvalidBatch("circuit appears twice in batch", ctx={"circuit": circuit.id})
        seen.add(circuit.id)
    return tuple(sorted(items, key=lambda item: item[0].id))


# ─────────────────────────────────────────────────────────────────────
# 라운드
# ─────────────────────────────────────────────────────────────────────

def first_round(index_info, batch_sizes, transcript, field=FR, domain_cls=EvaluationDomain):
    """Round 1: α, η_B, η_C 와 배치 결합자를 추출한다.

    Args:
        index_info: 배치 전체를 덮는 CircuitInfo
        batch_sizes: 회로 → 인스턴스 수 (회로는 id 와 index_info 를 가진다)
        transcript: extract(n) 를 제공하는 트랜스크립트
        field: one() 을 제공하는 필드 클래스
        domain_cls: new(size) 로 도메인을 만드는 클래스

    Returns:
        tuple: (FirstMessage, VerifierState)
    """
    # ── 1. 구조 검사 (무작위성을 쓰기 전에) ──
    _check_square(index_info)
    ordered = canonical_order(batch_sizes)
    for circuit, _ in ordered:
        _check_square(circuit.index_info, circuit.id)

    # ── 2. 도메인 ──
    domains = build_domains(index_info, domain_cls)
    circuit_domains = {
        circuit.id: build_domains(circuit.index_info, domain_cls) for circuit, _ in ordered
    }

    # ── 3. α, η_B, η_C ──
    alpha, eta_b, eta_c = transcript.extract(3)

    # ── 4. 배치 결합자 ──
    batch_combiners = {}
    circuit_combiners_needed = 0
    for circuit, count in ordered:
        combiners = transcript.extract(count - 1 + circuit_combiners_needed)
        instance_tail, circuit_combiner = combiners[:count - 1], combiners[count - 1:]
        if len(circuit_combiner) > 1:
            raise InvalidCombiners(ctx={"circuit": circuit.id, "extracted": len(circuit_combiner)})
        batch_combiners[circuit.id] = BatchCombiners(
            circuit_combiner=circuit_combiner[0] if circuit_combiner else field.one(),
            instance_combiners=[field.one()] + list(instance_tail),
        )
        circuit_combiners_needed = 1

    message = FirstMessage(alpha, eta_b, eta_c, batch_combiners)
    state = VerifierState(
        batch_sizes=ordered,
        domains=domains,
        circuit_domains=circuit_domains,
        first_round_message=None,
        second_round_message=None,
        third_round_message=None,
        gamma=None,
    )
    _check_not_in_domain(alpha, "alpha", state)
    state = state._advance(None, "first_round_message", message)
    logger.debug("AHP round 1: %d circuit(s), %d instance(s)",
                 len(ordered), sum(count for _, count in ordered))
    return message, state


def second_round(state, transcript):
    """Round 2: β 를 추출한다."""
    if state.first_round_message is None:
        raise RoundOrderError(ctx={"missing": "first_round_message", "setting": "second_round_message"})
    (beta,) = transcript.extract(1)
    _check_not_in_domain(beta, "beta", state)
    message = SecondMessage(beta)
    state = state._advance("first_round_message", "second_round_message", message)
    logger.debug("AHP round 2 complete")
    return message, state


def third_round(state, transcript):
    """Round 3: r_B, r_C 를 추출한다."""
    if state.second_round_message is None:
        raise RoundOrderError(ctx={"missing": "second_round_message", "setting": "third_round_message"})
    r_b, r_c = transcript.extract(2)
    message = ThirdMessage(r_b, r_c)
    state = state._advance("second_round_message", "third_round_message", message)
    logger.debug("AHP round 3 complete")
    return message, state


def fourth_round(state, transcript):
    """Round 4: γ 를 추출한다. 증명자에게 보내는 메시지는 없다."""
    if state.third_round_message is None:
        raise RoundOrderError(ctx={"missing": "third_round_message", "setting": "gamma"})
    (gamma,) = transcript.extract(1)
    state = state._advance("third_round_message", "gamma", gamma)
    logger.debug("AHP round 4 complete")
    return state


def query_set(state):
    """완료된 상태에서 열어야 할 (다항식, 평가점) 목록을 만든다.

    트랜스크립트를 쓰지 않는 순수 함수이다.

    β 에서: 인스턴스마다 w, z_a, z_b, z_c / 회로마다 h_0, g_1, h_1
    γ 에서: 회로·행렬마다 row, col, val, g, h
    """
    if state.gamma is None:
        raise RoundOrderError(ctx={"missing": "gamma", "setting": "query_set"})

    entries = []
    for circuit, count in state.batch_sizes:
        for i in range(count):
            for name in WITNESS_POLYS:
                entries.append((witness_label(circuit.id, name, i), "beta"))
        for name in OUTER_POLYS:
            entries.append((circuit_label(circuit.id, name), "beta"))
    for circuit, _ in state.batch_sizes:
        for matrix in ("a", "b", "c"):
            for name in INNER_POLYS:
                entries.append((matrix_label(circuit.id, matrix, name), "gamma"))

    points = {"beta": state.second_round_message.beta, "gamma": state.gamma}
    return QuerySet(tuple(entries), points), state


def degree_bounds(state):
    """차수 제한이 있는 다항식 레이블 → 제한.

    g_1: |H| - 2, g_M: |K_M| - 2. 이들은 x^(D-d) 동반 커밋먼트와 함께 열린다.
    """
    bounds = {}
    for circuit, _ in state.batch_sizes:
        domains = state.circuit_domains[circuit.id]
        bounds[circuit_label(circuit.id, "g_1")] = domains.constraint_domain.size - 2
        for matrix in ("a", "b", "c"):
            k_domain = getattr(domains, f"non_zero_{matrix}_domain")
            bounds[matrix_label(circuit.id, matrix, "g")] = k_domain.size - 2
    return bounds


def opening_order(query_set, point_name, bounds):
    """한 평가점에서 일괄 열기할 (레이블, 동반 여부) 순서.

    차수 제한이 있는 다항식은 바로 뒤에 동반 커밋먼트가 온다.
    """
    order = []
    for label in query_set.at(point_name):
        order.append((label, False))
        if label in bounds:
            order.append((label, True))
    return order
