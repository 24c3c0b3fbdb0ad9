"""
Marlin 인덱서 (Indexer)
========================

R1CS 를 Marlin 의 "인덱스" 로 전처리한다. 인덱스는 회로에만 의존하고
증인과는 무관하므로, 한 번 만들어 증명 키/검증 키로 재사용한다.

  ┌───────────────────────────────────────────────────────────┐
  │  ConstraintSystem                                          │
  │        │  패딩: 공개 입력 nx = 2^a, 정사각 n × n (n = 2^b)  │
  │        ▼                                                   │
  │  Circuit (행렬 A, B, C + 내용 해시 id)                      │
  │        │  인덱스 다항식 row, col, val (각 행렬, K_M 위)      │
  │        ▼                                                   │
  │  ProvingKey / VerifyingKey (인덱스 커밋먼트 9개)            │
  └───────────────────────────────────────────────────────────┘

**변수 → H 배치**:
  공개 변수 j 는 ω^(j·n/nx) 에 놓인다. 이 점들이 입력 부분군 H_x 이다.
  비공개 변수는 남은 지수를 오름차순으로 채운다.

**인덱스 다항식** (행렬 M 의 k 번째 0 아닌 원소 (i, j, M_ij)):
  row(κ_k) = ω^i
  col(κ_k) = ω^(exp j)
  val(κ_k) = M_ij · col(κ_k) / n
  κ_k 는 K_M 의 k 번째 원소, 남는 자리는 row = col = 1, val = 0.

  이 정규화로 검증자가 필요한 t_M(β) 가 다음 합이 된다.
    t_M(β) = Σ_{κ∈K} v_H(α)·v_H(β)·val(κ) / ((α - row(κ))(β - col(κ)))

**회로 ID**:
  패딩된 크기와 행렬 원소의 정규 직렬화에 대한 SHA-256.
  배치 안에서 회로의 정규 순서는 이 ID 의 순서이다.
"""

import hashlib
import logging
import time
from collections import namedtuple

from zkp.marlin.domain import EvaluationDomain, next_power_of_2
from zkp.marlin.errors import IndexTooLarge
from zkp.marlin.field import FR
from zkp.marlin.kzg import commit

logger = logging.getLogger(__name__)

MATRICES = ("a", "b", "c")


# ─────────────────────────────────────────────────────────────────────
# 회로 기술자 (Circuit descriptor)
# ─────────────────────────────────────────────────────────────────────

class CircuitInfo(namedtuple("CircuitInfo", [
    "num_public_inputs",
    "num_variables",
    "num_constraints",
    "num_non_zero_a",
    "num_non_zero_b",
    "num_non_zero_c",
])):
    """회로의 크기 정보 (불변).

    인덱서가 만든 값은 항상 정사각이고 num_public_inputs 는 2의 거듭제곱이다.
    """

    __slots__ = ()

    def is_square(self):
        return self.num_constraints == self.num_variables

    def num_non_zero(self, matrix):
        return getattr(self, f"num_non_zero_{matrix}")

    @classmethod
    def max_of(cls, infos):
        """배치 전체를 덮는 기술자 (각 필드의 최댓값)."""
        infos = list(infos)
        return cls(*(max(values) for values in zip(*infos)))


# ─────────────────────────────────────────────────────────────────────
# 회로 (Circuit)
# ─────────────────────────────────────────────────────────────────────

class Circuit:
    """패딩된 R1CS 행렬과 내용 해시 ID.

    속성:
        n: 제약/변수 수 (= |H|)
        nx: 패딩된 공개 입력 수 (= |H_x|)
        matrices: {"a": [(row, col, FR), ...], "b": ..., "c": ...}
        var_exponents: 변수 인덱스 → H 원소의 지수
        index_info: CircuitInfo
        id: 16진 문자열
    """

    def __init__(self, n, nx, matrices):
        self.n = n
        self.nx = nx
        self.matrices = matrices
        self.var_exponents = _variable_exponents(n, nx)
        self.index_info = CircuitInfo(
            num_public_inputs=nx,
            num_variables=n,
            num_constraints=n,
            num_non_zero_a=max(len(matrices["a"]), 2),
            num_non_zero_b=max(len(matrices["b"]), 2),
            num_non_zero_c=max(len(matrices["c"]), 2),
        )
        self.id = self._content_hash()
        self._index = None

    @classmethod
    def from_constraint_system(cls, cs):
        """ConstraintSystem 의 구조(값 제외)로 회로를 만든다."""
        nx = next_power_of_2(cs.num_public)
        n = next_power_of_2(max(nx + cs.num_private, cs.num_constraints, 2))

        def column(var):
            kind, idx = var
            return idx if kind == "public" else nx + idx

        matrices = {m: [] for m in MATRICES}
        for row, constraint in enumerate(cs.constraints):
            for m, lc in zip(MATRICES, constraint):
                for var, coeff in lc.terms.items():
                    matrices[m].append((row, column(var), coeff))
        for m in MATRICES:
            matrices[m].sort(key=lambda e: (e[0], e[1]))
        return cls(n, nx, matrices)

    def _content_hash(self):
        h = hashlib.sha256()
        h.update(f"marlin-circuit:{self.n}:{self.nx}".encode())
        for m in MATRICES:
            h.update(f"|{m}:{len(self.matrices[m])}".encode())
            for row, col, value in self.matrices[m]:
                h.update(row.to_bytes(4, "big"))
                h.update(col.to_bytes(4, "big"))
                h.update(int(value).to_bytes(32, "big"))
        return h.hexdigest()

    def __eq__(self, other):
        return isinstance(other, Circuit) and self.id == other.id

    def __lt__(self, other):
        return self.id < other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Circuit(id={self.id[:12]}, n={self.n}, nx={self.nx})"

    # ── 차수 ──

    def max_degree(self):
        """이 회로를 증명하는 데 필요한 SRS 최소 차수.

        h_1: n + nx - 1, ẑ 블라인딩: n, h_M: 2·|K_M| - 3.
        """
        k_max = max(next_power_of_2(self.index_info.num_non_zero(m)) for m in MATRICES)
        return max(self.n + self.nx, 2 * k_max)

    # ── 증인 배치 ──

    def z_vector(self, assignment):
        """패딩된 증인 z 를 H 의 지수 순서로 배열한다.

        Returns:
            list[FR]: 길이 n, 원소 e 는 ω^e 에 놓인 변수의 값
        """
        public = list(assignment.public_inputs)
        private = list(assignment.private_inputs)
        if len(public) > self.nx or len(private) > self.n - self.nx:
            raise ValueError("증인 길이가 회로 크기를 넘습니다")
        public += [FR(0)] * (self.nx - len(public))
        private += [FR(0)] * (self.n - self.nx - len(private))
        values = public + private
        z = [FR(0)] * self.n
        for var, exp in enumerate(self.var_exponents):
            z[exp] = values[var]
        return z

    def matrix_vector_products(self, assignment):
        """(Az, Bz, Cz) 를 제약 순서(= H 지수 순서)로 계산한다."""
        public = list(assignment.public_inputs) + [FR(0)] * (self.nx - len(assignment.public_inputs))
        values = public + list(assignment.private_inputs)
        values += [FR(0)] * (self.n - len(values))
        products = {}
        for m in MATRICES:
            out = [FR(0)] * self.n
            for row, col, value in self.matrices[m]:
                out[row] = out[row] + value * values[col]
            products[m] = out
        return products

    def pad_public_inputs(self, public_inputs):
        public = [FR(v) for v in public_inputs]
        if len(public) > self.nx:
            raise ValueError(f"공개 입력 {len(public)}개는 {self.nx}개를 넘습니다")
        return public + [FR(0)] * (self.nx - len(public))

    # ── 인덱스 다항식 ──

    def index(self):
        """행렬마다 K_M 위의 row, col, val 평가값과 다항식 (캐시된다)."""
        if self._index is None:
            h_domain = EvaluationDomain(self.n)
            n_inv = FR(1) / FR(self.n)
            index = {}
            for m in MATRICES:
                k_domain = EvaluationDomain.new(self.index_info.num_non_zero(m))
                row_evals = [FR(1)] * k_domain.size
                col_evals = [FR(1)] * k_domain.size
                val_evals = [FR(0)] * k_domain.size
                for k, (row, col, value) in enumerate(self.matrices[m]):
                    col_point = h_domain.element(self.var_exponents[col])
                    row_evals[k] = h_domain.element(row)
                    col_evals[k] = col_point
                    val_evals[k] = value * col_point * n_inv
                index[m] = MatrixIndex(
                    k_domain,
                    row_evals, col_evals, val_evals,
                    k_domain.interpolate(row_evals),
                    k_domain.interpolate(col_evals),
                    k_domain.interpolate(val_evals),
                )
            self._index = index
        return self._index


MatrixIndex = namedtuple("MatrixIndex", [
    "domain", "row_evals", "col_evals", "val_evals", "row", "col", "val",
])


def _variable_exponents(n, nx):
    """변수 인덱스(공개 먼저) → H 원소 지수."""
    stride = n // nx
    exponents = [j * stride for j in range(nx)]
    exponents += [e for e in range(n) if e % stride != 0]
    return exponents


# ─────────────────────────────────────────────────────────────────────
# 키 (Proving / Verifying key)
# ─────────────────────────────────────────────────────────────────────

class VerifyingKey:
    """검증 키: 회로 기술자, ID, 인덱스 커밋먼트.

    속성:
        index_info: CircuitInfo
        id: 회로 ID
        commitments: {"a": (row, col, val), ...} G1 점
        srs: SRS
    """

    def __init__(self, index_info, circuit_id, commitments, srs):
        self.index_info = index_info
        self.id = circuit_id
        self.commitments = commitments
        self.srs = srs

    def __eq__(self, other):
        return isinstance(other, VerifyingKey) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"VerifyingKey(id={self.id[:12]})"

    @staticmethod
    def verify_batch(label, mapping, proof):
        """일괄 검증. zkp.marlin.verifier.verify_batch 참조."""
        from zkp.marlin.verifier import verify_batch
        return verify_batch(label, mapping, proof)


class ProvingKey:
    """증명 키: 회로 전체 + 검증 키."""

    def __init__(self, circuit, vk):
        self.circuit = circuit
        self.vk = vk

    @property
    def id(self):
        return self.circuit.id

    @property
    def index_info(self):
        return self.circuit.index_info

    @property
    def srs(self):
        return self.vk.srs

    def __eq__(self, other):
        return isinstance(other, ProvingKey) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"ProvingKey(id={self.id[:12]})"

    @staticmethod
    def prove_batch(label, mapping, rng=None):
        """일괄 증명. zkp.marlin.prover.prove_batch 참조."""
        from zkp.marlin.prover import prove_batch
        return prove_batch(label, mapping, rng)


def setup(circuit, srs):
    """회로를 인덱싱하고 키 쌍을 만든다.

    Args:
        circuit: Circuit
        srs: SRS (circuit.max_degree() 이상)

    Returns:
        tuple: (ProvingKey, VerifyingKey)

    Raises:
        IndexTooLarge: SRS 차수가 모자랄 때
    """
    needed = circuit.max_degree()
    if srs.max_degree < needed:
        raise IndexTooLarge(ctx={"needed": needed, "srs_max_degree": srs.max_degree,
                                 "circuit": circuit.id})

    start = time.perf_counter()
    commitments = {}
    for m, idx in circuit.index().items():
        commitments[m] = (commit(idx.row, srs), commit(idx.col, srs), commit(idx.val, srs))
    vk = VerifyingKey(circuit.index_info, circuit.id, commitments, srs)
    logger.info("indexed circuit %s (n=%d, nx=%d) in %.2fs",
                circuit.id[:12], circuit.n, circuit.nx, time.perf_counter() - start)
    return ProvingKey(circuit, vk), vk
