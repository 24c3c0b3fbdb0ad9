"""
Marlin Prover — 4-라운드 일괄 증명 오케스트레이터
==================================================

여러 회로의 여러 인스턴스를 하나의 증명으로 묶는다.
각 라운드는 다항식을 커밋하고 AHP 검증자 상태 기계로 챌린지를 받는다.

  ┌─────────────────────────────────────────────────────────────┐
  │  머리말: 레이블, 회로 ID, 인스턴스 수, 공개 입력 흡수          │
  ├─────────────────────────────────────────────────────────────┤
  │  Round 1: 증인 다항식 커밋                                    │
  │  Prover → Verifier: [ŵ], [ẑ_A], [ẑ_B], [ẑ_C] (인스턴스마다)   │
  │  AHP round 1 → α, η_B, η_C, 배치 결합자                      │
  ├─────────────────────────────────────────────────────────────┤
  │  Round 2: rowcheck + 외부 합검사                              │
  │  Prover → Verifier: [h_0], [g_1], [x^(D-d)·g_1], [h_1]       │
  │  AHP round 2 → β                                             │
  ├─────────────────────────────────────────────────────────────┤
  │  Round 3: 내부 합검사 (행렬마다)                              │
  │  Prover → Verifier: σ_M, [g_M], [x^(D-d)·g_M], [h_M]         │
  │  AHP round 3, 4 → r_B, r_C, γ                                │
  ├─────────────────────────────────────────────────────────────┤
  │  Round 4: 평가값 + KZG 일괄 열기                              │
  │  AHP query set → 평가값 흡수 → ξ, u → [W_β], [W_γ]           │
  └─────────────────────────────────────────────────────────────┘

증명자는 만족성을 검사하지 않는다. 잘못된 증인은 나머지가 버려진
몫 다항식을 만들고, 그 증명은 검증에서 거절된다.

사용 예시:
    >>> from zkp.marlin.prover import prove_batch
    >>> proof = prove_batch("execution", {"f": (pk, [assignment])}, rng)
"""

import logging
import secrets
import time

from zkp.marlin.batch import batch_info, group_by_circuit, new_transcript
from zkp.marlin.kzg import commit, commit_shifted
from zkp.marlin.prover import round1, round2, round3, round4

logger = logging.getLogger(__name__)


class Proof:
    """Marlin 일괄 증명 데이터 컨테이너.

    속성:
        batch_sizes: [(회로 ID, 인스턴스 수), ...] 정규 순서
        commitments: 레이블 → G1 점 (증인, h_0, g_1, h_1, g_M, h_M)
        shifted: 레이블 → G1 점 (차수 제한 동반 커밋먼트)
        sigmas: 회로 ID → [σ_A, σ_B, σ_C]
        evaluations: 레이블 → FR (query set 의 모든 항목)
        w_beta, w_gamma: β, γ 에서의 일괄 열기 증명 (G1 점)
    """

    def __init__(self):
        self.batch_sizes = []
        self.commitments = {}
        self.shifted = {}
        self.sigmas = {}
        self.evaluations = {}
        self.w_beta = None
        self.w_gamma = None

    def __repr__(self):
        return (f"Proof(circuits={len(self.batch_sizes)}, "
                f"commitments={len(self.commitments)}, evaluations={len(self.evaluations)})")


class ProverState:
    """라운드 간 공유되는 Prover 상태.

    속성 (입력):
        groups: [(ProvingKey, [Assignment, ...]), ...] 정규 순서
        srs: 배치 공통 SRS
        transcript: 머리말을 흡수한 트랜스크립트
        rng: randrange 를 제공하는 난수원 (블라인딩)

    속성 (라운드 간 생성):
        polys: 레이블 → Polynomial
        x_hats: 회로 ID → [x̂ 다항식, ...]
        ahp_state: AHP VerifierState
        first_message, second_message, third_message

    속성 (출력):
        proof: Proof
    """

    def __init__(self, groups, transcript, rng):
        self.groups = groups
        self.srs = groups[0][0].srs
        self.transcript = transcript
        self.rng = rng
        self.info = batch_info(groups)

        self.polys = {}
        self.x_hats = {}
        self.ahp_state = None
        self.first_message = None
        self.second_message = None
        self.third_message = None

        self.proof = Proof()
        self.proof.batch_sizes = [(pk.id, len(assignments)) for pk, assignments in groups]

    def commit(self, label, poly, absorb=True):
        """다항식을 저장·커밋하고 트랜스크립트에 흡수한다."""
        self.polys[label] = poly
        comm = commit(poly, self.srs)
        self.proof.commitments[label] = comm
        if absorb:
            self.transcript.append_point(label.encode(), comm)
        return comm

    def commit_shifted(self, label, degree_bound):
        comm = commit_shifted(self.polys[label], degree_bound, self.srs)
        self.proof.shifted[label] = comm
        self.transcript.append_point(label.encode() + b"/shifted", comm)
        return comm


def prove_batch(label, mapping, rng=None):
    """Marlin 일괄 증명을 생성한다.

    Args:
        label: 배치 레이블 (검증자도 같은 값을 써야 한다)
        mapping: 키 → (ProvingKey, [Assignment, ...])
        rng: randrange 를 제공하는 난수원. None 이면 secrets.SystemRandom

    Returns:
        Proof

    Raises:
        ValueError: 빈 매핑, 증인이 다른 회로의 것, SRS 불일치
        ChallengeDegenerate: 챌린지가 도메인 위에 떨어진 경우 (새 난수로 재시도)
    """
    if not mapping:
        raise ValueError("증명할 회로가 없습니다")
    groups = group_by_circuit(mapping)
    srs_degree = groups[0][0].srs.max_degree
    for pk, assignments in groups:
        if pk.srs.max_degree != srs_degree:
            raise ValueError("배치 안의 키가 서로 다른 SRS 를 씁니다")
        for assignment in assignments:
            if assignment.circuit_id != pk.id:
                raise ValueError(
                    f"증인 회로 {assignment.circuit_id[:12]} 가 키 {pk.id[:12]} 와 다릅니다"
                )

    if rng is None:
        rng = secrets.SystemRandom()

    public_inputs = {
        pk.id: [pk.circuit.pad_public_inputs(a.public_inputs) for a in assignments]
        for pk, assignments in groups
    }
    transcript = new_transcript(label, groups, public_inputs)
    state = ProverState(groups, transcript, rng)

    start = time.perf_counter()

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 1: 증인 다항식 커밋 → α, η, 결합자             │
    # └─────────────────────────────────────────────────────┘
    round1.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 2: rowcheck, 외부 합검사 → β                  │
    # └─────────────────────────────────────────────────────┘
    round2.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 3: 내부 합검사 → r_B, r_C, γ                  │
    # └─────────────────────────────────────────────────────┘
    round3.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 4: 평가값 + 일괄 열기                          │
    # └─────────────────────────────────────────────────────┘
    round4.execute(state)

    logger.info("proved batch %r: %d circuit(s), %d instance(s) in %.2fs",
                str(label), len(groups), sum(len(a) for _, a in groups),
                time.perf_counter() - start)
    return state.proof
