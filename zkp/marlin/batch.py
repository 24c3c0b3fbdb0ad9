"""
배치 공통 처리
===============

증명자와 검증자가 똑같이 해야 하는 준비 단계를 모은다. 두 쪽이 한 바이트라도
다르게 흡수하면 챌린지가 갈라지므로 이 모듈 하나만 사용한다.

  mapping: 키(Locator 등) → (ProvingKey | VerifyingKey, [증인 | 공개 입력, ...])
     │
     │  1. 키를 str(key) 순으로 훑어 같은 회로의 인스턴스를 합친다
     │  2. 회로 ID 순(정규 순서)으로 정렬한다
     ▼
  [(키, [인스턴스...]), ...]
     │
     │  3. 트랜스크립트 머리말: 레이블, 회로 ID, 인스턴스 수, 패딩된 공개 입력
     ▼
  Transcript
"""

from zkp.marlin.field import FR
from zkp.marlin.indexer import CircuitInfo
from zkp.marlin.transcript import Transcript

PROTOCOL_LABEL = b"marlin-batch-v1"


def group_by_circuit(mapping):
    """키 → (회로 키, 인스턴스 목록) 을 회로 단위로 합친다.

    같은 회로를 가리키는 키가 여럿이면 str(key) 순서대로 인스턴스를 잇는다.

    Returns:
        list: [(회로 키, [인스턴스...]), ...] 회로 ID 순
    """
    grouped = {}
    for key in sorted(mapping, key=str):
        circuit_key, instances = mapping[key]
        if circuit_key.id in grouped:
            grouped[circuit_key.id][1].extend(instances)
        else:
            grouped[circuit_key.id] = (circuit_key, list(instances))
    return [grouped[cid] for cid in sorted(grouped)]


def batch_info(groups):
    """배치 전체를 덮는 기술자."""
    return CircuitInfo.max_of(circuit_key.index_info for circuit_key, _ in groups)


def pad_public_inputs(values, nx):
    values = [FR(v) for v in values]
    if len(values) > nx:
        raise ValueError(f"공개 입력 {len(values)}개는 {nx}개를 넘습니다")
    return values + [FR(0)] * (nx - len(values))


def new_transcript(label, groups, public_inputs):
    """배치 머리말을 흡수한 트랜스크립트를 만든다.

    Args:
        label: 배치 레이블 (문자열)
        groups: group_by_circuit 결과
        public_inputs: 회로 ID → [패딩된 공개 입력 벡터, ...]
    """
    transcript = Transcript(PROTOCOL_LABEL)
    transcript.append_message(b"label", str(label))
    for circuit_key, instances in groups:
        transcript.append_message(b"circuit", circuit_key.id)
        transcript.append_scalar(b"instances", len(instances))
        for vector in public_inputs[circuit_key.id]:
            transcript.append_scalars(b"public", vector)
    return transcript
