"""
Marlin Fiat-Shamir Transcript
==============================

비대화식(non-interactive) 변환을 위한 Fiat-Shamir 해싱 구현.

**Fiat-Shamir 변환이란?**
  Marlin AHP 는 대화식(interactive) 프로토콜이다:
  - Prover가 다항식 오라클(커밋먼트)을 보내면
  - Verifier가 랜덤 챌린지를 보내고
  - Prover가 다음 오라클로 응답한다

  해시로 Verifier 의 무작위성을 대신하면, Prover 와 Verifier 가
  같은 메시지를 같은 순서로 흡수(absorb)했을 때 같은 챌린지를 얻는다.

**Marlin 의 챌린지 추출 순서**:
  Round 1 → α, η_B, η_C, 배치 결합자(batch combiners)
  Round 2 → β
  Round 3 → r_B, r_C
  Round 4 → γ
  열기(opening) → ξ, u

  AHP 검증자 상태 기계는 extract(n) 만 사용한다. 흡수는 증명자/검증자
  드라이버가 담당한다.

사용 예시:
    >>> t = Transcript(b"marlin")
    >>> t.append_point(b"w", commitment)
    >>> alpha, eta_b, eta_c = t.extract(3)
"""

import hashlib

from zkp.marlin.field import FR, CURVE_ORDER, normalize


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    속성:
        state: 현재까지 누적된 해시 입력 바이트열

    보안 주의:
        - 한 트랜스크립트는 한 증명 세션만 소유한다 (공유 금지)
        - 흡수 순서가 다르면 다른 챌린지가 생성됨
    """

    def __init__(self, label=b"marlin"):
        self.state = bytearray()
        self.state.extend(label)

    def append_message(self, label, data):
        """임의의 바이트열(또는 문자열)을 길이 접두어와 함께 추가한다."""
        if isinstance(data, str):
            data = data.encode()
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(8, "big"))
        self.state.extend(data)

    def append_scalar(self, label, scalar):
        """FR 스칼라 값을 32바이트 빅엔디안으로 추가한다."""
        self.state.extend(label)
        val = int(scalar) % CURVE_ORDER
        self.state.extend(val.to_bytes(32, "big"))

    def append_scalars(self, label, scalars):
        self.state.extend(label)
        self.state.extend(len(scalars).to_bytes(8, "big"))
        for s in scalars:
            self.state.extend((int(s) % CURVE_ORDER).to_bytes(32, "big"))

    def append_point(self, label, point):
        """G1 점을 아핀 좌표로 정규화하여 추가한다.

        야코비안 표현은 유일하지 않으므로 반드시 정규화 후 직렬화한다.
        무한원점은 64바이트의 0.
        """
        self.state.extend(label)
        affine = normalize(point)
        if affine is None:
            self.state.extend(b"\x00" * 64)
        else:
            x, y = affine
            self.state.extend(x.to_bytes(32, "big"))
            self.state.extend(y.to_bytes(32, "big"))

    def challenge_scalar(self, label):
        """현재 상태를 SHA-256 으로 해싱하여 챌린지를 만든다 (체이닝)."""
        self.state.extend(label)
        h = hashlib.sha256(bytes(self.state)).digest()
        challenge = FR(int.from_bytes(h, "big") % CURVE_ORDER)
        self.state.extend(h)
        return challenge

    def extract(self, n):
        """n 개의 필드 원소를 순서대로 추출한다.

        Args:
            n: 추출할 원소 수 (0 이면 빈 리스트, 상태는 변하지 않는다)

        Returns:
            list[FR]
        """
        return [self.challenge_scalar(b"extract") for _ in range(n)]
