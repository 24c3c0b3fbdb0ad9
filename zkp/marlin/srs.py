"""
Marlin Structured Reference String (SRS)
=========================================

범용(universal) 신뢰 설정(trusted setup)을 생성한다.

  SRS = {
      G1 powers: [G1, τ·G1, τ²·G1, ..., τ^D·G1]
      G2 powers: [G2, τ·G2]
  }

**범용(Universal) 설정**:
  Marlin 의 SRS 는 회로에 독립적이다. 최대 차수 D 이하라면 어떤 회로든
  인덱싱할 수 있고, 배치 안의 모든 회로가 같은 SRS 를 공유한다.

**차수 제한(degree bound)**:
  합검사 다항식 g(x) 는 deg g ≤ d 임을 보여야 한다. 증명자는 x^(D-d)·g(x)
  도 커밋하며, D 를 넘는 다항식은 커밋할 수 없으므로 차수가 강제된다.

여기서는 교육용으로 seed에서 결정론적으로 τ 를 만든다.
"""

import hashlib
import logging
import secrets

from zkp.marlin.field import FR, G1, G2, ec_mul, CURVE_ORDER

logger = logging.getLogger(__name__)


class SRS:
    """Structured Reference String: KZG 커밋먼트용 공개 파라미터.

    속성:
        g1_powers: [G1, τ·G1, τ²·G1, ..., τ^D·G1]
        g2_powers: [G2, τ·G2]
        max_degree: 지원하는 최대 다항식 차수 D
    """

    def __init__(self, g1_powers, g2_powers, max_degree):
        self.g1_powers = g1_powers
        self.g2_powers = g2_powers
        self.max_degree = max_degree

    @classmethod
    def generate(cls, max_degree, seed=None):
        """SRS를 생성한다.

        Args:
            max_degree: 지원할 최대 다항식 차수 D
            seed: 결정론적 생성을 위한 시드. None 이면 무작위 τ.
        """
        if seed is not None:
            h = hashlib.sha256(str(seed).encode()).digest()
            tau_int = int.from_bytes(h, "big") % CURVE_ORDER
        else:
            tau_int = secrets.randbelow(CURVE_ORDER - 1) + 1
        tau = FR(tau_int)

        g1_powers = []
        tau_power = FR(1)
        for _ in range(max_degree + 1):
            g1_powers.append(ec_mul(G1, tau_power))
            tau_power = tau_power * tau

        g2_powers = [G2, ec_mul(G2, tau)]

        logger.debug("SRS generated: max_degree=%d", max_degree)
        return cls(g1_powers, g2_powers, max_degree)
