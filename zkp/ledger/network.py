"""
네트워크 설정 (Network configuration)
======================================

원장 계층이 공유하는 상수와 한 번만 만드는 공개 파라미터.

  NetworkConfig   값만 담는 설정 (환경 변수에서 읽을 수 있음)
  Network         설정 + 지연 생성되는 SRS, Inclusion 키 쌍

환경 변수 (접두사 기본값 ZKP_):

  ZKP_NETWORK=testnet
  ZKP_FEE_LOCATOR=credits.aleo/fee
  ZKP_INCLUSION_LOCATOR=inclusion.aleo/state_path
  ZKP_STATE_TREE_DEPTH=4
  ZKP_SRS_MAX_DEGREE=512
  ZKP_SRS_SEED=1234

사용 예시:
    >>> network = Network(NetworkConfig.from_env())
    >>> pk, vk = network.inclusion_keys()
"""

import logging
import os
from dataclasses import dataclass

from zkp.ledger.circuits import inclusion_circuit
from zkp.ledger.program import Locator
from zkp.marlin.indexer import setup
from zkp.marlin.srs import SRS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    name: str = "testnet"
    fee_locator: str = "credits.aleo/fee"
    inclusion_locator: str = "inclusion.aleo/state_path"
    state_tree_depth: int = 4
    srs_max_degree: int = 512
    srs_seed: int = 1234

    def validate(self) -> None:
        for field_name in ("fee_locator", "inclusion_locator"):
            # Locator.from_str 가 형식을 검사한다
            Locator.from_str(getattr(self, field_name))
        if self.fee_locator == self.inclusion_locator:
            raise ValueError("fee_locator and inclusion_locator must differ")
        if not 1 <= self.state_tree_depth <= 16:
            raise ValueError("state_tree_depth must be between 1 and 16")
        if self.srs_max_degree < 2:
            raise ValueError("srs_max_degree must be >= 2")

    @staticmethod
    def from_env(prefix: str = "ZKP_") -> "NetworkConfig":
        """환경 변수에서 설정을 읽는다. 없는 값은 기본값을 쓴다."""

        def _get(name, cast, default):
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                return cast(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        cfg = NetworkConfig(
            name=_get("NETWORK", str, "testnet"),
            fee_locator=_get("FEE_LOCATOR", str, "credits.aleo/fee"),
            inclusion_locator=_get("INCLUSION_LOCATOR", str, "inclusion.aleo/state_path"),
            state_tree_depth=_get("STATE_TREE_DEPTH", int, 4),
            srs_max_degree=_get("SRS_MAX_DEGREE", int, 512),
            srs_seed=_get("SRS_SEED", int, 1234),
        )
        cfg.validate()
        return cfg


class Network:
    """설정과 공개 파라미터.

    SRS 와 Inclusion 키는 처음 필요할 때 만들고 이후에는 읽기만 한다.
    """

    def __init__(self, config=None):
        self.config = config or NetworkConfig()
        self.config.validate()
        self.fee_locator = Locator.from_str(self.config.fee_locator)
        self.inclusion_locator = Locator.from_str(self.config.inclusion_locator)
        self._srs = None
        self._inclusion_keys = None

    @property
    def state_tree_depth(self):
        return self.config.state_tree_depth

    @property
    def srs(self):
        if self._srs is None:
            logger.info("generating SRS for %s (max_degree=%d)",
                        self.config.name, self.config.srs_max_degree)
            self._srs = SRS.generate(self.config.srs_max_degree, seed=self.config.srs_seed)
        return self._srs

    def inclusion_keys(self):
        """(ProvingKey, VerifyingKey) for the state-path circuit."""
        if self._inclusion_keys is None:
            circuit = inclusion_circuit(self.state_tree_depth)
            self._inclusion_keys = setup(circuit, self.srs)
        return self._inclusion_keys

    def __repr__(self):
        return f"Network({self.config.name}, depth={self.state_tree_depth})"
