import logging
import os
import sys

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from zkp.ledger.network import Network, NetworkConfig

# ZKP_TEST_LOG=DEBUG 처럼 지정하면 라운드별 로그를 볼 수 있다
if os.getenv("ZKP_TEST_LOG"):
    logging.basicConfig(
        level=os.getenv("ZKP_TEST_LOG", "INFO").upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@pytest.fixture(scope="session")
def network():
    """테스트용 네트워크: 깊이 2 상태 트리, 작은 SRS."""
    return Network(NetworkConfig(name="pytest", state_tree_depth=2, srs_max_degree=512, srs_seed=4242))
