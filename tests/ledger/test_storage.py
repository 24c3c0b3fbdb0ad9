"""
원장 저장소와 조회 테스트
==========================

테스트 범위:
  - 커밋먼트 삽입 → 새 루트 기록
  - 상태 경로가 현재 루트로 이어진다
  - 용량 초과, 중복, 없는 커밋먼트 → StorageError
  - JSON 파일 저장소 재열기
  - Query 의 블로킹/비동기 조회가 같다
"""

import asyncio

import pytest

from zkp.ledger.errors import StorageError
from zkp.ledger.hash import EMPTY_LEAF, hash_two
from zkp.ledger.storage import BlockStorage, StatePath
from zkp.ledger.trace.query import Query
from zkp.marlin.field import FR


@pytest.fixture
def storage():
    s = BlockStorage(depth=2)
    yield s
    s.close()


class TestBlockStorage:
    def test_empty_root(self, storage):
        empty = hash_two(hash_two(EMPTY_LEAF, EMPTY_LEAF), hash_two(EMPTY_LEAF, EMPTY_LEAF))
        assert storage.current_state_root() == empty
        assert storage.contains_state_root(empty)

    def test_insert_records_new_root(self, storage):
        before = storage.current_state_root()
        root = storage.insert_commitments([FR(11), FR(22)])
        assert root != before
        assert storage.current_state_root() == root
        assert storage.contains_state_root(before)
        assert storage.contains_state_root(root)
        assert storage.contains_commitment(FR(22))
        assert not storage.contains_commitment(FR(33))

    def test_state_path(self, storage):
        storage.insert_commitments([FR(11), FR(22), FR(33)])
        path = storage.get_state_path_for_commitment(FR(33))
        assert isinstance(path, StatePath)
        assert path.leaf == FR(33)
        assert path.directions == [0, 1]
        assert path.siblings[0] == EMPTY_LEAF
        assert path.siblings[1] == hash_two(FR(11), FR(22))
        assert path.global_state_root == storage.current_state_root()
        assert path.verify()

    def test_every_leaf_has_valid_path(self, storage):
        leaves = [FR(5), FR(6), FR(7), FR(8)]
        storage.insert_commitments(leaves)
        for index, leaf in enumerate(leaves):
            path = storage.get_state_path_for_commitment(leaf)
            assert path.directions == [index & 1, (index >> 1) & 1]
            assert path.compute_root() == storage.current_state_root()

    def test_path_goes_stale(self, storage):
        storage.insert_commitments([FR(11)])
        path = storage.get_state_path_for_commitment(FR(11))
        storage.insert_commitments([FR(22)])
        assert path.global_state_root != storage.current_state_root()

    def test_capacity(self, storage):
        storage.insert_commitments([FR(1), FR(2), FR(3)])
        with pytest.raises(StorageError):
            storage.insert_commitments([FR(4), FR(5)])

    def test_duplicate(self, storage):
        storage.insert_commitments([FR(1)])
        with pytest.raises(StorageError):
            storage.insert_commitments([FR(1)])
        with pytest.raises(StorageError):
            storage.insert_commitments([FR(2), FR(2)])

    def test_unknown_commitment(self, storage):
        with pytest.raises(StorageError):
            storage.get_state_path_for_commitment(FR(99))

    def test_file_storage_reopen(self, tmp_path):
        path = str(tmp_path / "ledger.json")
        first = BlockStorage(path, depth=2)
        root = first.insert_commitments([FR(10), FR(20)])
        first.close()

        reopened = BlockStorage(path, depth=2)
        assert reopened.current_state_root() == root
        assert reopened.leaves() == [FR(10), FR(20)]
        assert len(reopened.state_roots) == 2
        reopened.close()


class TestQuery:
    def test_sync_and_async_agree(self, storage):
        storage.insert_commitments([FR(11), FR(22)])
        query = Query(storage)

        async def fetch():
            root = await query.current_state_root_async()
            path = await query.get_state_path_for_commitment_async(FR(22))
            return root, path

        root, path = asyncio.run(fetch())
        assert root == query.current_state_root()
        assert path == query.get_state_path_for_commitment(FR(22))

    def test_async_propagates_errors(self, storage):
        query = Query(storage)
        with pytest.raises(StorageError):
            asyncio.run(query.get_state_path_for_commitment_async(FR(99)))
