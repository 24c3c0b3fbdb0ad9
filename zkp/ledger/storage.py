"""
원장 저장소 (Ledger storage)
=============================

레코드 커밋먼트를 고정 깊이 머클 트리의 잎으로 쌓고, 삽입할 때마다
새 전역 상태 루트를 기록한다.

  TinyDB
   ├── commitments   {"index": i, "commitment": "<int>"}
   └── state_roots   {"height": h, "root": "<int>"}

  root (height h)
     ┌────┴────┐
    n₁₀       n₁₁
   ┌─┴─┐     ┌─┴─┐
  cm₀ cm₁  cm₂  0        빈 자리는 EMPTY_LEAF

필드 원소는 JSON 에 문자열(10진수)로 저장한다.
path 가 None 이면 메모리 저장소를 쓴다.

사용 예시:
    >>> storage = BlockStorage(depth=4)
    >>> storage.insert_commitments([cm])
    >>> path = storage.get_state_path_for_commitment(cm)
    >>> path.global_state_root == storage.current_state_root()
    True
"""

import logging
from collections import namedtuple

from tinydb import Query as Where
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from zkp.ledger.errors import StorageError
from zkp.ledger.hash import EMPTY_LEAF, hash_two
from zkp.marlin.field import FR

logger = logging.getLogger(__name__)

ROW = Where()


class StatePath(namedtuple("StatePath", ["leaf", "siblings", "directions", "global_state_root"])):
    """잎 하나의 머클 경로.

    directions[k] = 1 이면 k 번째 단계에서 현재 노드가 오른쪽 자식이다.
    """

    __slots__ = ()

    def compute_root(self):
        cur = FR(self.leaf)
        for sibling, direction in zip(self.siblings, self.directions):
            if direction:
                cur = hash_two(sibling, cur)
            else:
                cur = hash_two(cur, sibling)
        return cur

    def verify(self):
        return self.compute_root() == self.global_state_root


def _build_levels(leaves, depth):
    """잎부터 루트까지 각 층의 노드 목록."""
    level = list(leaves) + [EMPTY_LEAF] * ((1 << depth) - len(leaves))
    levels = [level]
    for _ in range(depth):
        level = [hash_two(level[i], level[i + 1]) for i in range(0, len(level), 2)]
        levels.append(level)
    return levels


class BlockStorage:
    """커밋먼트 트리와 상태 루트 기록."""

    def __init__(self, path=None, depth=4):
        self.depth = depth
        self.db = TinyDB(path) if path else TinyDB(storage=MemoryStorage)
        self.commitments = self.db.table("commitments")
        self.state_roots = self.db.table("state_roots")
        if len(self.state_roots) == 0:
            self._record_root()

    @property
    def capacity(self):
        return 1 << self.depth

    # ── 조회 ──

    def leaves(self):
        rows = sorted(self.commitments.all(), key=lambda row: row["index"])
        return [FR(int(row["commitment"])) for row in rows]

    def current_state_root(self):
        latest = max(self.state_roots.all(), key=lambda row: row["height"])
        return FR(int(latest["root"]))

    def contains_state_root(self, root):
        return self.state_roots.contains(ROW.root == str(int(root)))

    def contains_commitment(self, commitment):
        return self.commitments.contains(ROW.commitment == str(int(commitment)))

    def get_state_path_for_commitment(self, commitment):
        row = self.commitments.get(ROW.commitment == str(int(commitment)))
        if row is None:
            raise StorageError(f"commitment {int(commitment)} is not in the ledger")
        index = row["index"]
        levels = _build_levels(self.leaves(), self.depth)
        siblings = []
        directions = []
        position = index
        for level in levels[:-1]:
            siblings.append(level[position ^ 1])
            directions.append(position & 1)
            position >>= 1
        return StatePath(levels[0][index], siblings, directions, levels[-1][0])

    # ── 삽입 ──

    def insert_commitments(self, commitments):
        """커밋먼트를 잎으로 추가하고 새 루트를 돌려준다."""
        commitments = [FR(cm) for cm in commitments]
        start = len(self.commitments)
        if start + len(commitments) > self.capacity:
            raise StorageError(
                f"state tree of depth {self.depth} holds at most {self.capacity} commitments"
            )
        if len({int(cm) for cm in commitments}) != len(commitments):
            raise StorageError("duplicate commitments in one insertion")
        for cm in commitments:
            if self.contains_commitment(cm):
                raise StorageError(f"commitment {int(cm)} already exists")
        self.commitments.insert_multiple(
            {"index": start + k, "commitment": str(int(cm))}
            for k, cm in enumerate(commitments)
        )
        root = self._record_root()
        logger.debug("inserted %d commitments, root=%s", len(commitments), str(int(root))[:16])
        return root

    def _record_root(self):
        root = _build_levels(self.leaves(), self.depth)[-1][0]
        self.state_roots.insert({"height": len(self.state_roots), "root": str(int(root))})
        return root

    def close(self):
        self.db.close()
