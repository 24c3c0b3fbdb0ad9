"""
원장 조회 (Query)
==================

Inclusion 이 쓰는 원장 조회 인터페이스. 같은 조회를 블로킹 방식과
비동기 방식으로 제공한다. 비동기 쪽은 조회를 작업 스레드에서 돌린다.

  current_state_root()               / current_state_root_async()
  get_state_path_for_commitment(cm)  / get_state_path_for_commitment_async(cm)
"""

import asyncio


class Query:

    def __init__(self, storage):
        self.storage = storage

    def current_state_root(self):
        return self.storage.current_state_root()

    def get_state_path_for_commitment(self, commitment):
        return self.storage.get_state_path_for_commitment(commitment)

    async def current_state_root_async(self):
        return await asyncio.to_thread(self.storage.current_state_root)

    async def get_state_path_for_commitment_async(self, commitment):
        return await asyncio.to_thread(self.storage.get_state_path_for_commitment, commitment)
