"""
한 번만 쓰는 셀 (Write-once cell)
==================================

  Unset ──set(v)──▶ Set(v) ──set(w)──▶ WriteOnceError

값이 None 이어도 "설정됨" 으로 구분할 수 있도록 상태를 따로 둔다.
"""

from enum import Enum

from zkp.ledger.errors import SequencingError, WriteOnceError


class CellState(Enum):
    UNSET = "unset"
    SET = "set"


class WriteOnceCell:

    def __init__(self, name):
        self.name = name
        self.state = CellState.UNSET
        self._value = None

    def is_set(self):
        return self.state is CellState.SET

    def set(self, value):
        if self.state is CellState.SET:
            raise WriteOnceError(f"{self.name} has already been set")
        self._value = value
        self.state = CellState.SET

    def get(self):
        if self.state is CellState.UNSET:
            raise SequencingError(f"{self.name} is not set, call prepare first")
        return self._value

    def __repr__(self):
        return f"WriteOnceCell({self.name}, {self.state.value})"
