"""
원장(ledger) 계층 예외
=======================

  LedgerError
   ├── SequencingError      호출 순서 위반 (prepare 후 삽입, prepare 전 증명 등)
   │    └── WriteOnceError  한 번만 쓸 수 있는 셀에 두 번째 쓰기
   ├── ConsistencyError     루트 불일치, 0 루트, 수수료 형태 위반
   ├── MissingProofError    검증할 증명이 없음
   ├── VerificationError    일괄 증명 검증 실패 (배치 단위, 회로별 결과 없음)
   ├── InclusionError       멤버십 증인 준비 실패
   └── StorageError         원장 저장소 조회/삽입 실패

어느 것도 내부에서 재시도하지 않는다. 입력을 고친 호출자만 다시 시도한다.
"""


class LedgerError(Exception):
    """원장 계층 예외의 기반 클래스."""


class SequencingError(LedgerError):
    pass


class WriteOnceError(SequencingError):
    pass


class ConsistencyError(LedgerError):
    pass


class MissingProofError(LedgerError):
    pass


class VerificationError(LedgerError):
    pass


class InclusionError(LedgerError):
    pass


class StorageError(LedgerError):
    pass
