"""
내장 프로그램 (Built-in programs)
==================================

프로그램 함수는 FunctionContext 위에서 입력을 선언하고, 제약을 걸고,
출력을 선언하는 파이썬 함수이다. 입력은 출력보다 먼저 선언한다
(공개 변수 순서 = Transition.verifier_inputs() 순서).

  credits.aleo/fee              레코드 하나 소비, 공개 수수료, 잔돈 레코드
  credits.aleo/split            레코드 하나를 두 레코드로 나눈다
  credits.aleo/transfer_public  비공개 잔액에서 공개 금액을 뺀다 (금액 ≠ 0)
  noop.aleo/noop                position, local_data_root 만 공개, 제약 없음

  ┌──────────────────────────────┐
  │ fee(record, amount)          │
  │   in : record → sn           │
  │   in : public amount         │
  │   out: record(owner,         │
  │          balance - amount)   │
  └──────────────────────────────┘

금액의 범위(음수 방지)는 검사하지 않는다.
"""

from collections import namedtuple

from zkp.ledger.program import Locator, Record
from zkp.marlin.field import FR

Function = namedtuple("Function", ["synthesize", "dummy_inputs"])


def fee(ctx, record, amount):
    owner, balance = ctx.record_input(record)
    fee_amount = ctx.public_input(amount)
    ctx.record_output(owner, balance - fee_amount)


def split(ctx, record, amount):
    owner, balance = ctx.record_input(record)
    first = ctx.private_input(amount)
    ctx.record_output(owner, first)
    ctx.record_output(owner, balance - first)


def transfer_public(ctx, balance, amount):
    balance_var = ctx.private_input(balance)
    amount_var = ctx.public_input(amount)
    amount = FR(amount)
    inverse = ctx.cs.alloc(FR(1) / amount if amount != 0 else FR(0))
    ctx.cs.enforce(amount_var, inverse, ctx.cs.one)
    ctx.public_output(balance_var - amount_var)


def noop(ctx, position, local_data_root):
    ctx.public_input(position)
    ctx.public_input(local_data_root)


_EMPTY_RECORD = Record(0, 0, 0)

FUNCTIONS = {
    Locator("credits.aleo", "fee"): Function(fee, (_EMPTY_RECORD, 0)),
    Locator("credits.aleo", "split"): Function(split, (_EMPTY_RECORD, 0)),
    Locator("credits.aleo", "transfer_public"): Function(transfer_public, (0, 0)),
    Locator("noop.aleo", "noop"): Function(noop, (0, 0)),
}
