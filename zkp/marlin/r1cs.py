"""
R1CS (Rank-1 Constraint System) 빌더
======================================

회로를 rank-1 제약의 모음으로 표현한다.

  ⟨A_i, z⟩ · ⟨B_i, z⟩ = ⟨C_i, z⟩   (모든 제약 i)

  z = (1, 공개 입력..., 비공개 증인...)

**변수 표현**:
  ("public", j)  — j = 0 은 상수 1
  ("private", j)

**선형 결합 (LinearCombination)**:
  변수 → 계수 사전. 덧셈/뺄셈/스칼라곱을 지원하며 계수가 0 이 된 항은
  자동으로 지운다. 제약 하나가 행렬의 한 행이 되므로 항 수가 곧
  0 아닌 원소(non-zero entry)의 수이다.

사용 예시:
    >>> cs = ConstraintSystem()
    >>> x = cs.alloc_input(3)
    >>> y = cs.mul(x, x)           # y = x², 제약 1개
    >>> cs.enforce(y, x, cs.alloc(27))
    >>> cs.is_satisfied()          # True
"""

from zkp.marlin.field import FR


ONE = ("public", 0)


class LinearCombination:
    """Σ cᵢ · varᵢ."""

    def __init__(self, terms=None):
        self.terms = {}
        for var, coeff in (terms or {}).items():
            coeff = FR(coeff)
            if coeff != 0:
                self.terms[var] = coeff

    @classmethod
    def from_var(cls, var):
        return cls({var: FR(1)})

    @classmethod
    def constant(cls, value):
        return cls({ONE: FR(value)})

    @staticmethod
    def coerce(other):
        if isinstance(other, LinearCombination):
            return other
        if isinstance(other, (int, FR)):
            return LinearCombination.constant(other)
        raise TypeError(f"선형 결합으로 변환할 수 없습니다: {other!r}")

    def __add__(self, other):
        other = LinearCombination.coerce(other)
        terms = dict(self.terms)
        for var, coeff in other.terms.items():
            terms[var] = terms.get(var, FR(0)) + coeff
        return LinearCombination(terms)

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        return LinearCombination({var: -c for var, c in self.terms.items()})

    def __sub__(self, other):
        return self + (-LinearCombination.coerce(other))

    def __rsub__(self, other):
        return LinearCombination.coerce(other) - self

    def __mul__(self, scalar):
        if not isinstance(scalar, (int, FR)):
            raise TypeError("선형 결합은 스칼라와만 곱할 수 있습니다")
        return LinearCombination({var: c * scalar for var, c in self.terms.items()})

    def __rmul__(self, scalar):
        return self.__mul__(scalar)

    def __len__(self):
        return len(self.terms)

    def __repr__(self):
        return f"LC({self.terms})"


class Assignment:
    """회로 인스턴스 하나의 증인.

    속성:
        circuit_id: 이 증인이 만들어진 회로의 내용 해시 (hex)
        public_inputs: [1, 공개 입력...] (FR)
        private_inputs: [비공개 증인...] (FR)
    """

    def __init__(self, circuit_id, public_inputs, private_inputs):
        self.circuit_id = circuit_id
        self.public_inputs = [FR(v) for v in public_inputs]
        self.private_inputs = [FR(v) for v in private_inputs]

    def __repr__(self):
        return (f"Assignment(circuit={self.circuit_id[:12]}, "
                f"public={len(self.public_inputs)}, private={len(self.private_inputs)})")


class ConstraintSystem:
    """R1CS 빌더. 제약과 함께 증인 값도 기록한다.

    키 생성 시에는 더미 값으로, 증명 시에는 실제 값으로 같은 합성
    함수를 실행한다. 제약 구조는 값과 무관해야 같은 회로 ID 를 얻는다.
    """

    def __init__(self):
        self.public_values = [FR(1)]
        self.private_values = []
        self.constraints = []

    # ── 변수 할당 ──

    def alloc_input(self, value):
        """공개 입력 변수를 할당한다."""
        self.public_values.append(FR(value))
        return LinearCombination.from_var(("public", len(self.public_values) - 1))

    def alloc(self, value):
        """비공개 증인 변수를 할당한다."""
        self.private_values.append(FR(value))
        return LinearCombination.from_var(("private", len(self.private_values) - 1))

    @property
    def one(self):
        return LinearCombination.from_var(ONE)

    # ── 제약 ──

    def enforce(self, a, b, c):
        """⟨a, z⟩ · ⟨b, z⟩ = ⟨c, z⟩ 제약을 추가한다."""
        self.constraints.append((
            LinearCombination.coerce(a),
            LinearCombination.coerce(b),
            LinearCombination.coerce(c),
        ))

    def enforce_equal(self, a, b):
        """a = b (a · 1 = b)."""
        self.enforce(a, self.one, b)

    def mul(self, a, b):
        """c = a · b 를 할당하고 제약을 추가한다."""
        c = self.alloc(self.value(a) * self.value(b))
        self.enforce(a, b, c)
        return c

    def enforce_boolean(self, bit):
        """bit · bit = bit."""
        self.enforce(bit, bit, bit)

    # ── 평가 ──

    def value(self, lc):
        """선형 결합을 현재 증인 값으로 평가한다."""
        lc = LinearCombination.coerce(lc)
        total = FR(0)
        for (kind, idx), coeff in lc.terms.items():
            v = self.public_values[idx] if kind == "public" else self.private_values[idx]
            total = total + coeff * v
        return total

    @property
    def num_public(self):
        return len(self.public_values)

    @property
    def num_private(self):
        return len(self.private_values)

    @property
    def num_constraints(self):
        return len(self.constraints)

    def which_is_unsatisfied(self):
        """만족되지 않는 첫 제약의 인덱스 (모두 만족하면 None)."""
        for i, (a, b, c) in enumerate(self.constraints):
            if self.value(a) * self.value(b) != self.value(c):
                return i
        return None

    def is_satisfied(self):
        return self.which_is_unsatisfied() is None

    def to_assignment(self, circuit_id):
        return Assignment(circuit_id, self.public_values, self.private_values)
