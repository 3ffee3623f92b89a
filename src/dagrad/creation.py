"""Leaf constructors.

A fill rule says how the initial buffer of a leaf is populated; it runs
once, when the leaf is built::

    x = constant((1, 1, 2, 3), Eye(3.0))
    w = variable((1, 1, 3, 2), Normal())

The shorthand constructors (``fill``, ``eye``, ``randn``...) always return a
:class:`Variable`; ``freeze()`` turns one into a :class:`Constant`.
"""
import logging
import math

from .backend import get_backend
from .shape import Shape
from .tensor import Constant, Variable

logger = logging.getLogger(__name__)


class FillRule:
    __slots__ = ()

    def materialize(self, shape, backend):
        raise NotImplementedError

    def __repr__(self):
        fields = ", ".join(f"{k}={getattr(self, k)!r}" for k in self.__slots__)
        return f"{type(self).__name__}({fields})"

    def __eq__(self, other):
        return type(self) is type(other) and all(
            getattr(self, k) == getattr(other, k) for k in self.__slots__
        )

    def __hash__(self):
        return hash((type(self),) + tuple(repr(getattr(self, k)) for k in self.__slots__))


class Fill(FillRule):
    __slots__ = ('value',)

    def __init__(self, value):
        self.value = float(value)

    def materialize(self, shape, backend):
        return backend.fill(shape, self.value)


class Eye(FillRule):
    """``value`` on the main diagonal of every height x width slice, 0 elsewhere."""
    __slots__ = ('value',)

    def __init__(self, value=1.0):
        self.value = float(value)

    def materialize(self, shape, backend):
        return backend.identity(shape, self.value)


class Normal(FillRule):
    __slots__ = ('mean', 'std')

    def __init__(self, mean=0.0, std=1.0):
        if not std > 0 or math.isinf(std):
            raise ValueError(f"std must be a positive finite number, got {std}")
        self.mean = float(mean)
        self.std = float(std)

    def materialize(self, shape, backend):
        return backend.random_normal(shape, self.mean, self.std)


class Uniform(FillRule):
    __slots__ = ('low', 'high')

    def __init__(self, low=0.0, high=1.0):
        if not low < high:
            raise ValueError(f"low must be smaller than high, got [{low}, {high})")
        self.low = float(low)
        self.high = float(high)

    def materialize(self, shape, backend):
        return backend.random_uniform(shape, self.low, self.high)


class Zeros(FillRule):
    __slots__ = ()

    def materialize(self, shape, backend):
        return backend.zeros(shape)


class Ones(FillRule):
    __slots__ = ()

    def materialize(self, shape, backend):
        return backend.ones(shape)


class Custom(FillRule):
    """Explicit values, flat or nested, laid out row-major over (batch, channels, height, width)."""
    __slots__ = ('values',)

    def __init__(self, values):
        self.values = values

    def materialize(self, shape, backend):
        return backend.from_values(shape, self.values)

    def __eq__(self, other):
        return type(self) is type(other) and repr(self.values) == repr(other.values)

    def __hash__(self):
        return hash((type(self), repr(self.values)))


def _materialize(shape, rule, op):
    shape = Shape.of(shape, op)
    if not isinstance(rule, FillRule):
        raise TypeError(f"{op} needs a fill rule such as Fill(0.0) or Normal(), got {rule!r}")
    data = rule.materialize(shape, get_backend())
    logger.debug("%s %s filled with %r", op, shape, rule)
    return data


def constant(shape, rule=Zeros()):
    return Constant(_materialize(shape, rule, "constant"))


def variable(shape, rule=Zeros()):
    return Variable(_materialize(shape, rule, "variable"))


def fill(shape, value):
    return variable(shape, Fill(value))


def eye(shape, value=1.0):
    return variable(shape, Eye(value))


def randn(shape, mean=0.0, std=1.0):
    return variable(shape, Normal(mean, std))


normal = randn


def randu(shape, low=0.0, high=1.0):
    return variable(shape, Uniform(low, high))


def zeros(shape):
    return variable(shape, Zeros())


def ones(shape):
    return variable(shape, Ones())


def custom(shape, values):
    return variable(shape, Custom(values))
