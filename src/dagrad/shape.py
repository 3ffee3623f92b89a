"""Shape bookkeeping for 4-D tensors.

Every shape rule in this module is pure: it only looks at extents and either
returns the shape of the result or raises :class:`ShapeMismatchError`. The
operation catalog runs the rule before touching the backend, which makes the
rule the only gate a node passes through. Once a node exists its shape is
trusted for the rest of its lifetime.
"""
import numbers
from typing import NamedTuple

from .errors import ShapeMismatchError


class Shape(NamedTuple):
    batch: int
    channels: int
    height: int
    width: int

    @classmethod
    def of(cls, value, op="shape"):
        """Normalise ``value`` into a :class:`Shape`, rejecting anything that is not four positive ints."""
        if isinstance(value, cls):
            return value
        try:
            extents = tuple(value)
        except TypeError:
            raise ShapeMismatchError(op, "a sequence of 4 extents", repr(value)) from None
        if len(extents) != 4:
            raise ShapeMismatchError(op, "4 extents (batch, channels, height, width)", f"{len(extents)} extents {extents}")
        for extent in extents:
            if isinstance(extent, bool) or not isinstance(extent, numbers.Integral) or extent <= 0:
                raise ShapeMismatchError(op, "positive integer extents", extents)
        return cls(*(int(e) for e in extents))

    @property
    def numel(self):
        return self.batch * self.channels * self.height * self.width

    def __str__(self):
        return f"({self.batch}, {self.channels}, {self.height}, {self.width})"


def unary(op, a):
    return a


def same(op, a, b):
    # no broadcasting: elementwise operands must agree on every extent
    if a != b:
        raise ShapeMismatchError(op, f"identical operand shapes, left is {a}", f"right {b}")
    return a


def matmul(op, a, b):
    if (a.batch, a.channels) != (b.batch, b.channels):
        raise ShapeMismatchError(
            op,
            f"matching (batch, channels) = {(a.batch, a.channels)}",
            f"{(b.batch, b.channels)} on the right operand",
        )
    if a.width != b.height:
        raise ShapeMismatchError(
            op,
            f"left width {a.width} to equal right height",
            f"{b.height} for shapes {a} and {b}",
        )
    return Shape(a.batch, a.channels, a.height, b.width)


def reshape(op, a, target):
    target = Shape.of(target, op)
    if target.numel != a.numel:
        raise ShapeMismatchError(op, f"a shape holding {a.numel} elements like {a}", f"{target} with {target.numel}")
    return target


def seed(root_shape, grad_shape):
    """Check a caller supplied upstream gradient against the root it seeds."""
    grad_shape = Shape.of(grad_shape, "backward")
    if grad_shape != root_shape:
        raise ShapeMismatchError("backward", f"seed gradient of shape {root_shape}", grad_shape)
    return grad_shape
