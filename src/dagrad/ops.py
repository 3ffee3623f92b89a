"""
The operation catalog.

An :class:`Operation` bundles three rules that only make sense together:

* ``shape_rule(name, *shapes, **attrs) -> Shape`` validates operand shapes
  and returns the result shape. It never touches a buffer.
* ``forward(backend, shape, *buffers, **attrs) -> buffer`` computes the value.
* ``backward(backend, upstream, buffers, result, **attrs) -> tuple`` is the
  vector-Jacobian product: one contribution per operand, shaped like it.

Operations enter the catalog through :func:`register`, which refuses an
operation missing any rule, so anything :func:`apply` can build is
differentiable.
"""
import logging

from . import shape as shapes
from .backend import get_backend
from .errors import BackendError, UnregisteredOperationError
from .tensor import Constant, Derived, Tensor

logger = logging.getLogger(__name__)


class Operation:
    __slots__ = ('name', 'shape_rule', 'forward', 'backward')

    def __init__(self, name, shape_rule, forward, backward):
        self.name = name
        self.shape_rule = shape_rule
        self.forward = forward
        self.backward = backward

    def __repr__(self):
        return f"Operation({self.name!r})"


_CATALOG = {}


def register(operation):
    name = getattr(operation, "name", None)
    if not isinstance(name, str) or not name:
        raise UnregisteredOperationError(f"operation needs a non-empty name, got {name!r}")
    for rule in ("shape_rule", "forward", "backward"):
        if not callable(getattr(operation, rule, None)):
            raise UnregisteredOperationError(f"operation {name!r} has no {rule}; it cannot be differentiated")
    if name in _CATALOG:
        raise UnregisteredOperationError(f"operation {name!r} is already registered")
    _CATALOG[name] = operation
    return operation


def get(name):
    try:
        return _CATALOG[name]
    except KeyError:
        raise UnregisteredOperationError(f"no operation named {name!r} in the catalog") from None


def registered():
    return sorted(_CATALOG)


def apply(name, *operands, **attrs):
    """Builds the node for ``name`` applied to ``operands``, computing its value immediately."""
    op = get(name)
    for t in operands:
        if not isinstance(t, Tensor):
            raise TypeError(f"{name} operands must be dagrad tensors, got {type(t).__name__}")
    out_shape = op.shape_rule(name, *(t.shape for t in operands), **attrs)

    backend = get_backend()
    result = op.forward(backend, out_shape, *(t.data for t in operands), **attrs)
    if tuple(result.shape) != tuple(out_shape):
        raise BackendError(f"{name} produced shape {tuple(result.shape)}, shape rule promised {out_shape}")

    # a result is tracked as soon as one operand is
    if not any(t.requires_grad for t in operands):
        return Constant(result)
    node = Derived(result, op, operands, attrs)
    logger.debug("%s -> %s", name, out_shape)
    return node


# --- catalog ---

def _elementwise(op_name):
    def forward(backend, shape, *buffers):
        return backend.elementwise(op_name, shape, buffers)
    return forward


def _add_backward(backend, df, args, result):
    return df, df


def _sub_backward(backend, df, args, result):
    return df, backend.elementwise("neg", df.shape, (df,))


def _mul_backward(backend, df, args, result):
    x, y = args
    return backend.elementwise("mul", df.shape, (df, y)), backend.elementwise("mul", df.shape, (df, x))


def _div_backward(backend, df, args, result):
    x, y = args
    dx = backend.elementwise("div", df.shape, (df, y))
    # d(x/y)/dy = -x / y^2, written as -(df / y) * (x / y)
    dy = backend.elementwise("mul", df.shape, (dx, result))
    return dx, backend.elementwise("neg", df.shape, (dy,))


def _matmul_forward(backend, shape, a, b):
    return backend.matmul(a.shape, b.shape, a, b)


def _matmul_backward(backend, df, args, result):
    a, b = args
    da = backend.matmul(df.shape, b.shape, df, b, transpose_b=True)
    db = backend.matmul(a.shape, df.shape, a, df, transpose_a=True)
    return da, db


def _identity_forward(backend, shape, x):
    return x.clone()


def _identity_backward(backend, df, args, result):
    return (df,)


def _reshape_rule(name, a, target):
    return shapes.reshape(name, a, target)


def _reshape_forward(backend, shape, x, target):
    return backend.reshape(x, shape)


def _reshape_backward(backend, df, args, result, target):
    return (backend.reshape(df, args[0].shape),)


def _sin_backward(backend, df, args, result):
    cos = backend.elementwise("cos", df.shape, (args[0],))
    return (backend.elementwise("mul", df.shape, (df, cos)),)


def _cos_backward(backend, df, args, result):
    sin = backend.elementwise("sin", df.shape, (args[0],))
    neg = backend.elementwise("neg", df.shape, (sin,))
    return (backend.elementwise("mul", df.shape, (df, neg)),)


def _neg_backward(backend, df, args, result):
    return (backend.elementwise("neg", df.shape, (df,)),)


register(Operation("add", shapes.same, _elementwise("add"), _add_backward))
register(Operation("sub", shapes.same, _elementwise("sub"), _sub_backward))
register(Operation("mul", shapes.same, _elementwise("mul"), _mul_backward))
register(Operation("div", shapes.same, _elementwise("div"), _div_backward))
register(Operation("matmul", shapes.matmul, _matmul_forward, _matmul_backward))
register(Operation("identity", shapes.unary, _identity_forward, _identity_backward))
register(Operation("reshape", _reshape_rule, _reshape_forward, _reshape_backward))
register(Operation("sin", shapes.unary, _elementwise("sin"), _sin_backward))
register(Operation("cos", shapes.unary, _elementwise("cos"), _cos_backward))
register(Operation("neg", shapes.unary, _elementwise("neg"), _neg_backward))


# --- functional API ---

def add(a, b):
    """Elementwise ``a + b``; both operands must have the same shape."""
    return apply("add", a, b)


def sub(a, b):
    return apply("sub", a, b)


def mul(a, b):
    return apply("mul", a, b)


def div(a, b):
    return apply("div", a, b)


def matmul(a, b):
    """
    Matrix product of the ``height x width`` slices of ``a`` and ``b`` for
    every (batch, channel) pair. ``a.width`` must equal ``b.height``.
    """
    return apply("matmul", a, b)


mm = matmul


def identity(x):
    return apply("identity", x)


def reshape(x, shape):
    return apply("reshape", x, target=shapes.Shape.of(shape, "reshape"))


def sin(x):
    return apply("sin", x)


def cos(x):
    return apply("cos", x)


def neg(x):
    return apply("neg", x)
