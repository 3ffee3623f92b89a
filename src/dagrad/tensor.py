import enum
import logging

from . import backend as _backend
from .errors import CapabilityError
from .shape import Shape

logger = logging.getLogger(__name__)


class Kind(enum.Enum):
    CONSTANT = "constant"
    VARIABLE = "variable"
    DERIVED = "derived"


class Tensor:
    """
    A vertex of the computation graph: a fixed 4-D shape and the value buffer
    computed when the node was built. Subclasses decide whether the node can
    take part in differentiation.
    """
    __slots__ = ('_data', '_shape', '__weakref__')
    kind = None
    requires_grad = False
    is_leaf = True

    def __init__(self, data):
        if type(self) is Tensor:
            raise TypeError("Tensor is abstract; build leaves with dagrad.constant or dagrad.variable.")
        self._shape = Shape.of(tuple(data.shape), "tensor")
        self._data = data

    # --- value access, available as soon as the node exists ---
    @property
    def data(self): return self._data
    @property
    def shape(self): return self._shape
    @property
    def batch(self): return self._shape.batch
    @property
    def channels(self): return self._shape.channels
    @property
    def height(self): return self._shape.height
    @property
    def width(self): return self._shape.width
    @property
    def numel(self): return self._shape.numel
    @property
    def dtype(self): return self._data.dtype
    @property
    def device(self): return self._data.device

    def numpy(self):
        return self._data.detach().cpu().numpy()

    def tolist(self):
        return self._data.tolist()

    def item(self):
        if self.numel != 1:
            raise ValueError(f"item() needs a single element tensor, shape is {self._shape}")
        return self._data.item()

    # --- operation catalog ---
    def add(self, other): return ops.add(self, other)
    def sub(self, other): return ops.sub(self, other)
    def mul(self, other): return ops.mul(self, other)
    def div(self, other): return ops.div(self, other)
    def matmul(self, other): return ops.matmul(self, other)
    mm = matmul
    def identity(self): return ops.identity(self)
    def sin(self): return ops.sin(self)
    def cos(self): return ops.cos(self)
    def neg(self): return ops.neg(self)

    def reshape(self, *shape):
        """Accepts ``reshape(b, c, h, w)`` or ``reshape((b, c, h, w))``."""
        if len(shape) == 1 and not isinstance(shape[0], int):
            shape = shape[0]
        return ops.reshape(self, shape)

    def __add__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return ops.add(self, other)

    def __sub__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return ops.sub(self, other)

    def __mul__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return ops.mul(self, other)

    def __truediv__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return ops.div(self, other)

    def __matmul__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return ops.matmul(self, other)

    def __neg__(self):
        return ops.neg(self)

    def __repr__(self):
        return f"{type(self).__name__}(shape={self._shape}, data={self._data.tolist()})"


class Constant(Tensor):
    """A frozen leaf. It is never tracked and never carries a gradient."""
    __slots__ = ()
    kind = Kind.CONSTANT

    def _reject(self, what):
        raise CapabilityError(
            f"cannot {what} a Constant of shape {self._shape}; "
            "unfreeze() it into a Variable to track gradients"
        )

    def grad(self):
        self._reject("read the gradient of")

    def backward(self, grad=None):
        self._reject("differentiate")

    def reset(self):
        self._reject("reset the gradient of")

    def unfreeze(self):
        """Returns a new Variable holding a copy of this value."""
        return Variable(_backend.get_backend().copy(self._data, like=self._data))


class _Tracked(Tensor):
    __slots__ = ()
    requires_grad = True

    def backward(self, grad=None):
        """
        Runs reverse-mode differentiation rooted at this tensor and returns the
        :class:`~dagrad.engine.Gradients` of the traversal. Every ancestor
        Variable has the new contribution summed into its accumulator.
        """
        return engine.backward(self, grad)

    def freeze(self):
        """Returns a Constant holding a copy of this value."""
        return Constant(_backend.get_backend().copy(self._data, like=self._data))


class Variable(_Tracked):
    """A trainable leaf owning a persistent gradient accumulator."""
    __slots__ = ('_grad',)
    kind = Kind.VARIABLE

    def __init__(self, data):
        super().__init__(data)
        self._grad = None

    def grad(self):
        """Accumulated gradient, or None while no backward pass has reached this Variable."""
        if self._grad is None:
            return None
        return self._grad.clone()

    def reset(self):
        if self._grad is None:
            self._grad = _backend.get_backend().zeros_like(self._data)
        else:
            self._grad.zero_()

    def _accumulate(self, contribution):
        if self._grad is None:
            self._grad = contribution.clone()
        else:
            self._grad.add_(contribution)


class Derived(_Tracked):
    """
    Result of applying an operation. It keeps the operation descriptor and
    strong references to its ordered operands, so a node shared by several
    consumers lives as long as the longest lived of them.
    """
    __slots__ = ('op', 'parents', 'attrs')
    kind = Kind.DERIVED
    is_leaf = False

    def __init__(self, data, op, parents, attrs=None):
        if not parents:
            raise ValueError(f"derived tensor from {op.name!r} needs at least one operand")
        super().__init__(data)
        self.op = op
        self.parents = tuple(parents)
        self.attrs = dict(attrs or {})

    def grad(self):
        raise CapabilityError(
            "intermediate tensors keep no gradient between passes; "
            "use the Gradients returned by backward(): grads.wrt(tensor)"
        )

    def reset(self):
        """Zeroes the accumulator of every Variable this tensor depends on."""
        graph = AutogradGraph.from_root(self)
        variables = [n for n in graph.leaves() if n.kind is Kind.VARIABLE]
        for v in variables:
            v.reset()
        logger.debug("reset %d variables below %s", len(variables), self.op.name)

    def __repr__(self):
        return f"Derived(op={self.op.name}, shape={self._shape}, data={self._data.tolist()})"


from . import ops, engine  # noqa: E402
from .graph import AutogradGraph  # noqa: E402
