import logging

import torch

from . import shape as shapes
from .backend import get_backend
from .errors import AutogradError, CapabilityError
from .graph import AutogradGraph
from .tensor import Kind, Tensor

logger = logging.getLogger(__name__)


class Gradients:
    """
    Gradients of one backward traversal, looked up by tensor.

    Holds the contribution every Variable and intermediate tensor received
    during the pass. Variables additionally keep their accumulated sum across
    passes, see :meth:`Variable.grad`.
    """
    __slots__ = ('root', '_graph', '_slots')

    def __init__(self, root, graph, slots):
        self.root = root
        self._graph = graph
        self._slots = slots

    def wrt(self, tensor):
        """
        Gradient of the root with respect to ``tensor`` from this pass only.
        A tracked tensor the root does not depend on gets zeros.
        """
        if not isinstance(tensor, Tensor):
            raise TypeError(f"expected a dagrad tensor, got {type(tensor).__name__}")
        if tensor.kind is Kind.CONSTANT:
            raise CapabilityError("a Constant has no gradient; it is not tracked in the graph")
        if tensor in self._graph:
            grad = self._slots[self._graph.index_of(tensor)]
            if grad is not None:
                return grad.clone()
        return get_backend().zeros_like(tensor.data)

    def variables(self):
        return [self._graph.node(i) for i, g in enumerate(self._slots)
                if g is not None and self._graph.node(i).kind is Kind.VARIABLE]

    def __contains__(self, tensor):
        return tensor in self._graph and self._slots[self._graph.index_of(tensor)] is not None

    def __len__(self):
        return sum(g is not None for g in self._slots)

    def __repr__(self):
        return f"Gradients(root_shape={self.root.shape}, tensors={len(self)}, variables={len(self.variables())})"


def _seed(root, grad, backend):
    if grad is None:
        return backend.ones_like(root.data)
    if isinstance(grad, Tensor):
        grad = grad.data
    elif not isinstance(grad, torch.Tensor):
        grad = torch.as_tensor(grad)
    shapes.seed(root.shape, tuple(grad.shape))
    return backend.copy(grad, like=root.data)


def backward(root, grad=None):
    """
    Reverse-mode differentiation of ``root``.

    Walks every ancestor once in reverse topological order, so a tensor
    consumed by several operations has the contributions of all its
    consumers summed before its own backward rule runs. Reached Variables
    have the result added to their accumulator; nothing is zeroed here.
    ``grad`` seeds d(root)/d(root) and defaults to ones.
    """
    if not isinstance(root, Tensor):
        raise TypeError(f"backward() expects a dagrad tensor, got {type(root).__name__}")
    if root.kind is Kind.CONSTANT:
        raise CapabilityError("cannot differentiate a Constant; unfreeze() it first")

    backend = get_backend()
    graph = AutogradGraph.from_root(root)
    slots = [None] * len(graph)
    slots[graph.root_index] = _seed(root, grad, backend)

    reached = []
    for index in graph.reverse_toposort_indices():
        node = graph.node(index)
        upstream = slots[index]
        if upstream is None:
            continue
        if node.kind is Kind.VARIABLE:
            reached.append(node)
            continue
        if node.kind is not Kind.DERIVED:
            continue

        contributions = node.op.backward(backend, upstream, [p.data for p in node.parents], node.data, **node.attrs)
        if len(contributions) != len(node.parents):
            raise AutogradError(
                f"backward rule of {node.op.name!r} returned {len(contributions)} gradients "
                f"for {len(node.parents)} operands"
            )
        for parent, contribution in zip(node.parents, contributions):
            if not parent.requires_grad:
                continue
            if tuple(contribution.shape) != tuple(parent.shape):
                raise AutogradError(
                    f"backward rule of {node.op.name!r} produced a gradient of shape "
                    f"{tuple(contribution.shape)} for an operand of shape {parent.shape}"
                )
            slot = graph.index_of(parent)
            slots[slot] = contribution if slots[slot] is None else slots[slot] + contribution

    for variable in reached:
        variable._accumulate(slots[graph.index_of(variable)])

    if reached:
        logger.debug("backward visited %d tensors, accumulated into %d variables", len(graph), len(reached))
    else:
        logger.debug("backward reached no variables; nothing accumulated")
    return Gradients(root, graph, slots)


def grad(variable):
    if not isinstance(variable, Tensor):
        raise TypeError(f"grad() expects a dagrad tensor, got {type(variable).__name__}")
    return variable.grad()


def reset(tensor):
    if not isinstance(tensor, Tensor):
        raise TypeError(f"reset() expects a dagrad tensor, got {type(tensor).__name__}")
    tensor.reset()
