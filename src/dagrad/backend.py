"""Torch implementation of the compute backend consumed by the core.

The core hands this module shapes that already passed the shape rules and
gets buffers back. Buffers are ``torch.Tensor`` laid out as
``(batch, channels, height, width)`` on the configured device and dtype.
Anything torch raises is re-raised as :class:`BackendError`; a half computed
buffer is never returned.
"""
import functools
import logging

import torch

from . import config
from .errors import BackendError, ShapeMismatchError
from .shape import Shape

logger = logging.getLogger(__name__)


def _guarded(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            with torch.no_grad():
                return fn(*args, **kwargs)
        except (BackendError, ShapeMismatchError):
            raise
        except (RuntimeError, ValueError, TypeError) as exc:
            logger.error("backend call %s failed: %s", fn.__name__, exc)
            raise BackendError(f"{fn.__name__} failed: {exc}") from exc
    return wrapper


class TorchBackend:
    __slots__ = ()

    ELEMENTWISE = {
        "add": (2, torch.add),
        "sub": (2, torch.sub),
        "mul": (2, torch.mul),
        "div": (2, torch.div),
        "neg": (1, torch.neg),
        "sin": (1, torch.sin),
        "cos": (1, torch.cos),
    }

    @staticmethod
    def _opts():
        return {"dtype": config.dtype, "device": config.device}

    @_guarded
    def elementwise(self, op, shape, buffers):
        if op not in self.ELEMENTWISE:
            raise BackendError(f"unknown elementwise op {op!r}")
        arity, fn = self.ELEMENTWISE[op]
        if len(buffers) != arity:
            raise BackendError(f"{op} takes {arity} buffers, got {len(buffers)}")
        out = fn(*buffers)
        if tuple(out.shape) != tuple(shape):
            raise BackendError(f"{op} produced shape {tuple(out.shape)}, expected {tuple(shape)}")
        return out

    @_guarded
    def matmul(self, shape_a, shape_b, a, b, transpose_a=False, transpose_b=False):
        if transpose_a:
            a = a.transpose(-2, -1)
        if transpose_b:
            b = b.transpose(-2, -1)
        return torch.matmul(a, b)

    @_guarded
    def reshape(self, buffer, shape):
        return buffer.reshape(*shape).clone()

    @_guarded
    def fill(self, shape, value):
        return torch.full(tuple(shape), float(value), **self._opts())

    @_guarded
    def zeros(self, shape):
        return torch.zeros(tuple(shape), **self._opts())

    @_guarded
    def ones(self, shape):
        return torch.ones(tuple(shape), **self._opts())

    @_guarded
    def identity(self, shape, value=1.0):
        # every (batch, channel) slice gets the same, possibly rectangular, eye
        eye = torch.eye(shape.height, shape.width, **self._opts()) * value
        return eye.expand(tuple(shape)).clone()

    @_guarded
    def random_normal(self, shape, mean=0.0, std=1.0):
        out = torch.empty(tuple(shape), **self._opts())
        return out.normal_(mean, std, generator=config.generator())

    @_guarded
    def random_uniform(self, shape, low=0.0, high=1.0):
        out = torch.empty(tuple(shape), **self._opts())
        return out.uniform_(low, high, generator=config.generator())

    @_guarded
    def from_values(self, shape, values):
        shape = Shape.of(shape)
        data = torch.as_tensor(values, **self._opts())
        if data.numel() != shape.numel:
            raise ShapeMismatchError("custom", f"{shape.numel} values for shape {shape}", data.numel())
        return data.reshape(tuple(shape)).clone()

    # gradient buffers follow the tensor they belong to, not the current defaults
    @_guarded
    def zeros_like(self, buffer):
        return torch.zeros_like(buffer)

    @_guarded
    def ones_like(self, buffer):
        return torch.ones_like(buffer)

    @_guarded
    def copy(self, buffer, like=None):
        if like is None:
            return buffer.detach().to(**self._opts()).clone()
        return buffer.detach().to(dtype=like.dtype, device=like.device).clone()

    def __repr__(self):
        return f"TorchBackend(device={config.device}, dtype={config.dtype})"


_active = TorchBackend()


def get_backend():
    return _active


def set_backend(backend):
    """Swap the backend used by every subsequent operation."""
    global _active
    previous, _active = _active, backend
    logger.debug("backend switched from %r to %r", previous, backend)
    return previous
