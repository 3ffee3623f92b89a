_SUBMODULES = [
    "backend",
    "config",
    "creation",
    "engine",
    "errors",
    "graph",
    "ops",
    "shape",
    "tensor",
]

_EXPORTS = {
    # leaves
    "constant": "creation", "variable": "creation", "fill": "creation",
    "eye": "creation", "randn": "creation", "normal": "creation",
    "randu": "creation", "zeros": "creation", "ones": "creation",
    "custom": "creation",
    "Fill": "creation", "Eye": "creation", "Normal": "creation",
    "Uniform": "creation", "Zeros": "creation", "Ones": "creation",
    "Custom": "creation",
    # catalog
    "add": "ops", "sub": "ops", "mul": "ops", "div": "ops",
    "matmul": "ops", "mm": "ops", "identity": "ops", "reshape": "ops",
    "sin": "ops", "cos": "ops", "neg": "ops",
    # engine
    "backward": "engine", "grad": "engine", "reset": "engine",
    "Gradients": "engine",
    # types
    "Tensor": "tensor", "Constant": "tensor", "Variable": "tensor",
    "Derived": "tensor", "Kind": "tensor", "Shape": "shape",
    # errors
    "AutogradError": "errors", "ShapeMismatchError": "errors",
    "CapabilityError": "errors", "UnregisteredOperationError": "errors",
    "BackendError": "errors",
    # config
    "manual_seed": "config", "set_default_device": "config",
    "set_default_dtype": "config", "configure_logging": "config",
}

__all__ = _SUBMODULES + list(_EXPORTS) + ["__version__"]


def __getattr__(name):
    import importlib
    if name in _SUBMODULES:
        mod = importlib.import_module(f".{name}", __name__)
        globals()[name] = mod  # cache so future lookups are fast
        return mod
    if name in _EXPORTS:
        value = getattr(importlib.import_module(f".{_EXPORTS[name]}", __name__), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + __all__)


from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from . import (
        backend,
        config,
        creation,
        engine,
        errors,
        graph,
        ops,
        shape,
        tensor
    )
    from .creation import (
        constant, variable, fill, eye, randn, normal, randu, zeros, ones,
        custom, Fill, Eye, Normal, Uniform, Zeros, Ones, Custom
    )
    from .ops import add, sub, mul, div, matmul, mm, identity, reshape, sin, cos, neg
    from .engine import backward, grad, reset, Gradients
    from .tensor import Tensor, Constant, Variable, Derived, Kind
    from .shape import Shape
    from .errors import (
        AutogradError, ShapeMismatchError, CapabilityError,
        UnregisteredOperationError, BackendError
    )
    from .config import manual_seed, set_default_device, set_default_dtype, configure_logging
__version__ = "0.0.1"
