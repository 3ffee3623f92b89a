import os
import logging
import torch

logger = logging.getLogger(__name__)

_DTYPES = {
    "float16": torch.float16,
    "bfloat16": torch.bfloat16,
    "float32": torch.float32,
    "float64": torch.float64,
}

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def _dtype_from_env():
    name = os.environ.get("DAGRAD_DTYPE", "float32").strip().lower()
    if name not in _DTYPES:
        raise ValueError(f"DAGRAD_DTYPE must be one of {sorted(_DTYPES)}, got {name!r}")
    return _DTYPES[name]


def _detect_device():
    override = os.environ.get("DAGRAD_DEVICE")
    if override:
        return torch.device(override)
    if torch.cuda.is_available():
        return torch.device("cuda")
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available() and mps.is_built():
        return torch.device("mps")
    return torch.device("cpu")


def _summary(dev):
    names = {"cuda": "GPU", "mps": "MPS"}
    return f"Running on: {names.get(dev.type, dev.type.upper())}"


# datatype of buffers
dtype = _dtype_from_env()
# Detect hardware availability
device = _detect_device()
device_summary = _summary(device)
logger.info(device_summary)

_generator = None


def set_default_device(dev):
    """Device used for every buffer created after this call."""
    global device, device_summary, _generator
    device = torch.device(dev)
    device_summary = _summary(device)
    _generator = None
    logger.info(device_summary)


def set_default_dtype(dt):
    global dtype
    if isinstance(dt, str):
        if dt not in _DTYPES:
            raise ValueError(f"dtype must be one of {sorted(_DTYPES)}, got {dt!r}")
        dt = _DTYPES[dt]
    if not dt.is_floating_point:
        raise ValueError(f"gradients need a floating point dtype, got {dt}")
    dtype = dt


def manual_seed(seed):
    """Seed the generator behind the random fill rules."""
    global _generator
    _generator = torch.Generator(device=device)
    _generator.manual_seed(seed)
    return _generator


def generator():
    return _generator


def configure_logging(filename=None, level=None):
    if level is None:
        level = os.environ.get("DAGRAD_LOG_LEVEL", "DEBUG").upper()
    logging.basicConfig(
        filename=filename,
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
        )
