import numpy as np
import pytest
import torch

from dagrad import config


@pytest.fixture(autouse=True)
def cpu_float64():
    """Run every test on CPU in double precision with a seeded generator."""
    device, dtype = config.device, config.dtype
    config.set_default_device("cpu")
    config.set_default_dtype(torch.float64)
    config.manual_seed(0)
    yield
    config.set_default_device(device)
    config.set_default_dtype(dtype)


@pytest.fixture
def assert_close():
    def check(actual, expected, err_msg=""):
        if isinstance(actual, torch.Tensor):
            actual = actual.detach().cpu().numpy()
        if isinstance(expected, torch.Tensor):
            expected = expected.detach().cpu().numpy()
        np.testing.assert_allclose(actual, expected, rtol=1e-10, atol=1e-12, err_msg=err_msg)
    return check


@pytest.fixture
def reference():
    """Builds a torch leaf holding the same values, tracked by torch's own autograd."""
    def make(tensor):
        return tensor.data.detach().clone().requires_grad_(True)
    return make
