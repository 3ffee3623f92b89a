import pytest
import torch

import dagrad as dg
from dagrad import config, engine
from dagrad.errors import AutogradError, CapabilityError, ShapeMismatchError
from dagrad.ops import Operation


def test_add_distributes_upstream_unchanged(assert_close):
    a = dg.randn((2, 1, 3, 4))
    b = dg.randn((2, 1, 3, 4))
    seed = torch.randn(2, 1, 3, 4, dtype=torch.float64)
    dg.add(a, b).backward(seed)
    assert_close(a.grad(), seed)
    assert_close(b.grad(), seed)


def test_fan_out_sums_both_paths(assert_close, reference):
    v = dg.randn((1, 1, 3, 3))
    root = v.sin() + v.cos()
    root.backward()

    vt = reference(v)
    (vt.sin() + vt.cos()).backward(torch.ones(1, 1, 3, 3, dtype=torch.float64))

    path_sin = torch.cos(v.data)
    path_cos = -torch.sin(v.data)
    assert_close(v.grad(), path_sin + path_cos)
    assert_close(v.grad(), vt.grad)


def test_diamond_intermediate_receives_both_consumers_before_its_rule(assert_close, reference):
    x = dg.randn((1, 1, 2, 2))
    w = dg.randn((1, 1, 2, 2))
    h = x @ w
    root = h.sin() * h
    root.backward()

    xt, wt = reference(x), reference(w)
    ht = xt @ wt
    (ht.sin() * ht).backward(torch.ones(1, 1, 2, 2, dtype=torch.float64))
    assert_close(x.grad(), xt.grad)
    assert_close(w.grad(), wt.grad)


def test_backward_twice_doubles_and_reset_restores(assert_close):
    w = dg.randn((1, 1, 3, 2))
    x = dg.eye((1, 1, 2, 3), 3.0).freeze()
    z = w @ x
    z.backward()
    single = w.grad()

    z.backward()
    assert_close(w.grad(), 2 * single)

    w.reset()
    assert_close(w.grad(), torch.zeros(1, 1, 3, 2, dtype=torch.float64))
    z.backward()
    assert_close(w.grad(), single)


def test_reset_on_a_derived_tensor_zeroes_its_variables(assert_close):
    a = dg.fill((1, 1, 2, 2), 1.0)
    b = dg.fill((1, 1, 2, 2), 2.0)
    z = (a * b).sin()
    z.backward()
    assert a.grad() is not None
    z.reset()
    assert_close(a.grad(), torch.zeros(1, 1, 2, 2, dtype=torch.float64))
    assert_close(b.grad(), torch.zeros(1, 1, 2, 2, dtype=torch.float64))
    dg.reset(a)
    assert_close(dg.grad(a), torch.zeros(1, 1, 2, 2, dtype=torch.float64))


def test_constant_value_survives_backward(assert_close):
    c = dg.constant((1, 1, 2, 2), dg.Custom([1.0, 2.0, 3.0, 4.0]))
    before = c.data.clone()
    v = dg.fill((1, 1, 2, 2), 0.5)
    z = (c * v) @ c + v
    for _ in range(3):
        z.backward()
    assert_close(c.data, before)
    with pytest.raises(CapabilityError):
        c.grad()


def test_gradients_lookup():
    v = dg.fill((1, 1, 2, 2), 2.0)
    unrelated = dg.fill((1, 1, 2, 2), 5.0)
    c = dg.constant((1, 1, 2, 2), dg.Fill(3.0))
    h = v * c
    z = h + v
    grads = z.backward()

    assert grads.root is z
    assert grads.wrt(v).tolist() == [[[[4.0, 4.0], [4.0, 4.0]]]]
    assert grads.wrt(h).tolist() == [[[[1.0, 1.0], [1.0, 1.0]]]]
    assert grads.wrt(z).tolist() == [[[[1.0, 1.0], [1.0, 1.0]]]]
    assert grads.wrt(unrelated).tolist() == [[[[0.0, 0.0], [0.0, 0.0]]]]
    assert v in grads and unrelated not in grads and c not in grads
    assert grads.variables() == [v]
    assert len(grads) == 3
    with pytest.raises(CapabilityError):
        grads.wrt(c)
    with pytest.raises(TypeError):
        grads.wrt(torch.ones(1))


def test_gradients_of_a_pass_do_not_accumulate():
    v = dg.fill((1, 1, 1, 1), 1.0)
    z = v.neg()
    z.backward()
    grads = z.backward()
    assert grads.wrt(v).item() == -1.0
    assert v.grad().item() == -2.0


def test_backward_on_a_variable_leaf_seeds_ones():
    v = dg.fill((3, 4, 2, 1), 5.0)
    v.backward()
    assert bool((v.grad() == 1.0).all())


def test_seed_shapes_and_types(assert_close):
    v = dg.fill((1, 1, 1, 2), 1.0)
    z = v.identity()
    z.backward([[[[2.0, 3.0]]]])
    assert v.grad().tolist() == [[[[2.0, 3.0]]]]
    z.backward(dg.constant((1, 1, 1, 2), dg.Fill(1.0)))
    assert v.grad().tolist() == [[[[3.0, 4.0]]]]
    with pytest.raises(ShapeMismatchError, match="backward"):
        z.backward(torch.ones(1, 1, 2, 1))


def test_backward_rejects_non_tensors():
    with pytest.raises(TypeError):
        engine.backward(torch.ones(1, 1, 1, 1))
    with pytest.raises(TypeError):
        engine.grad("w")
    with pytest.raises(TypeError):
        engine.reset(None)


def test_broken_backward_rule_is_reported(monkeypatch):
    ops = dg.ops
    monkeypatch.setattr(ops, "_CATALOG", dict(ops._CATALOG))
    ops.register(Operation(
        "lossy",
        dg.shape.unary,
        lambda backend, shape, x: x.clone(),
        lambda backend, df, args, result: (),
    ))
    x = dg.fill((1, 1, 1, 1), 1.0)
    with pytest.raises(AutogradError, match="lossy"):
        ops.apply("lossy", x).backward()


def test_perceptron_scenario(assert_close):
    x = dg.eye((1, 1, 2, 3), 3.0).freeze()
    w = dg.variable((1, 1, 3, 2), dg.Normal())
    b = dg.variable((1, 1, 3, 3), dg.Fill(0.0))

    z = dg.add(dg.matmul(w, x), b)
    assert z.shape == (1, 1, 3, 3)
    z.backward()

    upstream = torch.ones(1, 1, 3, 3, dtype=torch.float64)
    assert w.grad().shape == (1, 1, 3, 2)
    assert_close(w.grad(), upstream @ x.data.transpose(-2, -1))
    assert_close(w.grad(), torch.full((1, 1, 3, 2), 3.0, dtype=torch.float64))
    assert b.grad().shape == (1, 1, 3, 3)
    assert_close(b.grad(), upstream)
    with pytest.raises(CapabilityError):
        x.grad()


def test_backward_follows_the_graph_dtype_after_defaults_change(assert_close):
    config.set_default_dtype(torch.float32)
    w = dg.randn((1, 1, 3, 2))
    x = dg.eye((1, 1, 2, 3), 3.0).freeze()
    v = dg.fill((1, 1, 3, 3), 0.5)
    z = w @ x + v.sin()
    config.set_default_dtype(torch.float64)

    grads = z.backward()
    assert w.grad().dtype == torch.float32
    assert v.grad().dtype == torch.float32
    assert_close(w.grad(), torch.full((1, 1, 3, 2), 3.0, dtype=torch.float32))

    z.backward(torch.ones(1, 1, 3, 3, dtype=torch.float64))
    assert w.grad().dtype == torch.float32
    assert_close(w.grad(), torch.full((1, 1, 3, 2), 6.0, dtype=torch.float32))

    unrelated = dg.fill((1, 1, 2, 2), 1.0)
    assert unrelated.dtype == torch.float64
    assert grads.wrt(w).dtype == torch.float32
    assert grads.wrt(unrelated).dtype == torch.float64


def test_reset_and_freeze_keep_the_value_dtype():
    config.set_default_dtype(torch.float32)
    v = dg.fill((1, 1, 2, 2), 1.0)
    config.set_default_dtype(torch.float64)
    v.reset()
    assert v.grad().dtype == torch.float32
    assert v.freeze().dtype == torch.float32
    assert v.freeze().unfreeze().dtype == torch.float32
