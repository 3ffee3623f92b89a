"""A single perceptron layer z = W @ x + b, fitted to a fixed target.

x is frozen input, W and b are trainable. Values are immutable, so each step
builds fresh Variables from the updated buffers; the gradient accumulators
would otherwise keep summing across steps (see reset()).
"""
import time

import torch

import dagrad as dg

if __name__ == "__main__":
    dg.configure_logging(level="INFO")
    dg.manual_seed(0)

    x = dg.eye((1, 1, 2, 3), 3.0).freeze()
    w = dg.randn((1, 1, 3, 2))
    b = dg.fill((1, 1, 3, 3), 0.0)
    target = dg.constant((1, 1, 3, 3), dg.Eye(1.0))
    lr = 0.01

    st = time.time()
    for step in range(200):
        z = w @ x + b
        err = z - target
        loss = err * err
        loss.backward()

        w = dg.variable(w.shape, dg.Custom(w.data - lr * w.grad()))
        b = dg.variable(b.shape, dg.Custom(b.data - lr * b.grad()))
        if step % 50 == 0:
            print(f"step {step}: loss {loss.data.sum().item():.6f}")
    et = time.time()
    print(f"dagrad training Takes {et-st} seconds")

    z = w @ x + b
    print(torch.round(z.data, decimals=3))
