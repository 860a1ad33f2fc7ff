import pytest
import torch
from itertools import product
import sys
sys.path.append("..")
from torch_spkern import (
    CSRMatrix,
    solve,
    inplace_solve,
    lu_factorize,
    lu_substitute,
    ShapeException,
    ZeroDiagonalError,
)

DEVICES = ['cpu'] + (['cuda'] if torch.cuda.is_available() else [])
TAGS = ['unit_lower', 'lower', 'unit_upper', 'upper']


def triangular(n, tag, device):
    A = torch.randn(n, n, dtype=torch.float64, device=device) / n
    A = A + torch.eye(n, dtype=torch.float64, device=device) * 2
    return torch.tril(A) if tag.endswith('lower') else torch.triu(A)


@pytest.mark.parametrize(
    ['n', 'k', 'tag', 'trans_a', 'trans_b', 'device'],
    product([1, 8, 32], [1, 3], TAGS, [False, True], [False, True], DEVICES)
)
def test_dense_inplace_solve(n, k, tag, trans_a, trans_b, device):
    T = triangular(n, tag, device)
    A = T.T.contiguous() if trans_a else T
    rhs = torch.randn(n, k, dtype=torch.float64, device=device)
    B = rhs.T.clone(memory_format=torch.contiguous_format) if trans_b else rhs.clone()

    inplace_solve(A, B, tag, trans_a=trans_a, trans_b=trans_b)

    X = torch.linalg.solve_triangular(T, rhs,
                                      upper=tag.endswith('upper'),
                                      unitriangular=tag.startswith('unit'))
    torch.testing.assert_close(B.T if trans_b else B, X)


@pytest.mark.parametrize(
    ['n', 'tag', 'trans_a', 'trans_b'],
    product([8, 32], TAGS, [False, True], [False, True])
)
def test_dense_host_pytorch_agree(n, tag, trans_a, trans_b):
    T = triangular(n, tag, 'cpu')
    A = T.T.contiguous() if trans_a else T
    B = torch.randn(n, 4, dtype=torch.float64)
    B = B.T.contiguous() if trans_b else B

    X_host = solve(A, B, tag, trans_a=trans_a, trans_b=trans_b, backend='host')
    X_torch = solve(A, B, tag, trans_a=trans_a, trans_b=trans_b, backend='pytorch')
    torch.testing.assert_close(X_host, X_torch)


@pytest.mark.parametrize(
    ['tag', 'device'],
    product(TAGS, DEVICES)
)
def test_dense_vector_rhs(tag, device):
    T = triangular(16, tag, device)
    b = torch.randn(16, dtype=torch.float64, device=device)
    b0 = b.clone()

    x = solve(T, b, tag)
    assert x.shape == (16,)
    torch.testing.assert_close(b, b0)

    T_eff = T.clone()
    if tag.startswith('unit'):
        T_eff.fill_diagonal_(1.)
    torch.testing.assert_close(T_eff @ x, b)


def test_solve_trans_b_returns_op_b_shape():
    T = triangular(5, 'lower', 'cpu')
    B = torch.randn(3, 5, dtype=torch.float64)
    X = solve(T, B, 'lower', trans_b=True)
    assert X.shape == (5, 3)
    torch.testing.assert_close(T @ X, B.T)


@pytest.mark.parametrize(
    ['n', 'backend', 'device'],
    product([1, 8, 32], ['auto', 'pytorch'], DEVICES)
)
def test_lu(n, backend, device):
    A = torch.randn(n, n, dtype=torch.float64, device=device)
    A = A + torch.eye(n, dtype=torch.float64, device=device) * n
    LU = A.clone()
    lu_factorize(LU, backend=backend)

    L = torch.tril(LU, -1) + torch.eye(n, dtype=torch.float64, device=device)
    U = torch.triu(LU)
    torch.testing.assert_close(L @ U, A)

    b = torch.randn(n, dtype=torch.float64, device=device)
    x = b.clone()
    lu_substitute(LU, x, backend=backend)
    torch.testing.assert_close(x, torch.linalg.solve(A, b))


def test_lu_host_pytorch_agree():
    A = torch.randn(24, 24, dtype=torch.float64) + torch.eye(24, dtype=torch.float64) * 24
    LU_host, LU_torch = A.clone(), A.clone()
    lu_factorize(LU_host, backend='host')
    lu_factorize(LU_torch, backend='pytorch')
    torch.testing.assert_close(LU_host, LU_torch)


def test_lu_substitute_matrix_rhs_and_csr_factors():
    n = 12
    A = torch.randn(n, n, dtype=torch.float64) + torch.eye(n, dtype=torch.float64) * n
    LU = A.clone()
    lu_factorize(LU)

    B = torch.randn(n, 3, dtype=torch.float64)
    X = B.clone()
    lu_substitute(LU, X)
    torch.testing.assert_close(A @ X, B)

    b = B[:, 0].clone()
    lu_substitute(CSRMatrix.from_dense(LU), b)
    torch.testing.assert_close(b, X[:, 0])


@pytest.mark.parametrize('backend', ['auto', 'pytorch'])
def test_lu_zero_pivot(backend):
    A = torch.tensor([[0., 1.],
                      [1., 0.]], dtype=torch.float64)
    with pytest.raises(ZeroDiagonalError) as err:
        lu_factorize(A, backend=backend)
    assert err.value.row == 0


def test_shape_errors():
    A = torch.eye(3, dtype=torch.float64)
    with pytest.raises(ShapeException):
        solve(torch.ones(3, 4, dtype=torch.float64), torch.ones(3, dtype=torch.float64), 'lower')
    with pytest.raises(ShapeException):
        solve(A, torch.ones(4, dtype=torch.float64), 'lower')
    with pytest.raises(ShapeException):
        solve(A, torch.ones(3, 4, dtype=torch.float64), 'lower', trans_b=True)
    with pytest.raises(ShapeException):
        solve(CSRMatrix.from_dense(A), torch.ones(3, 2, dtype=torch.float64), 'lower')
    with pytest.raises(ShapeException):
        lu_factorize(torch.ones(2, 3, dtype=torch.float64))


def test_argument_errors():
    A = torch.eye(3, dtype=torch.float64)
    with pytest.raises(ValueError):
        solve(A, torch.ones(3, dtype=torch.float64), 'diagonal')
    with pytest.raises(ValueError):
        solve(A, torch.ones(3, dtype=torch.float32), 'lower')
    with pytest.raises(ValueError):
        solve(A, torch.ones(3, dtype=torch.float64), 'lower', backend='cusparse')


def test_float32_warns():
    A = torch.eye(3)
    with pytest.warns(UserWarning):
        solve(A, torch.ones(3), 'lower')


def test_host_rejects_bfloat16():
    A = torch.eye(3, dtype=torch.bfloat16)
    with pytest.raises(ValueError):
        solve(A, torch.ones(3, dtype=torch.bfloat16), 'lower', backend='host')
    with pytest.raises(ValueError):
        lu_factorize(A.clone(), backend='host')
    with pytest.raises(ValueError):
        solve(CSRMatrix.from_dense(A), torch.ones(3, dtype=torch.bfloat16), 'lower')


def test_unsupported_residency():
    A = torch.empty(3, 3, dtype=torch.float64, device='meta')
    b = torch.empty(3, dtype=torch.float64, device='meta')
    with pytest.raises(NotImplementedError):
        inplace_solve(A, b, 'lower')
    with pytest.raises(NotImplementedError):
        lu_factorize(A)


if __name__ == '__main__':
    test_dense_inplace_solve(8, 3, 'lower', True, True, 'cpu')
