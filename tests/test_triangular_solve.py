import pytest
import torch
import numpy as np
from scipy.sparse.linalg import spsolve_triangular
from itertools import product
import sys
sys.path.append("..")
from torch_spkern import (
    CSRMatrix,
    solve,
    inplace_solve,
    random_triangular_csr,
    ZeroDiagonalError,
)

DEVICES = ['cpu'] + (['cuda'] if torch.cuda.is_available() else [])
TAGS = ['unit_lower', 'lower', 'unit_upper', 'upper']


@pytest.mark.parametrize(
    ['fmt', 'backend'],
    product(['dense', 'csr'], ['auto', 'pytorch'])
)
def test_lower_example(fmt, backend):
    L = torch.tensor([[2., 0., 0.],
                      [1., 3., 0.],
                      [0., 1., 4.]], dtype=torch.float64)
    A = CSRMatrix.from_dense(L) if fmt == 'csr' else L
    b = torch.tensor([2., 4., 5.], dtype=torch.float64)

    inplace_solve(A, b, 'lower', backend=backend)
    torch.testing.assert_close(b, torch.ones(3, dtype=torch.float64))

    b = torch.tensor([2., 5., 9.], dtype=torch.float64)
    inplace_solve(A, b, 'lower', backend=backend)
    torch.testing.assert_close(b, torch.tensor([1., 4. / 3., 23. / 12.], dtype=torch.float64))


@pytest.mark.parametrize(
    ['fmt', 'backend'],
    product(['dense', 'csr'], ['auto', 'pytorch'])
)
def test_unit_upper_example(fmt, backend):
    U = torch.tensor([[1., 2., 0.],
                      [0., 1., 3.],
                      [0., 0., 1.]], dtype=torch.float64)
    A = CSRMatrix.from_dense(U) if fmt == 'csr' else U
    b = torch.tensor([5., 7., 3.], dtype=torch.float64)

    x = solve(A, b, 'unit_upper', backend=backend)
    torch.testing.assert_close(x, torch.tensor([9., -2., 3.], dtype=torch.float64))
    # solve leaves the rhs alone
    torch.testing.assert_close(b, torch.tensor([5., 7., 3.], dtype=torch.float64))


@pytest.mark.parametrize(
    ['fmt', 'backend'],
    product(['dense', 'csr'], ['auto', 'pytorch'])
)
def test_unit_tag_ignores_stored_diagonal(fmt, backend):
    L = torch.tensor([[5., 0., 0.],
                      [1., 7., 0.],
                      [2., 1., 9.]], dtype=torch.float64)
    L_unit = L.clone()
    L_unit.fill_diagonal_(1.)
    b = torch.tensor([1., 2., 3.], dtype=torch.float64)

    A = CSRMatrix.from_dense(L) if fmt == 'csr' else L
    x = solve(A, b, 'unit_lower', backend=backend)
    torch.testing.assert_close(L_unit @ x, b)


@pytest.mark.parametrize(
    ['n', 'tag', 'device'],
    product([1, 16, 64], TAGS, DEVICES)
)
def test_csr_solve(n, tag, device):
    lower, unit = tag.endswith('lower'), tag.startswith('unit')
    A = random_triangular_csr(n, 0.3, lower=lower, unit=unit, device=device)
    x = torch.randn(n, dtype=torch.float64, device=device)
    b = A @ x

    inplace_solve(A, b, tag)
    torch.testing.assert_close(b, x)


@pytest.mark.parametrize(
    ['n', 'tag'],
    product([8, 64], TAGS)
)
def test_csr_solve_scipy(n, tag):
    lower, unit = tag.endswith('lower'), tag.startswith('unit')
    A = random_triangular_csr(n, 0.3, lower=lower, unit=unit)
    b = torch.randn(n, dtype=torch.float64)

    x = solve(A, b, tag)
    x2 = spsolve_triangular(A.to_scipy(), b.numpy(), lower=lower, unit_diagonal=unit)
    torch.testing.assert_close(x, torch.from_numpy(np.asarray(x2)))


@pytest.mark.parametrize(
    ['n', 'tag', 'device'],
    product([1, 16, 64], TAGS, DEVICES)
)
def test_csr_transposed_solve(n, tag, device):
    # the tag describes A^T, so the stored matrix has the opposite shape
    stored_lower = not tag.endswith('lower')
    unit = tag.startswith('unit')
    A = random_triangular_csr(n, 0.3, lower=stored_lower, unit=unit, device=device)
    b = torch.randn(n, dtype=torch.float64, device=device)

    x = solve(A, b, tag, trans_a=True)
    x2 = solve(A.T, b, tag)
    torch.testing.assert_close(x, x2)
    torch.testing.assert_close(A.T @ x, b)


@pytest.mark.parametrize(
    ['n', 'tag', 'trans_a'],
    product([16, 64], TAGS, [False, True])
)
def test_csr_host_pytorch_agree(n, tag, trans_a):
    lower = tag.endswith('lower') != trans_a
    A = random_triangular_csr(n, 0.2, lower=lower, unit=tag.startswith('unit'))
    b = torch.randn(n, dtype=torch.float64)

    x_host = solve(A, b, tag, trans_a=trans_a, backend='host')
    x_torch = solve(A, b, tag, trans_a=trans_a, backend='pytorch')
    torch.testing.assert_close(x_host, x_torch)


@pytest.mark.parametrize(
    ['fmt', 'backend'],
    product(['dense', 'csr'], ['auto', 'pytorch'])
)
def test_zero_diagonal(fmt, backend):
    L = torch.tensor([[2., 0., 0.],
                      [1., 0., 0.],
                      [0., 1., 4.]], dtype=torch.float64)
    A = CSRMatrix.from_dense(L) if fmt == 'csr' else L
    b = torch.ones(3, dtype=torch.float64)

    with pytest.raises(ZeroDiagonalError) as err:
        inplace_solve(A, b, 'lower', backend=backend)
    assert err.value.row == 1
    assert isinstance(err.value, ZeroDivisionError)

    # the same matrix read as L^T, an upper system
    with pytest.raises(ZeroDiagonalError) as err:
        inplace_solve(A, torch.ones(3, dtype=torch.float64), 'upper', trans_a=True, backend=backend)
    assert err.value.row == 1


def unsorted_csr(lower):
    # columns stored in descending order inside every row
    if lower:
        # [[2, 0, 0], [1, 3, 0], [4, 1, 5]]
        return CSRMatrix(torch.tensor([0, 1, 3, 6]),
                         torch.tensor([0, 1, 0, 2, 1, 0]),
                         torch.tensor([2., 3., 1., 5., 1., 4.], dtype=torch.float64),
                         (3, 3))
    # [[2, 1, 4], [0, 3, 1], [0, 0, 5]]
    return CSRMatrix(torch.tensor([0, 3, 5, 6]),
                     torch.tensor([2, 1, 0, 2, 1, 2]),
                     torch.tensor([4., 1., 2., 1., 3., 5.], dtype=torch.float64),
                     (3, 3))


@pytest.mark.parametrize(
    ['tag', 'trans_a', 'backend'],
    product(TAGS, [False, True], ['auto', 'pytorch'])
)
def test_csr_solve_unsorted_columns(tag, trans_a, backend):
    stored_lower = tag.endswith('lower') != trans_a
    A = unsorted_csr(stored_lower)
    b = torch.tensor([1., -2., 3.], dtype=torch.float64)

    x = solve(A, b, tag, trans_a=trans_a, backend=backend)

    op_A = A.to_dense().T if trans_a else A.to_dense()
    if tag.startswith('unit'):
        op_A.fill_diagonal_(1.)
    torch.testing.assert_close(op_A @ x, b)
    # same answer as the sorted storage of the same matrix
    sorted_A = CSRMatrix.from_dense(A.to_dense())
    torch.testing.assert_close(x, solve(sorted_A, b, tag, trans_a=trans_a, backend=backend))


@pytest.mark.parametrize('backend', ['auto', 'pytorch'])
def test_unit_solve_without_stored_diagonal(backend):
    # strictly lower part only, no diagonal stored at all
    A = CSRMatrix.from_dense(torch.tensor([[0., 0.],
                                           [3., 0.]], dtype=torch.float64))
    b = torch.tensor([1., 5.], dtype=torch.float64)

    x = solve(A, b, 'unit_lower', backend=backend)
    torch.testing.assert_close(x, torch.tensor([1., 2.], dtype=torch.float64))


def test_explicit_zero_diagonal_csr():
    A = CSRMatrix(torch.tensor([0, 1, 3]),
                  torch.tensor([0, 0, 1]),
                  torch.tensor([1., 2., 0.], dtype=torch.float64),
                  (2, 2))
    with pytest.raises(ZeroDiagonalError):
        solve(A, torch.ones(2, dtype=torch.float64), 'lower')


if __name__ == '__main__':
    test_csr_solve(16, 'lower', 'cpu')
