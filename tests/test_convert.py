import pytest
import torch
from itertools import product
import sys
sys.path.append("..")
from torch_spkern import CSRMatrix, COOMatrix, ELLMatrix, random_csr, random_triangular_csr, ShapeException
from torch_spkern.convert import coo2csr, csr2coo, csr2ell, csr2hyb, dense2csr

DEVICES = ['cpu'] + (['cuda'] if torch.cuda.is_available() else [])


def test_coo2csr_orders_by_row_then_col():
    val = torch.tensor([1., 2., 3., 4.])
    row = torch.tensor([2, 0, 2, 0])
    col = torch.tensor([1, 2, 0, 0])
    val, rowptr, col, shape = coo2csr(val, row, col, (3, 3))

    assert rowptr.tolist() == [0, 2, 2, 4]
    assert col.tolist() == [0, 2, 0, 1]
    assert val.tolist() == [4., 2., 3., 1.]


def test_csr2coo():
    val, rowptr, col, shape = dense2csr(torch.tensor([[1., 0.], [2., 3.]]))
    val, row, col, shape = csr2coo(val, rowptr, col, shape)
    assert row.tolist() == [0, 1, 1]
    assert col.tolist() == [0, 0, 1]


def test_csr2ell_layout():
    A = CSRMatrix.from_dense(torch.tensor([[1., 2.], [0., 3.]]))
    val, col, shape, max_nnz, internal_size = csr2ell(A.val, A.rowptr, A.col, A.shape)

    assert (max_nnz, internal_size) == (2, 2)
    # slot k of row r sits at r + k * internal_size
    assert val.tolist() == [1., 3., 2., 0.]
    assert col.tolist() == [0, 1, 1, 0]


def test_csr2hyb_split():
    A = CSRMatrix.from_dense(torch.tensor([[1., 2.], [0., 3.]]))
    (ell_val, ell_col, csr_rowptr, csr_col, csr_val,
     shape, ell_nnz, internal_size) = csr2hyb(A.val, A.rowptr, A.col, A.shape, 1)

    assert ell_val.tolist() == [1., 3.]
    assert ell_col.tolist() == [0, 1]
    assert csr_rowptr.tolist() == [0, 1, 1]
    assert csr_col.tolist() == [1]
    assert csr_val.tolist() == [2.]


@pytest.mark.parametrize(
    ['shape', 'device'],
    product([(1, 1), (10, 10), (7, 13)], DEVICES)
)
def test_round_trips_to_dense(shape, device):
    A = random_csr(shape, 0.3, device=device)
    D = A.to_dense()
    for B in (A.to_coo(), A.to_ell(), A.to_hyb(), A.to_coo().to_csr(), A.to_ell().to_coo()):
        torch.testing.assert_close(B.to_dense(), D)


def test_tril_triu_transpose():
    D = torch.randn(6, 6, dtype=torch.float64)
    A = CSRMatrix.from_dense(D)
    torch.testing.assert_close(A.tril().to_dense(), torch.tril(D))
    torch.testing.assert_close(A.triu(1).to_dense(), torch.triu(D, 1))
    torch.testing.assert_close(A.T.to_dense(), D.T)


def test_scipy_round_trip():
    A = random_triangular_csr(20, 0.3, lower=False)
    S = A.to_scipy()
    assert S.shape == (20, 20)
    torch.testing.assert_close(torch.from_numpy(S.toarray()), A.to_dense())
    torch.testing.assert_close(CSRMatrix.from_scipy(S).to_dense(), A.to_dense())


def test_random_triangular_shape():
    A = random_triangular_csr(30, 0.5, lower=True, unit=True)
    D = A.to_dense()
    torch.testing.assert_close(D, torch.tril(D))
    torch.testing.assert_close(torch.diagonal(D), torch.ones(30, dtype=torch.float64))


def test_invalid_containers():
    with pytest.raises(ShapeException):
        CSRMatrix(torch.tensor([0, 1]), torch.tensor([0]), torch.tensor([1.]), (2, 2))
    with pytest.raises(ShapeException):
        COOMatrix(torch.tensor([0, 1]), torch.tensor([0]), torch.tensor([1.]), (2, 2))
    with pytest.raises(ShapeException):
        CSRMatrix(torch.zeros(2, 2, dtype=torch.long), torch.tensor([0]), torch.tensor([1.]), (2, 2))


def test_index_out_of_range():
    with pytest.raises(ValueError):
        CSRMatrix(torch.tensor([0, 1]), torch.tensor([-1]), torch.tensor([1.]), (1, 2))
    with pytest.raises(ValueError):
        CSRMatrix(torch.tensor([0, 1]), torch.tensor([2]), torch.tensor([1.]), (1, 2))
    with pytest.raises(ValueError):
        COOMatrix(torch.tensor([3]), torch.tensor([0]), torch.tensor([1.]), (2, 2))
    with pytest.raises(ValueError):
        COOMatrix(torch.tensor([0]), torch.tensor([-1]), torch.tensor([1.]), (2, 2))
    with pytest.raises(ValueError):
        ELLMatrix(torch.tensor([0, 5]), torch.tensor([1., 2.]), (2, 2), 1)
    # padding slots (value 0) are not checked
    ELLMatrix(torch.tensor([0, 5]), torch.tensor([1., 0.]), (2, 2), 1)
