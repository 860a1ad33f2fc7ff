import torch
from typing import Tuple

from .sparse_matrix import CSRMatrix


def random_csr(shape:Tuple[int, int],
               density:float=0.1,
               device=torch.device('cpu'),
               dtype=torch.float64
               )->CSRMatrix:
    """
    random CSR matrix generator

    Positions are drawn with replacement, so duplicates are possible and
    kept (they add up in products).

    Parameters
    ----------
    shape : tuple
        (m,n) shape of the matrix
    density : float, optional
        Density of the matrix, by default 0.1
    device : torch.device, optional
        Device of the matrix, by default torch.device('cpu')
    dtype : torch.dtype, optional
        Data type of the matrix, by default torch.float64

    Returns
    -------
    CSRMatrix
    """
    assert 0 <= density <= 1, "density must be in [0, 1]"

    m, n = shape
    nnz = int(m * n * density)
    row = torch.randint(0, max(m, 1), (nnz,), device=device)
    col = torch.randint(0, max(n, 1), (nnz,), device=device)
    val = torch.randn(nnz, device=device, dtype=dtype)
    return CSRMatrix.from_coo(val, row, col, (m, n))


def random_triangular_csr(n:int,
                          density:float=0.1,
                          lower:bool=True,
                          unit:bool=False,
                          device=torch.device('cpu'),
                          dtype=torch.float64
                          )->CSRMatrix:
    """
    random triangular CSR matrix generator

    The strict triangle gets about ``density`` of its positions filled,
    without duplicates. The diagonal is always stored: ones for a unit
    matrix, values in [1, 2) with a random sign otherwise, which keeps
    substitution well conditioned.

    Parameters
    ----------
    n : int
        matrix size
    density : float, optional
        Density of the strict triangle, by default 0.1
    lower : bool, optional
        lower (True) or upper (False) triangular, by default True
    unit : bool, optional
        unit diagonal, by default False
    device : torch.device, optional
        Device of the matrix, by default torch.device('cpu')
    dtype : torch.dtype, optional
        Data type of the matrix, by default torch.float64

    Returns
    -------
    CSRMatrix
    """
    assert 0 <= density <= 1, "density must be in [0, 1]"

    mask = torch.rand(n, n, device=device) < density
    mask = torch.tril(mask, -1) if lower else torch.triu(mask, 1)
    row, col = torch.nonzero(mask, as_tuple=True)
    # scale off-diagonals so the solution does not blow up with n
    val = torch.randn(row.shape[0], device=device, dtype=dtype) / max(n, 1)

    idx = torch.arange(n, device=device)
    if unit:
        diag = torch.ones(n, device=device, dtype=dtype)
    else:
        sign = torch.where(torch.rand(n, device=device) < 0.5, -1.0, 1.0).to(dtype)
        diag = (1 + torch.rand(n, device=device, dtype=dtype)) * sign

    return CSRMatrix.from_coo(torch.cat([val, diag]),
                              torch.cat([row, idx]),
                              torch.cat([col, idx]),
                              (n, n))
