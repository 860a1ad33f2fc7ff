"""
Jacobi (diagonal) preconditioners: M^{-1} = diag(A)^{-1}.

Two variants share one interface (``init``, ``apply``, ``__call__``):

- JacobiPreconditioner: any matrix that can list its entries (dense
  tensor, COOMatrix, ELLMatrix, HYBMatrix, CSRMatrix)
- CSRJacobiPreconditioner: CSR matrices, diagonal taken with
  ``row_info(..., info='diagonal')`` on the matrix's own backend

Both refuse a matrix with a missing or zero diagonal entry, so ``apply``
never divides by zero.

Usage
-----
>>> P = jacobi_preconditioner(A)
>>> r = b - A @ x
>>> P.apply(r)        # in place, r[i] /= diag(A)[i]
>>> z = P(b - A @ x)  # on a copy
"""

import torch
from typing import Optional, Union

from .backends import BackendType
from .check import ShapeException, ZeroDiagonalError, check_square
from .sparse_matrix import CSRMatrix, COOMatrix, SparseMatrix
from .spmv import row_info

ZERO_DIAGONAL_MESSAGE = "Zero in diagonal encountered while setting up Jacobi preconditioner"


def _check_nonzero(diag:torch.Tensor):
    zero_rows = torch.nonzero(diag == 0).flatten()
    if zero_rows.numel() > 0:
        raise ZeroDiagonalError(ZERO_DIAGONAL_MESSAGE, row=int(zero_rows[0]))


class _Jacobi:
    diag_A: Optional[torch.Tensor] = None

    @property
    def diagonal(self)->torch.Tensor:
        if self.diag_A is None:
            raise RuntimeError("Preconditioner is not initialised, call init() first")
        return self.diag_A

    def apply(self, vec:torch.Tensor)->torch.Tensor:
        """Divide ``vec`` by the stored diagonal, in place"""
        diag = self.diagonal
        if vec.shape != diag.shape:
            raise ShapeException("vec", tuple(vec.shape), f"[{diag.shape[0]}]")
        return vec.div_(diag)

    def __call__(self, vec:torch.Tensor)->torch.Tensor:
        return self.apply(vec.clone())


class JacobiPreconditioner(_Jacobi):
    """
    Jacobi preconditioner for any matrix that can list its entries.

    Duplicate diagonal entries of a COO matrix add up, the same as they
    do in a product.

    Parameters
    ----------
    A : torch.Tensor or sparse matrix
        [n, n] system matrix
    """

    def __init__(self, A:Union[torch.Tensor, SparseMatrix]):
        self.init(A)

    def init(self, A:Union[torch.Tensor, SparseMatrix]):
        """(Re)compute the diagonal; the previous one is discarded."""
        check_square(tuple(A.shape), "A")
        n = A.shape[0]

        if isinstance(A, torch.Tensor):
            diag = torch.diagonal(A).clone()
            found = torch.ones(n, dtype=torch.bool, device=A.device)
        else:
            coo = A if isinstance(A, COOMatrix) else A.to_coo()
            on_diag = coo.row == coo.col
            rows = coo.row[on_diag]
            diag = torch.zeros(n, dtype=coo.dtype, device=coo.device)
            diag.scatter_add_(0, rows, coo.val[on_diag])
            found = torch.zeros(n, dtype=torch.bool, device=coo.device)
            found[rows] = True

        missing = torch.nonzero(~found).flatten()
        if missing.numel() > 0:
            raise ZeroDiagonalError(ZERO_DIAGONAL_MESSAGE, row=int(missing[0]))
        _check_nonzero(diag)
        self.diag_A = diag


class CSRJacobiPreconditioner(_Jacobi):
    """
    Jacobi preconditioner specialised for CSR matrices.

    The diagonal is read with the row reduction kernel of the backend
    owning ``A``; rows without a stored diagonal read as 0 and are refused.

    Parameters
    ----------
    A : CSRMatrix
        [n, n] system matrix
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'
    """

    def __init__(self, A:CSRMatrix, backend:BackendType='auto'):
        self.backend = backend
        self.init(A)

    def init(self, A:CSRMatrix):
        """(Re)compute the diagonal; the previous one is discarded."""
        check_square(tuple(A.shape), "A")
        diag = row_info(A, info='diagonal', backend=self.backend)
        _check_nonzero(diag)
        self.diag_A = diag


def jacobi_preconditioner(A:Union[torch.Tensor, SparseMatrix],
                          backend:BackendType='auto')->_Jacobi:
    """Pick the CSR variant for a CSRMatrix, the generic one otherwise"""
    if isinstance(A, CSRMatrix):
        return CSRJacobiPreconditioner(A, backend=backend)
    return JacobiPreconditioner(A)
