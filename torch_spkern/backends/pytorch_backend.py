"""
PyTorch-native backend for accelerator-resident data.

This backend uses vectorised PyTorch operations only, so it works on any
device PyTorch supports (CUDA in particular, but also CPU, which is how
its equivalence with the host backend is tested).

Kernels:
- Dense triangular solve: torch.linalg.solve_triangular, copied back into the rhs
- CSR triangular solve: densified system + dense triangular solve
- LU: right-looking elimination without pivoting (rank-1 updates via addr_)
- SpMV: gather + index_add_ (CSR, COO, HYB overflow), masked slot sums (ELL)
- Row reduction: index_add_ / scatter_reduce_ over the expanded row indices

Results agree with the host backend up to floating-point rounding order.
Missing or zero diagonals raise ZeroDiagonalError before anything is written.
"""

import torch
from torch import Tensor
import warnings

from . import parse_tag, ROW_INFO_TYPES
from ..check import ZeroDiagonalError
from ..sparse_matrix import CSRMatrix, COOMatrix, ELLMatrix, HYBMatrix

# Densifying a CSR triangular solve above this size warns
DENSE_FALLBACK_WARN_SIZE = 4096


def _csr_rows(rowptr: Tensor) -> Tensor:
    """Row index of every CSR entry."""
    m = rowptr.shape[0] - 1
    return torch.repeat_interleave(
        torch.arange(m, dtype=torch.long, device=rowptr.device),
        rowptr[1:] - rowptr[:-1]
    )


def _check_diagonal(A: Tensor, lower: bool) -> None:
    zero_rows = torch.nonzero(torch.diagonal(A) == 0).flatten()
    if zero_rows.numel() > 0:
        # report the row substitution would reach first
        row = zero_rows[0] if lower else zero_rows[-1]
        raise ZeroDiagonalError("Zero in diagonal encountered during triangular solve", row=int(row))


def csr_to_dense(A: CSRMatrix) -> Tensor:
    """Dense copy of a CSR matrix on its own device."""
    dense = torch.zeros(A.shape, dtype=A.dtype, device=A.device)
    dense.index_put_((_csr_rows(A.rowptr), A.col), A.val, accumulate=True)
    return dense


# ============================================================================
# Triangular solves and LU
# ============================================================================

def inplace_solve_dense(A: Tensor, B: Tensor, tag: str,
                        trans_a: bool = False, trans_b: bool = False) -> None:
    lower, unit = parse_tag(tag)
    A_op = A.T if trans_a else A
    B_op = B.T if trans_b else B

    if not unit:
        _check_diagonal(A_op, lower)

    rhs = B_op.unsqueeze(-1) if B_op.ndim == 1 else B_op
    X = torch.linalg.solve_triangular(A_op, rhs, upper=not lower, unitriangular=unit)
    B_op.copy_(X.reshape(B_op.shape))


def inplace_solve_csr(A: CSRMatrix, vec: Tensor, tag: str, trans_a: bool = False) -> None:
    n = A.shape[0]
    if n > DENSE_FALLBACK_WARN_SIZE:
        warnings.warn(f"CSR triangular solve densifies a {n}x{n} system on {A.device}")
    inplace_solve_dense(csr_to_dense(A), vec, tag, trans_a=trans_a)


def lu_factorize(A: Tensor) -> None:
    n = A.shape[0]
    for k in range(n):
        pivot = A[k, k]
        if pivot == 0:
            raise ZeroDiagonalError("Zero pivot encountered in LU factorization", row=k)
        A[k + 1:, k].div_(pivot)
        A[k + 1:, k + 1:].addr_(A[k + 1:, k], A[k, k + 1:], alpha=-1)


# ============================================================================
# Sparse matrix-vector products
# ============================================================================

def _ell_sum(val: Tensor, col: Tensor, max_nnz: int, internal_size: int,
             num_rows: int, vec: Tensor) -> Tensor:
    val = val.view(max_nnz, internal_size)[:, :num_rows]
    col = col.view(max_nnz, internal_size)[:, :num_rows]
    terms = torch.where(val != 0, vec[col] * val, torch.zeros_like(val))
    return terms.sum(dim=0)


def prod_csr(A: CSRMatrix, vec: Tensor, out: Tensor) -> None:
    out.zero_()
    out.index_add_(0, _csr_rows(A.rowptr), A.val * vec[A.col])


def prod_coo(A: COOMatrix, vec: Tensor, out: Tensor) -> None:
    out.zero_()
    out.index_add_(0, A.row, A.val * vec[A.col])


def prod_ell(A: ELLMatrix, vec: Tensor, out: Tensor) -> None:
    out.copy_(_ell_sum(A.val, A.col, A.max_nnz, A.internal_size, A.shape[0], vec))


def prod_hyb(A: HYBMatrix, vec: Tensor, out: Tensor) -> None:
    out.copy_(_ell_sum(A.ell_val, A.ell_col, A.ell_nnz, A.internal_size, A.shape[0], vec))
    out.index_add_(0, _csr_rows(A.csr_rowptr), A.csr_val * vec[A.csr_col])


# ============================================================================
# Row reduction
# ============================================================================

def row_info(A: CSRMatrix, out: Tensor, info: str) -> None:
    if info not in ROW_INFO_TYPES:
        raise ValueError(f"Unknown row info type: {info}. Available: {', '.join(ROW_INFO_TYPES)}")
    rows = _csr_rows(A.rowptr)
    out.zero_()

    if info == 'norm_inf':
        out.scatter_reduce_(0, rows, A.val.abs(), reduce='amax', include_self=True)
    elif info == 'norm_1':
        out.index_add_(0, rows, A.val.abs())
    elif info == 'norm_2':
        out.index_add_(0, rows, A.val * A.val)
        out.sqrt_()
    else:
        # first stored diagonal entry of each row wins
        nnz = A.nnz
        positions = torch.nonzero(A.col == rows).flatten()
        first = torch.full((A.shape[0],), nnz, dtype=torch.long, device=A.device)
        first.scatter_reduce_(0, rows[positions], positions, reduce='amin', include_self=True)
        found = first < nnz
        out[found] = A.val[first[found]]
