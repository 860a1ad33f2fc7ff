"""
Single-threaded host backend.

All kernels run on borrowed NumPy views of CPU tensors (see
``torch_spkern.sparse_matrix.host_array``) and write their result into a
caller-supplied buffer; the right-hand side of a triangular solve is
overwritten with the solution. Loops follow the classic substitution
order so that floating-point accumulation happens entry by entry, in
storage order.

Kernels:
- csr_inplace_solve / csr_trans_inplace_solve: CSR triangular substitution,
  direct (A x = b) and transposed (A^T x = b) without forming A^T
- dense_inplace_solve: dense triangular substitution, vector or matrix rhs
- dense_lu_factorize: LU without pivoting, L\\U stored in place
- csr_prod / coo_prod / ell_prod / hyb_prod: y = A x per storage layout
- csr_row_info: per-row max-abs, 1-norm, 2-norm or diagonal
"""

import operator
import numpy as np
from torch import Tensor

from . import parse_tag, ROW_INFO_TYPES
from ..check import ZeroDiagonalError
from ..sparse_matrix import (
    CSRMatrix, COOMatrix, ELLMatrix, HYBMatrix,
    CSRView, COOView, ELLView, HYBView,
    host_array,
)


# ============================================================================
# CSR triangular solve, A \ b
# ============================================================================

def csr_inplace_solve(view: CSRView, vec: np.ndarray, num_cols: int, tag: str) -> None:
    """
    Row-oriented substitution for a CSR triangular matrix.

    Lower tags sweep rows upwards, upper tags downwards. For every row the
    already-solved entries (col < row for lower, col > row for upper) are
    subtracted from the rhs; non-unit tags remember the diagonal during the
    same scan and divide by it at the end of the row. Unit tags never read
    the diagonal, and their first row is left as it is.
    """
    lower, unit = parse_tag(tag)
    rowptr, col, val = view
    solved = operator.lt if lower else operator.gt

    if lower:
        rows = range(1 if unit else 0, num_cols)
    else:
        rows = range(num_cols - (2 if unit else 1), -1, -1)

    for row in rows:
        vec_entry = vec[row]

        # substitute and remember diagonal entry
        diagonal_entry = 0
        for i in range(rowptr[row], rowptr[row + 1]):
            col_index = col[i]
            if solved(col_index, row):
                vec_entry -= vec[col_index] * val[i]
            elif col_index == row:
                diagonal_entry = val[i]

        if not unit:
            if diagonal_entry == 0:
                raise ZeroDiagonalError("Zero in diagonal encountered during triangular solve", row=row)
            vec_entry = vec_entry / diagonal_entry
        vec[row] = vec_entry


# ============================================================================
# CSR triangular solve, A^T \ b
# ============================================================================

def csr_trans_inplace_solve(view: CSRView, vec: np.ndarray, num_cols: int, tag: str) -> None:
    """
    Column-oriented substitution for the transpose of a CSR matrix.

    Row ``c`` of the stored matrix is column ``c`` of the transpose, so the
    sweep finalises ``vec[c]`` and scatters it into every dependent entry
    (col > c for lower, col < c for upper). The tag describes the transposed
    matrix: 'lower' here means the stored matrix is upper triangular.
    Non-unit tags look the diagonal up first (first match wins), divide,
    then walk the row again to scatter.
    """
    lower, unit = parse_tag(tag)
    rowptr, col, val = view
    dependent = operator.gt if lower else operator.lt
    cols = range(num_cols) if lower else range(num_cols - 1, -1, -1)

    for c in cols:
        col_begin = rowptr[c]
        col_end = rowptr[c + 1]

        if not unit:
            diagonal_entry = 0
            for i in range(col_begin, col_end):
                if col[i] == c:
                    diagonal_entry = val[i]
                    break
            if diagonal_entry == 0:
                raise ZeroDiagonalError("Zero in diagonal encountered during triangular solve", row=c)
            vec[c] = vec[c] / diagonal_entry

        vec_entry = vec[c]
        for i in range(col_begin, col_end):
            row_index = col[i]
            if dependent(row_index, c):
                vec[row_index] -= vec_entry * val[i]


# ============================================================================
# Dense triangular solve and LU
# ============================================================================

def dense_inplace_solve(A: np.ndarray, B: np.ndarray, tag: str) -> None:
    """
    Substitution on a dense system; ``B`` is a vector or an (n, k) matrix.

    Only the triangle named by ``tag`` is read, so the combined L\\U output
    of ``dense_lu_factorize`` can be passed for both substitutions.
    """
    lower, unit = parse_tag(tag)
    n = A.shape[0]
    rows = range(n) if lower else range(n - 1, -1, -1)

    for i in rows:
        if lower and i > 0:
            B[i] -= A[i, :i] @ B[:i]
        elif not lower and i < n - 1:
            B[i] -= A[i, i + 1:] @ B[i + 1:]

        if not unit:
            diagonal_entry = A[i, i]
            if diagonal_entry == 0:
                raise ZeroDiagonalError("Zero in diagonal encountered during triangular solve", row=i)
            B[i] /= diagonal_entry


def dense_lu_factorize(A: np.ndarray) -> None:
    """
    Row-by-row Doolittle factorization without pivoting.

    Row ``i`` is eliminated against the already finished rows ``k < i``;
    afterwards its diagonal is the pivot ``U[i, i]`` and is checked.
    """
    n = A.shape[0]
    for i in range(n):
        for k in range(i):
            A[i, k] /= A[k, k]
            A[i, k + 1:] -= A[i, k] * A[k, k + 1:]
        if A[i, i] == 0:
            raise ZeroDiagonalError("Zero pivot encountered in LU factorization", row=i)


# ============================================================================
# Sparse matrix-vector products
# ============================================================================

def csr_prod(view: CSRView, vec: np.ndarray, result: np.ndarray, num_rows: int) -> None:
    rowptr, col, val = view
    for row in range(num_rows):
        dot_prod = result.dtype.type(0)
        for i in range(rowptr[row], rowptr[row + 1]):
            dot_prod += val[i] * vec[col[i]]
        result[row] = dot_prod


def coo_prod(view: COOView, vec: np.ndarray, result: np.ndarray) -> None:
    # scatter over unordered triples, so the whole result starts at zero
    row, col, val = view
    result[:] = 0
    for i in range(val.shape[0]):
        result[row[i]] += val[i] * vec[col[i]]


def _ell_row_sum(view: ELLView, vec: np.ndarray, row: int, num_items: int):
    col, val, _, internal_size = view
    total = val.dtype.type(0)
    for item_id in range(num_items):
        offset = row + item_id * internal_size
        entry = val[offset]
        if entry != 0:
            total += vec[col[offset]] * entry
    return total


def ell_prod(view: ELLView, vec: np.ndarray, result: np.ndarray, num_rows: int) -> None:
    for row in range(num_rows):
        result[row] = _ell_row_sum(view, vec, row, view.max_nnz)


def hyb_prod(view: HYBView, vec: np.ndarray, result: np.ndarray, num_rows: int) -> None:
    rowptr, col, val = view.csr
    for row in range(num_rows):
        total = _ell_row_sum(view.ell, vec, row, view.ell.max_nnz)
        for i in range(rowptr[row], rowptr[row + 1]):
            total += vec[col[i]] * val[i]
        result[row] = total


# ============================================================================
# Row reduction
# ============================================================================

def csr_row_info(view: CSRView, result: np.ndarray, num_rows: int, info: str) -> None:
    """
    One scalar per row: 'norm_inf', 'norm_1', 'norm_2' or 'diagonal'.

    Every reduction is seeded at zero, so an empty row yields 0; a row
    without a stored diagonal also yields 0 for 'diagonal'.
    """
    if info not in ROW_INFO_TYPES:
        raise ValueError(f"Unknown row info type: {info}. Available: {', '.join(ROW_INFO_TYPES)}")
    rowptr, col, val = view
    zero = result.dtype.type(0)

    for row in range(num_rows):
        value = zero
        row_begin, row_end = rowptr[row], rowptr[row + 1]

        if info == 'norm_inf':
            for i in range(row_begin, row_end):
                value = max(value, abs(val[i]))
        elif info == 'norm_1':
            for i in range(row_begin, row_end):
                value += abs(val[i])
        elif info == 'norm_2':
            for i in range(row_begin, row_end):
                value += val[i] * val[i]
            value = np.sqrt(value)
        else:
            for i in range(row_begin, row_end):
                if col[i] == row:
                    value = val[i]
                    break

        result[row] = value


# ============================================================================
# Backend interface
# ============================================================================

def inplace_solve_dense(A: Tensor, B: Tensor, tag: str,
                        trans_a: bool = False, trans_b: bool = False) -> None:
    A_np = host_array(A)
    B_np = host_array(B)
    dense_inplace_solve(A_np.T if trans_a else A_np,
                        B_np.T if trans_b else B_np,
                        tag)


def inplace_solve_csr(A: CSRMatrix, vec: Tensor, tag: str, trans_a: bool = False) -> None:
    if trans_a:
        csr_trans_inplace_solve(A.view(), host_array(vec), A.shape[0], tag)
    else:
        csr_inplace_solve(A.view(), host_array(vec), A.shape[1], tag)


def lu_factorize(A: Tensor) -> None:
    dense_lu_factorize(host_array(A))


def prod_csr(A: CSRMatrix, vec: Tensor, out: Tensor) -> None:
    csr_prod(A.view(), host_array(vec), host_array(out), A.shape[0])


def prod_coo(A: COOMatrix, vec: Tensor, out: Tensor) -> None:
    coo_prod(A.view(), host_array(vec), host_array(out))


def prod_ell(A: ELLMatrix, vec: Tensor, out: Tensor) -> None:
    ell_prod(A.view(), host_array(vec), host_array(out), A.shape[0])


def prod_hyb(A: HYBMatrix, vec: Tensor, out: Tensor) -> None:
    hyb_prod(A.view(), host_array(vec), host_array(out), A.shape[0])


def row_info(A: CSRMatrix, out: Tensor, info: str) -> None:
    csr_row_info(A.view(), host_array(out), A.shape[0], info)
