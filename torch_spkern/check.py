import torch
from typing import Optional


class ShapeException(Exception):
    def __init__(self, name, shape, expected_shape):
        self.name = name
        self.shape = shape
        self.expected_shape = expected_shape
        super().__init__(f"{name} has shape {shape} expected {expected_shape}")


class ZeroDiagonalError(ZeroDivisionError):
    """
    Raised when a required diagonal entry is missing or exactly zero.

    Triangular solves and LU factorization raise it at the row where
    the division would happen; the Jacobi preconditioner raises it while
    extracting the diagonal.
    """
    def __init__(self, message:str, row:Optional[int]=None):
        self.row = row
        if row is not None:
            message = f"{message} (row {row})"
        super().__init__(message)


def check_index_range(name:str, index:torch.Tensor, bound:int):
    """
    Check that every index lies in [0, bound)
    """
    if index.numel() == 0:
        return
    low, high = int(index.min()), int(index.max())
    if low < 0 or high >= bound:
        raise ValueError(f"{name} indices must lie in [0, {bound}), got range [{low}, {high}]")


def check_coo(val:torch.Tensor,
              row:torch.Tensor,
              col:torch.Tensor,
              shape:tuple
              ):
    """
    Check the COO format

    Parameters
    ----------

    val: torch.Tensor
        [nnz] values of the sparse matrix
    row: torch.Tensor
        [nnz] row indices of the sparse matrix
    col: torch.Tensor
        [nnz] column indices of the sparse matrix
    shape: tuple
        (m,n) shape of the sparse matrix

    """
    if not val.ndim == 1:
        raise ShapeException("val", val.shape, "[nnz]")
    if not row.ndim == 1:
        raise ShapeException("row", row.shape, "[nnz]")
    if not col.ndim == 1:
        raise ShapeException("col", col.shape, "[nnz]")
    if not val.shape[0] == row.shape[0]:
        raise ShapeException("row", row.shape, f"[{val.shape[0]}]")
    if not val.shape[0] == col.shape[0]:
        raise ShapeException("col", col.shape, f"[{val.shape[0]}]")
    if not (len(shape) == 2 and shape[0] >= 0 and shape[1] >= 0):
        raise ShapeException("shape", shape, "(m,n)")
    check_index_range("row", row, shape[0])
    check_index_range("col", col, shape[1])

def check_csr(val:torch.Tensor,
              rowptr:torch.Tensor,
              col:torch.Tensor,
              shape:tuple):
    """
    Check the CSR format

    Parameters
    ----------
    val: torch.Tensor
        [nnz] values of the sparse matrix
    rowptr: torch.Tensor
        [m+1] rowptr of the sparse matrix
    col: torch.Tensor
        [nnz] column indices of the sparse matrix
    shape: tuple
        (m,n) shape of the sparse matrix
    """
    if not (len(shape) == 2 and shape[0] >= 0 and shape[1] >= 0):
        raise ShapeException("shape", shape, "(m,n)")
    m, n = shape
    if not (rowptr.ndim == 1 and rowptr.shape[0] == m+1):
        raise ShapeException("rowptr", rowptr.shape, f"[{m+1}]")
    if not val.ndim == 1:
        raise ShapeException("val", val.shape, "[nnz]")
    if not col.ndim == 1:
        raise ShapeException("col", col.shape, "[nnz]")
    if not val.shape[0] == int(rowptr[-1]):
        raise ShapeException("val", val.shape, f"[{int(rowptr[-1])}]")
    if not val.shape[0] == col.shape[0]:
        raise ShapeException("col", col.shape, f"[{val.shape[0]}]")
    check_index_range("col", col, n)

def check_ell(val:torch.Tensor,
              col:torch.Tensor,
              shape:tuple,
              max_nnz:int,
              internal_size:int):
    """
    Check the ELL format

    Parameters
    ----------
    val: torch.Tensor
        [internal_size * max_nnz] padded values, column-major
    col: torch.Tensor
        [internal_size * max_nnz] padded column indices, column-major
    shape: tuple
        (m,n) shape of the sparse matrix
    max_nnz: int
        number of slots per row
    internal_size: int
        padded number of rows, at least m
    """
    if not (len(shape) == 2 and shape[0] >= 0 and shape[1] >= 0):
        raise ShapeException("shape", shape, "(m,n)")
    if internal_size < shape[0]:
        raise ShapeException("internal_size", internal_size, f">= {shape[0]}")
    expected = internal_size * max_nnz
    if not (val.ndim == 1 and val.shape[0] == expected):
        raise ShapeException("val", val.shape, f"[{expected}]")
    if not (col.ndim == 1 and col.shape[0] == expected):
        raise ShapeException("col", col.shape, f"[{expected}]")
    check_index_range("col", col[val != 0], shape[1])

def check_hyb(ell_val:torch.Tensor,
              ell_col:torch.Tensor,
              csr_rowptr:torch.Tensor,
              csr_col:torch.Tensor,
              csr_val:torch.Tensor,
              shape:tuple,
              ell_nnz:int,
              internal_size:int):
    """
    Check the HYB format, an ELL part plus a CSR overflow part
    """
    check_ell(ell_val, ell_col, shape, ell_nnz, internal_size)
    check_csr(csr_val, csr_rowptr, csr_col, shape)

def check_square(shape:tuple, name:str="A"):
    """
    Check that a system matrix is square
    """
    if not (len(shape) == 2 and shape[0] == shape[1]):
        raise ShapeException(name, tuple(shape), "(n,n)")

def check_rhs(n:int, rhs_shape:tuple, name:str="B"):
    """
    Check that a right-hand side (vector or matrix) has n rows
    """
    if len(rhs_shape) not in (1, 2) or rhs_shape[0] != n:
        expected = f"[{n}] or [{n}, k]"
        raise ShapeException(name, tuple(rhs_shape), expected)
