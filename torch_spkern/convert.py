import torch
from typing import Optional, Tuple
from .check import check_coo, check_csr, check_ell, ShapeException
#########################
# dense, coo, csr, ell, hyb
#########################

def dense2coo(A:torch.Tensor
              )->Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert a dense matrix to COO format, dropping exact zeros

    Parameters
    ----------
        A: torch.Tensor
            [m, n] dense matrix
    Returns
    -------
        val: torch.Tensor
            [nnz] values of the sparse matrix
        row: torch.Tensor
            [nnz] row indices of the sparse matrix
        col: torch.Tensor
            [nnz] column indices of the sparse matrix
        shape: tuple
            (m,n) shape of the sparse matrix
    """
    if A.ndim != 2:
        raise ShapeException("A", tuple(A.shape), "(m,n)")
    A_sparse = A.to_sparse_coo().coalesce()
    indices  = A_sparse.indices()
    return A_sparse.values(), indices[0], indices[1], tuple(A.shape)

def coo2csr(val:torch.Tensor,
            row:torch.Tensor,
            col:torch.Tensor,
            shape:tuple
            )->Tuple[torch.Tensor,
                     torch.Tensor,
                     torch.Tensor,
                     Tuple[int, int]]:
    """
    Convert COO format to CSR format

    Entries are ordered by row, then by column; duplicates are kept.

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
    Returns
    -------
        val: torch.Tensor
            [nnz] values of the sparse matrix
        rowptr: torch.Tensor
            [m+1] rowptr of the sparse matrix
        col: torch.Tensor
            [nnz] column indices of the sparse matrix
        shape: tuple
            (m,n) shape of the sparse matrix
    """
    check_coo(val, row, col, shape)

    m, n   = shape
    row    = row.long()
    col    = col.long()
    arg    = torch.argsort(row * max(n, 1) + col, stable=True)
    row    = row[arg]
    col    = col[arg]
    val    = val[arg]
    rowptr = torch.zeros(m + 1, dtype=torch.long, device=val.device)
    rowcount   = torch.bincount(row, minlength=m)
    rowptr[1:] = torch.cumsum(rowcount, 0)

    return val, rowptr, col, tuple(shape)

def csr2coo(val:torch.Tensor,
            rowptr:torch.Tensor,
            col:torch.Tensor,
            shape:tuple
            )->Tuple[torch.Tensor,
                     torch.Tensor,
                     torch.Tensor,
                     Tuple[int, int]]:
    """
    Convert CSR format to COO format

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

    Returns
    -------
        val: torch.Tensor
            [nnz] values of the sparse matrix
        row: torch.Tensor
            [nnz] row indices of the sparse matrix
        col: torch.Tensor
            [nnz] column indices of the sparse matrix
        shape: tuple
            (m,n) shape of the sparse matrix
    """
    check_csr(val, rowptr, col, shape)

    m, n = shape
    row  = torch.repeat_interleave(
        torch.arange(m, dtype=rowptr.dtype, device=val.device),
        rowptr[1:] - rowptr[:-1]
    )
    return val, row, col, tuple(shape)

def dense2csr(A:torch.Tensor
              )->Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert a dense matrix to CSR format, dropping exact zeros
    """
    return coo2csr(*dense2coo(A))

def _slot_in_row(rowptr:torch.Tensor, nnz:int)->Tuple[torch.Tensor, torch.Tensor]:
    # row of every CSR entry and its position inside that row
    m    = rowptr.shape[0] - 1
    rows = torch.repeat_interleave(
        torch.arange(m, dtype=torch.long, device=rowptr.device),
        rowptr[1:] - rowptr[:-1]
    )
    slot = torch.arange(nnz, dtype=torch.long, device=rowptr.device) - rowptr[rows]
    return rows, slot

def csr2ell(val:torch.Tensor,
            rowptr:torch.Tensor,
            col:torch.Tensor,
            shape:tuple,
            internal_size:Optional[int]=None
            )->Tuple[torch.Tensor,
                     torch.Tensor,
                     Tuple[int, int],
                     int,
                     int]:
    """
    Convert CSR format to ELL format

    Every row gets ``max_nnz`` slots, stored column-major so that slot
    ``item_id`` of row ``row`` lives at ``row + item_id * internal_size``.
    Unused slots hold value 0 and column 0.

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
        internal_size: int, optional
            padded row count, by default m

    Returns
    -------
        val: torch.Tensor
            [internal_size * max_nnz] padded values
        col: torch.Tensor
            [internal_size * max_nnz] padded column indices
        shape: tuple
            (m,n) shape of the sparse matrix
        max_nnz: int
            slots per row
        internal_size: int
            padded row count
    """
    check_csr(val, rowptr, col, shape)

    m, n = shape
    if internal_size is None:
        internal_size = m
    counts  = rowptr[1:] - rowptr[:-1]
    max_nnz = int(counts.max()) if m > 0 else 0

    rows, slot = _slot_in_row(rowptr, val.shape[0])
    offset  = rows + slot * internal_size
    ell_val = torch.zeros(internal_size * max_nnz, dtype=val.dtype, device=val.device)
    ell_col = torch.zeros(internal_size * max_nnz, dtype=torch.long, device=val.device)
    ell_val[offset] = val
    ell_col[offset] = col.long()

    check_ell(ell_val, ell_col, shape, max_nnz, internal_size)
    return ell_val, ell_col, tuple(shape), max_nnz, internal_size

def csr2hyb(val:torch.Tensor,
            rowptr:torch.Tensor,
            col:torch.Tensor,
            shape:tuple,
            ell_nnz:int,
            internal_size:Optional[int]=None
            )->Tuple[torch.Tensor,
                     torch.Tensor,
                     torch.Tensor,
                     torch.Tensor,
                     torch.Tensor,
                     Tuple[int, int],
                     int,
                     int]:
    """
    Convert CSR format to HYB format

    The first ``ell_nnz`` entries of every row go to the ELL part, the
    remaining entries of longer rows go to a CSR overflow part.

    Returns
    -------
        ell_val, ell_col: torch.Tensor
            [internal_size * ell_nnz] ELL part
        csr_rowptr: torch.Tensor
            [m+1] rowptr of the overflow part
        csr_col, csr_val: torch.Tensor
            [nnz_overflow] overflow part
        shape: tuple
            (m,n) shape of the sparse matrix
        ell_nnz: int
            slots per row in the ELL part
        internal_size: int
            padded row count
    """
    check_csr(val, rowptr, col, shape)
    if ell_nnz < 0:
        raise ValueError(f"ell_nnz must be non-negative, got {ell_nnz}")

    m, n = shape
    if internal_size is None:
        internal_size = m

    rows, slot = _slot_in_row(rowptr, val.shape[0])
    in_ell  = slot < ell_nnz
    offset  = rows[in_ell] + slot[in_ell] * internal_size
    ell_val = torch.zeros(internal_size * ell_nnz, dtype=val.dtype, device=val.device)
    ell_col = torch.zeros(internal_size * ell_nnz, dtype=torch.long, device=val.device)
    ell_val[offset] = val[in_ell]
    ell_col[offset] = col[in_ell].long()

    overflow   = ~in_ell
    counts     = torch.clamp(rowptr[1:] - rowptr[:-1] - ell_nnz, min=0)
    csr_rowptr = torch.zeros(m + 1, dtype=torch.long, device=val.device)
    csr_rowptr[1:] = torch.cumsum(counts, 0)

    return (ell_val, ell_col,
            csr_rowptr, col[overflow].long(), val[overflow],
            tuple(shape), ell_nnz, internal_size)
