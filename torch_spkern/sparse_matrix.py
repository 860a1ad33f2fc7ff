"""
Sparse matrix containers in four storage layouts.

Each container owns raw buffers (``torch.Tensor``) and exposes the
residency of those buffers through ``device``. Host kernels never touch
the containers directly: they work on a borrowed view, a NamedTuple of
NumPy arrays that share storage with the container's CPU tensors, so the
same kernel serves every container that can produce the view.

Layouts
-------
- CSRMatrix: compressed rows (rowptr, col, val)
- COOMatrix: unordered (row, col, val) triples
- ELLMatrix: ``max_nnz`` padded slots per row, column-major
- HYBMatrix: ELL part plus a CSR overflow part

Examples
--------
>>> A = CSRMatrix.from_dense(torch.tensor([[2., 0., 0.], [1., 3., 0.], [0., 1., 4.]]))
>>> A.nnz
5
>>> y = A @ torch.ones(3, dtype=A.dtype)
>>> E = A.to_ell()
>>> H = A.to_hyb(ell_nnz=1)
"""

import math
import numpy as np
import torch
from typing import NamedTuple, Optional, Tuple, Union

from .check import check_coo, check_csr, check_ell, check_hyb
from .convert import dense2coo, coo2csr, csr2coo, csr2ell, csr2hyb


# =============================================================================
# Borrowed views
# =============================================================================

class CSRView(NamedTuple):
    """Borrowed view of a CSR matrix."""
    rowptr: np.ndarray
    col: np.ndarray
    val: np.ndarray


class COOView(NamedTuple):
    """Borrowed view of a COO matrix."""
    row: np.ndarray
    col: np.ndarray
    val: np.ndarray


class ELLView(NamedTuple):
    """Borrowed view of an ELL matrix."""
    col: np.ndarray
    val: np.ndarray
    max_nnz: int
    internal_size: int


class HYBView(NamedTuple):
    """Borrowed view of a HYB matrix."""
    ell: ELLView
    csr: CSRView


# dtypes NumPy has no equivalent for
HOST_UNSUPPORTED_DTYPES = (torch.bfloat16, torch.complex32)


def host_array(t:torch.Tensor)->np.ndarray:
    """
    Borrow a NumPy array sharing storage with a CPU tensor.

    Writes through the returned array are visible in ``t``.
    """
    if t.device.type != 'cpu':
        raise RuntimeError(f"Cannot borrow host view of a tensor on {t.device}")
    if t.dtype in HOST_UNSUPPORTED_DTYPES:
        raise ValueError(f"Host kernels do not support {t.dtype}, convert to float32/float64 "
                         f"or use backend='pytorch'")
    return t.detach().numpy()


# =============================================================================
# CSR
# =============================================================================

class CSRMatrix:
    """
    Compressed sparse row matrix.

    Parameters
    ----------
    rowptr : torch.Tensor
        [m+1] row offsets, ``rowptr[0] == 0`` and ``rowptr[m] == nnz``.
    col : torch.Tensor
        [nnz] column indices; need not be sorted within a row.
    val : torch.Tensor
        [nnz] values aligned with ``col``.
    shape : Tuple[int, int]
        (m, n)

    Examples
    --------
    >>> rowptr = torch.tensor([0, 1, 3, 5])
    >>> col = torch.tensor([0, 0, 1, 1, 2])
    >>> val = torch.tensor([2.0, 1.0, 3.0, 1.0, 4.0], dtype=torch.float64)
    >>> L = CSRMatrix(rowptr, col, val, (3, 3))
    >>> L
    CSRMatrix(shape=(3, 3), nnz=5, dtype=torch.float64, device=cpu)
    """

    def __init__(self,
                 rowptr:torch.Tensor,
                 col:torch.Tensor,
                 val:torch.Tensor,
                 shape:Tuple[int, int]):
        check_csr(val, rowptr, col, tuple(shape))
        self.rowptr = rowptr.long()
        self.col = col.long()
        self.val = val
        self._shape = tuple(shape)

    @classmethod
    def from_dense(cls, A:torch.Tensor)->"CSRMatrix":
        """Create from a dense matrix; exact zeros are not stored."""
        val, rowptr, col, shape = coo2csr(*dense2coo(A))
        return cls(rowptr, col, val, shape)

    @classmethod
    def from_coo(cls,
                 val:torch.Tensor,
                 row:torch.Tensor,
                 col:torch.Tensor,
                 shape:Tuple[int, int])->"CSRMatrix":
        """Create from COO triples, keeping duplicates and explicit zeros."""
        val, rowptr, col, shape = coo2csr(val, row, col, shape)
        return cls(rowptr, col, val, shape)

    @classmethod
    def from_scipy(cls, A, device:Optional[torch.device]=None)->"CSRMatrix":
        """Create from any SciPy sparse matrix."""
        A = A.tocsr()
        return cls(torch.from_numpy(A.indptr.astype(np.int64)).to(device),
                   torch.from_numpy(A.indices.astype(np.int64)).to(device),
                   torch.from_numpy(A.data).to(device),
                   A.shape)

    @property
    def shape(self)->Tuple[int, int]:
        return self._shape

    @property
    def nnz(self)->int:
        return self.val.shape[0]

    @property
    def dtype(self)->torch.dtype:
        return self.val.dtype

    @property
    def device(self)->torch.device:
        """Residency of the matrix buffers."""
        return self.val.device

    @property
    def is_square(self)->bool:
        return self._shape[0] == self._shape[1]

    def to(self,
           device:Optional[Union[str, torch.device]]=None,
           dtype:Optional[torch.dtype]=None)->"CSRMatrix":
        """Copy to another device and/or dtype."""
        val = self.val
        rowptr, col = self.rowptr, self.col
        if device is not None:
            val, rowptr, col = val.to(device), rowptr.to(device), col.to(device)
        if dtype is not None:
            val = val.to(dtype)
        return CSRMatrix(rowptr, col, val, self._shape)

    def view(self)->CSRView:
        """Borrowed host view; the matrix must live on the CPU."""
        return CSRView(host_array(self.rowptr), host_array(self.col), host_array(self.val))

    def to_coo(self)->"COOMatrix":
        val, row, col, shape = csr2coo(self.val, self.rowptr, self.col, self._shape)
        return COOMatrix(row, col, val, shape)

    def to_dense(self)->torch.Tensor:
        """Dense copy; duplicate entries are summed."""
        return self.to_coo().to_dense()

    def to_ell(self, internal_size:Optional[int]=None)->"ELLMatrix":
        val, col, shape, max_nnz, internal_size = csr2ell(
            self.val, self.rowptr, self.col, self._shape, internal_size)
        return ELLMatrix(col, val, shape, max_nnz, internal_size)

    def to_hyb(self,
               ell_nnz:Optional[int]=None,
               internal_size:Optional[int]=None)->"HYBMatrix":
        """
        Split into a HYB matrix.

        ``ell_nnz`` defaults to the mean number of entries per row, rounded up.
        """
        if ell_nnz is None:
            m = self._shape[0]
            ell_nnz = math.ceil(self.nnz / m) if m > 0 else 0
        (ell_val, ell_col, csr_rowptr, csr_col, csr_val,
         shape, ell_nnz, internal_size) = csr2hyb(
            self.val, self.rowptr, self.col, self._shape, ell_nnz, internal_size)
        return HYBMatrix(ell_col, ell_val, csr_rowptr, csr_col, csr_val,
                         shape, ell_nnz, internal_size)

    def to_scipy(self):
        """Convert to ``scipy.sparse.csr_matrix``."""
        import scipy.sparse as sp
        return sp.csr_matrix(
            (self.val.detach().cpu().numpy(),
             self.col.cpu().numpy(),
             self.rowptr.cpu().numpy()),
            shape=self._shape)

    def _select(self, keep:torch.Tensor)->"CSRMatrix":
        coo = self.to_coo()
        return CSRMatrix.from_coo(coo.val[keep], coo.row[keep], coo.col[keep], self._shape)

    def tril(self, k:int=0)->"CSRMatrix":
        """Entries with ``col <= row + k``, like ``torch.tril``."""
        coo = self.to_coo()
        return self._select(coo.col <= coo.row + k)

    def triu(self, k:int=0)->"CSRMatrix":
        """Entries with ``col >= row + k``, like ``torch.triu``."""
        coo = self.to_coo()
        return self._select(coo.col >= coo.row + k)

    @property
    def T(self)->"CSRMatrix":
        """Materialised transpose."""
        coo = self.to_coo()
        return CSRMatrix.from_coo(coo.val, coo.col, coo.row, (self._shape[1], self._shape[0]))

    def __matmul__(self, other:torch.Tensor)->torch.Tensor:
        from .spmv import prod
        return prod(self, other)

    def __repr__(self)->str:
        return f"CSRMatrix(shape={self._shape}, nnz={self.nnz}, dtype={self.dtype}, device={self.device})"


# =============================================================================
# COO
# =============================================================================

class COOMatrix:
    """
    Coordinate sparse matrix, parallel (row, col, val) sequences.

    No ordering is assumed and duplicates add up in products.
    """

    def __init__(self,
                 row:torch.Tensor,
                 col:torch.Tensor,
                 val:torch.Tensor,
                 shape:Tuple[int, int]):
        check_coo(val, row, col, tuple(shape))
        self.row = row.long()
        self.col = col.long()
        self.val = val
        self._shape = tuple(shape)

    @classmethod
    def from_dense(cls, A:torch.Tensor)->"COOMatrix":
        val, row, col, shape = dense2coo(A)
        return cls(row, col, val, shape)

    @property
    def shape(self)->Tuple[int, int]:
        return self._shape

    @property
    def nnz(self)->int:
        return self.val.shape[0]

    @property
    def dtype(self)->torch.dtype:
        return self.val.dtype

    @property
    def device(self)->torch.device:
        return self.val.device

    def to(self,
           device:Optional[Union[str, torch.device]]=None,
           dtype:Optional[torch.dtype]=None)->"COOMatrix":
        val, row, col = self.val, self.row, self.col
        if device is not None:
            val, row, col = val.to(device), row.to(device), col.to(device)
        if dtype is not None:
            val = val.to(dtype)
        return COOMatrix(row, col, val, self._shape)

    def view(self)->COOView:
        return COOView(host_array(self.row), host_array(self.col), host_array(self.val))

    def to_csr(self)->CSRMatrix:
        return CSRMatrix.from_coo(self.val, self.row, self.col, self._shape)

    def to_dense(self)->torch.Tensor:
        out = torch.zeros(self._shape, dtype=self.dtype, device=self.device)
        out.index_put_((self.row, self.col), self.val, accumulate=True)
        return out

    def __matmul__(self, other:torch.Tensor)->torch.Tensor:
        from .spmv import prod
        return prod(self, other)

    def __repr__(self)->str:
        return f"COOMatrix(shape={self._shape}, nnz={self.nnz}, dtype={self.dtype}, device={self.device})"


# =============================================================================
# ELL
# =============================================================================

class ELLMatrix:
    """
    Padded row-major sparse matrix with ``max_nnz`` slots per row.

    Parameters
    ----------
    col : torch.Tensor
        [internal_size * max_nnz] column indices, column-major.
    val : torch.Tensor
        [internal_size * max_nnz] values; 0 marks an unused slot.
    shape : Tuple[int, int]
        (m, n)
    max_nnz : int
        Slots per row.
    internal_size : int
        Padded row count (>= m), the stride between slots.
    """

    def __init__(self,
                 col:torch.Tensor,
                 val:torch.Tensor,
                 shape:Tuple[int, int],
                 max_nnz:int,
                 internal_size:Optional[int]=None):
        if internal_size is None:
            internal_size = shape[0]
        check_ell(val, col, tuple(shape), max_nnz, internal_size)
        self.col = col.long()
        self.val = val
        self._shape = tuple(shape)
        self.max_nnz = max_nnz
        self.internal_size = internal_size

    @classmethod
    def from_dense(cls, A:torch.Tensor, internal_size:Optional[int]=None)->"ELLMatrix":
        return CSRMatrix.from_dense(A).to_ell(internal_size)

    @property
    def shape(self)->Tuple[int, int]:
        return self._shape

    @property
    def nnz(self)->int:
        """Number of occupied slots."""
        return int((self.val != 0).sum())

    @property
    def dtype(self)->torch.dtype:
        return self.val.dtype

    @property
    def device(self)->torch.device:
        return self.val.device

    def to(self,
           device:Optional[Union[str, torch.device]]=None,
           dtype:Optional[torch.dtype]=None)->"ELLMatrix":
        val, col = self.val, self.col
        if device is not None:
            val, col = val.to(device), col.to(device)
        if dtype is not None:
            val = val.to(dtype)
        return ELLMatrix(col, val, self._shape, self.max_nnz, self.internal_size)

    def view(self)->ELLView:
        return ELLView(host_array(self.col), host_array(self.val),
                       self.max_nnz, self.internal_size)

    def to_coo(self)->COOMatrix:
        offset = torch.nonzero(self.val != 0).flatten()
        row = offset % self.internal_size
        keep = row < self._shape[0]
        return COOMatrix(row[keep], self.col[offset][keep], self.val[offset][keep], self._shape)

    def to_dense(self)->torch.Tensor:
        return self.to_coo().to_dense()

    def __matmul__(self, other:torch.Tensor)->torch.Tensor:
        from .spmv import prod
        return prod(self, other)

    def __repr__(self)->str:
        return (f"ELLMatrix(shape={self._shape}, max_nnz={self.max_nnz}, "
                f"internal_size={self.internal_size}, dtype={self.dtype}, device={self.device})")


# =============================================================================
# HYB
# =============================================================================

class HYBMatrix:
    """
    Hybrid sparse matrix: an ELL part with ``ell_nnz`` slots per row plus
    a CSR part holding whatever did not fit.
    """

    def __init__(self,
                 ell_col:torch.Tensor,
                 ell_val:torch.Tensor,
                 csr_rowptr:torch.Tensor,
                 csr_col:torch.Tensor,
                 csr_val:torch.Tensor,
                 shape:Tuple[int, int],
                 ell_nnz:int,
                 internal_size:Optional[int]=None):
        if internal_size is None:
            internal_size = shape[0]
        check_hyb(ell_val, ell_col, csr_rowptr, csr_col, csr_val,
                  tuple(shape), ell_nnz, internal_size)
        if csr_val.dtype != ell_val.dtype:
            raise ValueError(f"ELL and CSR parts must share a dtype, got {ell_val.dtype} and {csr_val.dtype}")
        self.ell_col = ell_col.long()
        self.ell_val = ell_val
        self.csr_rowptr = csr_rowptr.long()
        self.csr_col = csr_col.long()
        self.csr_val = csr_val
        self._shape = tuple(shape)
        self.ell_nnz = ell_nnz
        self.internal_size = internal_size

    @classmethod
    def from_dense(cls, A:torch.Tensor, ell_nnz:Optional[int]=None)->"HYBMatrix":
        return CSRMatrix.from_dense(A).to_hyb(ell_nnz)

    @property
    def shape(self)->Tuple[int, int]:
        return self._shape

    @property
    def dtype(self)->torch.dtype:
        return self.ell_val.dtype

    @property
    def device(self)->torch.device:
        return self.ell_val.device

    @property
    def ell(self)->ELLMatrix:
        return ELLMatrix(self.ell_col, self.ell_val, self._shape, self.ell_nnz, self.internal_size)

    @property
    def csr(self)->CSRMatrix:
        return CSRMatrix(self.csr_rowptr, self.csr_col, self.csr_val, self._shape)

    def to(self,
           device:Optional[Union[str, torch.device]]=None,
           dtype:Optional[torch.dtype]=None)->"HYBMatrix":
        ell, csr = self.ell.to(device, dtype), self.csr.to(device, dtype)
        return HYBMatrix(ell.col, ell.val, csr.rowptr, csr.col, csr.val,
                         self._shape, self.ell_nnz, self.internal_size)

    def view(self)->HYBView:
        return HYBView(self.ell.view(), self.csr.view())

    def to_coo(self)->COOMatrix:
        ell, csr = self.ell.to_coo(), self.csr.to_coo()
        return COOMatrix(torch.cat([ell.row, csr.row]),
                         torch.cat([ell.col, csr.col]),
                         torch.cat([ell.val, csr.val]),
                         self._shape)

    def to_dense(self)->torch.Tensor:
        return self.to_coo().to_dense()

    def __matmul__(self, other:torch.Tensor)->torch.Tensor:
        from .spmv import prod
        return prod(self, other)

    def __repr__(self)->str:
        return (f"HYBMatrix(shape={self._shape}, ell_nnz={self.ell_nnz}, "
                f"csr_nnz={self.csr_val.shape[0]}, dtype={self.dtype}, device={self.device})")


SparseMatrix = Union[CSRMatrix, COOMatrix, ELLMatrix, HYBMatrix]
