import torch
from typing import Optional

from .backends import BackendType, RowInfoType, ROW_INFO_TYPES, resolve_backend
from .check import ShapeException
from .sparse_matrix import CSRMatrix, COOMatrix, ELLMatrix, HYBMatrix, SparseMatrix

# container type -> backend operation
PROD_OPERATIONS = {
    CSRMatrix: 'prod_csr',
    COOMatrix: 'prod_coo',
    ELLMatrix: 'prod_ell',
    HYBMatrix: 'prod_hyb',
}


def _output(A:SparseMatrix, out:Optional[torch.Tensor], n:int)->torch.Tensor:
    if out is None:
        return torch.zeros(n, dtype=A.dtype, device=A.device)
    if not (out.ndim == 1 and out.shape[0] == n):
        raise ShapeException("out", tuple(out.shape), f"[{n}]")
    if out.device != A.device or out.dtype != A.dtype:
        raise ValueError(f"out must be {A.dtype} on {A.device}, got {out.dtype} on {out.device}")
    return out


def prod(A:SparseMatrix,
         vec:torch.Tensor,
         out:Optional[torch.Tensor]=None,
         backend:BackendType='auto')->torch.Tensor:
    """Sparse matrix-vector product

    .. math::
        y = A x

    Every entry of ``out`` is overwritten, so its previous contents do not
    leak into the result, whatever the storage layout.

    Parameters
    ----------
    A : CSRMatrix, COOMatrix, ELLMatrix or HYBMatrix
        [m, n] sparse matrix
    vec : torch.Tensor
        [n] vector
    out : torch.Tensor, optional
        [m] result buffer, allocated when not given
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'

    Returns
    -------
    torch.Tensor
        [m] the product, ``out`` itself when it was given
    """
    op = PROD_OPERATIONS.get(type(A))
    if op is None:
        raise TypeError(f"Unsupported sparse matrix type: {type(A).__name__}")
    m, n = A.shape
    if not (vec.ndim == 1 and vec.shape[0] == n):
        raise ShapeException("vec", tuple(vec.shape), f"[{n}]")
    if vec.device != A.device:
        raise ValueError(f"A and vec must live on the same device, got {A.device} and {vec.device}")
    if vec.dtype != A.dtype:
        raise ValueError(f"A and vec must have same dtype, got {A.dtype} and {vec.dtype}")

    out = _output(A, out, m)
    getattr(resolve_backend(A.device, backend), op)(A, vec, out)
    return out


def row_info(A:CSRMatrix,
             out:Optional[torch.Tensor]=None,
             info:RowInfoType='diagonal',
             backend:BackendType='auto')->torch.Tensor:
    """One scalar per row of a CSR matrix

    - 'norm_inf': largest absolute value in the row
    - 'norm_1': sum of absolute values
    - 'norm_2': Euclidean norm
    - 'diagonal': the stored diagonal entry, 0 when the row has none

    Empty rows give 0 for every reduction.

    Parameters
    ----------
    A : CSRMatrix
        [m, n] sparse matrix
    out : torch.Tensor, optional
        [m] result buffer, allocated when not given
    info : str, optional
        {'norm_inf', 'norm_1', 'norm_2', 'diagonal'}, by default 'diagonal'
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'
    """
    if not isinstance(A, CSRMatrix):
        raise TypeError(f"row_info expects a CSRMatrix, got {type(A).__name__}")
    if info not in ROW_INFO_TYPES:
        raise ValueError(f"Unknown row info type: {info}. Available: {', '.join(ROW_INFO_TYPES)}")

    out = _output(A, out, A.shape[0])
    resolve_backend(A.device, backend).row_info(A, out, info)
    return out
