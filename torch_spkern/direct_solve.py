import warnings
import torch
from typing import Union

from .backends import BackendType, TriangularTag, parse_tag, resolve_backend
from .check import ShapeException, check_square, check_rhs
from .sparse_matrix import CSRMatrix

Matrix = Union[torch.Tensor, CSRMatrix]


def _check_operands(A:Matrix, B:torch.Tensor, trans_b:bool):
    check_square(tuple(A.shape), "A")
    if trans_b and B.ndim != 2:
        raise ShapeException("B", tuple(B.shape), "[k, n] when trans_b=True")
    rhs_shape = tuple(B.T.shape) if trans_b else tuple(B.shape)
    check_rhs(A.shape[0], rhs_shape, "B^T" if trans_b else "B")
    if isinstance(A, CSRMatrix) and B.ndim != 1:
        raise ShapeException("B", tuple(B.shape), f"[{A.shape[0]}] for a sparse system matrix")
    if B.device != A.device:
        raise ValueError(f"A and B must live on the same device, got {A.device} and {B.device}")
    if B.dtype != A.dtype:
        raise ValueError(f"A and B must have same dtype, got {A.dtype} and {B.dtype}")
    if not A.dtype.is_floating_point:
        raise ValueError(f"A must have a floating point dtype, got {A.dtype}")
    if A.dtype != torch.float64:
        warnings.warn("You'd better use float64 to maintain good precision")


def inplace_solve(A:Matrix,
                  B:torch.Tensor,
                  tag:TriangularTag,
                  trans_a:bool=False,
                  trans_b:bool=False,
                  backend:BackendType='auto')->None:
    """Solve a triangular system in place, the solution overwrites the right-hand side

    .. math::
        \\mathrm{op}(A) X = \\mathrm{op}(B)

    where :math:`\\mathrm{op}(A)` is :math:`A` or :math:`A^T` and likewise for B.
    The tag describes :math:`\\mathrm{op}(A)`; only that triangle is read.

    Parameters
    ----------
    A : torch.Tensor or CSRMatrix
        [n, n] system matrix
    B : torch.Tensor
        [n] or [n, k] right-hand side, or the stored [k, n] matrix when
        ``trans_b`` is set; overwritten with the solution
    tag : str
        {'unit_lower', 'lower', 'unit_upper', 'upper'}
    trans_a : bool, optional
        solve with the transpose of A, by default False
    trans_b : bool, optional
        the right-hand side is the transpose of B, by default False
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto' which selects the
        backend from the residency of A

    Raises
    ------
    ShapeException
        A is not square or B does not match its dimension
    NotImplementedError
        no backend handles the device A lives on
    ZeroDiagonalError
        a non-unit solve meets a missing or zero diagonal entry
    """
    parse_tag(tag)
    _check_operands(A, B, trans_b)

    impl = resolve_backend(A.device, backend)
    if isinstance(A, CSRMatrix):
        impl.inplace_solve_csr(A, B, tag, trans_a=trans_a)
    else:
        impl.inplace_solve_dense(A, B, tag, trans_a=trans_a, trans_b=trans_b)


def solve(A:Matrix,
          B:torch.Tensor,
          tag:TriangularTag,
          trans_a:bool=False,
          trans_b:bool=False,
          backend:BackendType='auto')->torch.Tensor:
    """Solve a triangular system and return the solution in a new tensor

    B is left untouched: the result starts as a copy of
    :math:`\\mathrm{op}(B)` and is solved in place.

    Parameters
    ----------
    A : torch.Tensor or CSRMatrix
        [n, n] system matrix
    B : torch.Tensor
        [n] or [n, k] right-hand side ([k, n] with ``trans_b``)
    tag : str
        {'unit_lower', 'lower', 'unit_upper', 'upper'}
    trans_a, trans_b : bool, optional
        see :func:`inplace_solve`
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'

    Returns
    -------
    torch.Tensor
        [n] or [n, k] solution
    """
    if trans_b:
        if B.ndim != 2:
            raise ShapeException("B", tuple(B.shape), "[k, n] when trans_b=True")
        result = B.T.clone(memory_format=torch.contiguous_format)
    else:
        result = B.clone()
    inplace_solve(A, result, tag, trans_a=trans_a, backend=backend)
    return result


def lu_factorize(A:torch.Tensor, backend:BackendType='auto')->None:
    """LU factorization of a dense matrix, in place and without pivoting

    After the call the strictly lower part of A holds L (its unit diagonal
    is implicit and not written) and the upper part holds U.

    Parameters
    ----------
    A : torch.Tensor
        [n, n] system matrix, overwritten with L\\U
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'

    Raises
    ------
    ZeroDiagonalError
        a zero pivot is met
    """
    if not isinstance(A, torch.Tensor) or A.layout != torch.strided:
        raise TypeError(f"lu_factorize expects a dense tensor, got {type(A).__name__}")
    check_square(tuple(A.shape), "A")
    if not A.dtype.is_floating_point:
        raise ValueError(f"A must have a floating point dtype, got {A.dtype}")

    resolve_backend(A.device, backend).lu_factorize(A)


def lu_substitute(A:Matrix,
                  B:torch.Tensor,
                  backend:BackendType='auto')->None:
    """Solve LU x = b in place for an already factorized A

    Two chained substitutions on the same buffer: L y = b overwrites b
    with y, then U x = y overwrites y with x.

    Parameters
    ----------
    A : torch.Tensor or CSRMatrix
        [n, n] L\\U factors as written by :func:`lu_factorize`
    B : torch.Tensor
        [n] or [n, k] right-hand side, overwritten with the solution
    backend : str, optional
        {'auto', 'host', 'pytorch'}, by default 'auto'
    """
    check_square(tuple(A.shape), "A")
    inplace_solve(A, B, 'unit_lower', backend=backend)
    inplace_solve(A, B, 'upper', backend=backend)
