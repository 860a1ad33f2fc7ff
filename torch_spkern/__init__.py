"""
torch-spkern: PyTorch Sparse Kernels

Triangular solves, sparse matrix-vector products and Jacobi
preconditioning for PyTorch tensors, dispatched by where the data lives.

Backends
--------
- host: single-threaded substitution kernels on CPU tensors
- pytorch: vectorised PyTorch kernels for CUDA tensors

Features
--------
- Triangular solves with 'lower', 'unit_lower', 'upper' and 'unit_upper'
  systems, dense or CSR, direct or transposed
- LU factorization without pivoting and LU substitution
- SpMV for CSR, COO, ELL and HYB storage
- Row norms and diagonal extraction for CSR
- Jacobi preconditioner, generic and CSR-specialised

Usage
-----
>>> import torch
>>> from torch_spkern import CSRMatrix, solve, inplace_solve, prod
>>>
>>> L = torch.tensor([[2., 0., 0.], [1., 3., 0.], [0., 1., 4.]], dtype=torch.float64)
>>> b = torch.tensor([2., 4., 5.], dtype=torch.float64)
>>>
>>> # dense, returns a new tensor
>>> x = solve(L, b, 'lower')                     # tensor([1., 1., 1.])
>>>
>>> # CSR, overwrites b
>>> A = CSRMatrix.from_dense(L)
>>> inplace_solve(A, b, 'lower')
>>>
>>> # transposed system L^T x = b, the tag describes L^T
>>> x = solve(A, b, 'upper', trans_a=True)
>>>
>>> # SpMV in any layout
>>> y = prod(A.to_ell(), torch.ones(3, dtype=torch.float64))
>>>
>>> # CUDA data is handled by the pytorch backend
>>> x = solve(A.to('cuda'), b.cuda(), 'lower')
"""

from .check import (
    ShapeException,
    ZeroDiagonalError,
)

from .sparse_matrix import (
    CSRMatrix,
    COOMatrix,
    ELLMatrix,
    HYBMatrix,
    SparseMatrix,
)

from .direct_solve import (
    inplace_solve,
    solve,
    lu_factorize,
    lu_substitute,
)

from .spmv import (
    prod,
    row_info,
)

from .preconditioner import (
    JacobiPreconditioner,
    CSRJacobiPreconditioner,
    jacobi_preconditioner,
)

from .backends import (
    get_available_backends,
    select_backend,
    get_backend,
    TRIANGULAR_TAGS,
    ROW_INFO_TYPES,
)

from .random import (
    random_csr,
    random_triangular_csr,
)

__version__ = '0.0.1'

__all__ = [
    # Errors
    'ShapeException',
    'ZeroDiagonalError',
    # Containers
    'CSRMatrix',
    'COOMatrix',
    'ELLMatrix',
    'HYBMatrix',
    'SparseMatrix',
    # Direct solve
    'inplace_solve',
    'solve',
    'lu_factorize',
    'lu_substitute',
    # Products
    'prod',
    'row_info',
    # Preconditioners
    'JacobiPreconditioner',
    'CSRJacobiPreconditioner',
    'jacobi_preconditioner',
    # Backends
    'get_available_backends',
    'select_backend',
    'get_backend',
    'TRIANGULAR_TAGS',
    'ROW_INFO_TYPES',
    # Random
    'random_csr',
    'random_triangular_csr',
]
