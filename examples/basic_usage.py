#!/usr/bin/env python
"""
Basic Usage Examples for torch-spkern

This example demonstrates:
1. Triangular solves, dense and CSR, direct and transposed
2. LU factorization and substitution
3. Sparse matrix-vector products in every storage layout
4. Row reductions and the Jacobi preconditioner
"""

import torch
from torch_spkern import (
    CSRMatrix,
    solve,
    inplace_solve,
    lu_factorize,
    lu_substitute,
    prod,
    row_info,
    jacobi_preconditioner,
    random_triangular_csr,
)


# =============================================================================
# 1. Triangular solves
# =============================================================================

def example_1_triangular():
    L = torch.tensor([[2.0, 0.0, 0.0],
                      [1.0, 3.0, 0.0],
                      [0.0, 1.0, 4.0]], dtype=torch.float64)
    b = torch.tensor([2.0, 4.0, 5.0], dtype=torch.float64)

    x = solve(L, b, 'lower')
    print(f"dense  L x = b   -> {x}")

    A = CSRMatrix.from_dense(L)
    print(f"Created: {A}")
    x = solve(A, b, 'lower')
    print(f"csr    L x = b   -> {x}")

    # L^T is upper triangular, the tag always describes the solved matrix
    x = solve(A, b, 'upper', trans_a=True)
    print(f"csr    L^T x = b -> {x}, residual {torch.norm(A.T @ x - b):.2e}")

    # in place on a larger random system
    T = random_triangular_csr(200, density=0.05, lower=False)
    x_true = torch.randn(200, dtype=torch.float64)
    rhs = T @ x_true
    inplace_solve(T, rhs, 'upper')
    print(f"random upper (n=200) error: {torch.norm(rhs - x_true):.2e}")


# =============================================================================
# 2. LU
# =============================================================================

def example_2_lu():
    n = 50
    A = torch.randn(n, n, dtype=torch.float64) + n * torch.eye(n, dtype=torch.float64)
    b = torch.randn(n, dtype=torch.float64)

    LU = A.clone()
    lu_factorize(LU)
    x = b.clone()
    lu_substitute(LU, x)
    print(f"LU solve (n={n}) residual: {torch.norm(A @ x - b):.2e}")


# =============================================================================
# 3. SpMV
# =============================================================================

def example_3_spmv():
    D = torch.tensor([[1.0, 2.0, 0.0, 0.0],
                      [0.0, 3.0, 0.0, 0.0],
                      [4.0, 0.0, 5.0, 6.0],
                      [0.0, 0.0, 0.0, 7.0]], dtype=torch.float64)
    A = CSRMatrix.from_dense(D)
    x = torch.ones(4, dtype=torch.float64)

    for name, B in [('csr', A), ('coo', A.to_coo()), ('ell', A.to_ell()), ('hyb', A.to_hyb(ell_nnz=1))]:
        print(f"{name}: {prod(B, x)}")


# =============================================================================
# 4. Row reductions and Jacobi
# =============================================================================

def example_4_jacobi():
    D = torch.tensor([[4.0, -1.0, 0.0],
                      [-1.0, 4.0, -1.0],
                      [0.0, -1.0, 4.0]], dtype=torch.float64)
    A = CSRMatrix.from_dense(D)
    for info in ['norm_inf', 'norm_1', 'norm_2', 'diagonal']:
        print(f"{info:>8}: {row_info(A, info=info)}")

    P = jacobi_preconditioner(A)
    r = torch.tensor([4.0, 8.0, 12.0], dtype=torch.float64)
    print(f"M^-1 r = {P(r)}")


if __name__ == '__main__':
    example_1_triangular()
    example_2_lu()
    example_3_spmv()
    example_4_jacobi()
