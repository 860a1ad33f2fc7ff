"""
Backend management for torch-spkern

Every backend implements the same set of kernels, so the dispatch layer
only needs to know where an operand's data lives:

Backends:
- 'host': single-threaded host kernels (CPU only) - substitution loops over
  borrowed NumPy views of the raw buffers, results written in place
- 'pytorch': PyTorch-native vectorised kernels (CPU & CUDA) - used for
  accelerator-resident data, numerically equivalent to 'host' up to rounding

Operations (identical signatures in every backend):
- 'inplace_solve_dense': dense triangular solve, result overwrites the rhs
- 'inplace_solve_csr': CSR triangular solve, direct or transposed
- 'lu_factorize': in-place LU without pivoting, unit diagonal of L implicit
- 'prod_csr', 'prod_coo', 'prod_ell', 'prod_hyb': sparse matrix-vector products
- 'row_info': one scalar per CSR row (norms or diagonal)

Residency:
    A tensor's ``device.type`` selects the backend through DEVICE_BACKENDS.
    Adding a backend means adding a module that implements
    BACKEND_OPERATIONS and one entry to BACKEND_MODULES / DEVICE_BACKENDS;
    call sites are unchanged.

Usage:
    backend = select_backend(A.device)       # 'host' for cpu, 'pytorch' for cuda
    module  = get_backend(backend)
    module.inplace_solve_dense(A, B, 'upper', trans_a=False, trans_b=False)

    # or force a backend from the public API
    x = solve(A, b, 'upper', backend='pytorch')
"""

import importlib
from types import ModuleType
from typing import Dict, List, Literal, Optional, Tuple, Union
import torch

# Type aliases
BackendType = Literal['host', 'pytorch', 'auto']
TriangularTag = Literal['unit_lower', 'lower', 'unit_upper', 'upper']
RowInfoType = Literal['norm_inf', 'norm_1', 'norm_2', 'diagonal']

TRIANGULAR_TAGS: Tuple[str, ...] = ('unit_lower', 'lower', 'unit_upper', 'upper')
ROW_INFO_TYPES: Tuple[str, ...] = ('norm_inf', 'norm_1', 'norm_2', 'diagonal')

# Operations every backend module must provide
BACKEND_OPERATIONS: Tuple[str, ...] = (
    'inplace_solve_dense',
    'inplace_solve_csr',
    'lu_factorize',
    'prod_csr',
    'prod_coo',
    'prod_ell',
    'prod_hyb',
    'row_info',
)

# Backend name -> implementing module
BACKEND_MODULES: Dict[str, str] = {
    'host': 'torch_spkern.backends.host_backend',
    'pytorch': 'torch_spkern.backends.pytorch_backend',
}

# Residency (device type) -> backend name
DEVICE_BACKENDS: Dict[str, str] = {
    'cpu': 'host',
    'cuda': 'pytorch',
}

# Lazy-loaded modules
_backend_modules: Dict[str, ModuleType] = {}


def parse_tag(tag: str) -> Tuple[bool, bool]:
    """
    Split a triangular tag into (lower, unit) flags.

    Raises
    ------
    ValueError
        If the tag is not one of TRIANGULAR_TAGS
    """
    if tag not in TRIANGULAR_TAGS:
        raise ValueError(f"Unknown triangular tag: {tag}. Available: {', '.join(TRIANGULAR_TAGS)}")
    return tag.endswith('lower'), tag.startswith('unit')


def get_available_backends() -> List[str]:
    """Get list of available backends"""
    backends = ['host', 'pytorch']
    return backends


def select_backend(device: Union[str, torch.device]) -> str:
    """
    Select the backend that owns data on ``device``.

    Parameters
    ----------
    device : torch.device or str
        Residency of the operand (typically the system matrix)

    Returns
    -------
    str
        Backend name ('host' or 'pytorch')

    Raises
    ------
    NotImplementedError
        If no backend handles this residency
    """
    device = torch.device(device)
    backend = DEVICE_BACKENDS.get(device.type)
    if backend is None:
        raise NotImplementedError(
            f"No backend implemented for residency '{device.type}'. "
            f"Supported: {', '.join(DEVICE_BACKENDS)}"
        )
    return backend


def get_backend(name: str) -> ModuleType:
    """
    Load a backend module by name.

    Raises
    ------
    ValueError
        If the backend name is unknown
    """
    if name not in BACKEND_MODULES:
        raise ValueError(f"Unknown backend: {name}. Available: {', '.join(BACKEND_MODULES)}")
    module = _backend_modules.get(name)
    if module is None:
        module = importlib.import_module(BACKEND_MODULES[name])
        missing = [op for op in BACKEND_OPERATIONS if not hasattr(module, op)]
        if missing:
            raise RuntimeError(f"Backend '{name}' does not implement: {', '.join(missing)}")
        _backend_modules[name] = module
    return module


def resolve_backend(device: Union[str, torch.device], backend: Optional[str] = 'auto') -> ModuleType:
    """
    Resolve ``backend='auto'`` from the residency, or load the named backend.
    """
    if backend is None or backend == 'auto':
        backend = select_backend(device)
    return get_backend(backend)
