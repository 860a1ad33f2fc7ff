import pytest
import torch
import sys
sys.path.append("..")
from torch_spkern import get_available_backends, get_backend, select_backend
from torch_spkern.backends import BACKEND_OPERATIONS, parse_tag, resolve_backend


def test_select_backend():
    assert select_backend('cpu') == 'host'
    assert select_backend(torch.device('cpu')) == 'host'
    assert select_backend('cuda') == 'pytorch'
    with pytest.raises(NotImplementedError):
        select_backend('meta')


@pytest.mark.parametrize('name', get_available_backends())
def test_backend_operations(name):
    module = get_backend(name)
    for op in BACKEND_OPERATIONS:
        assert callable(getattr(module, op))


def test_unknown_backend():
    with pytest.raises(ValueError):
        get_backend('opencl')


def test_resolve_backend():
    assert resolve_backend('cpu') is get_backend('host')
    assert resolve_backend('cpu', 'pytorch') is get_backend('pytorch')


def test_parse_tag():
    assert parse_tag('lower') == (True, False)
    assert parse_tag('unit_lower') == (True, True)
    assert parse_tag('upper') == (False, False)
    assert parse_tag('unit_upper') == (False, True)
    with pytest.raises(ValueError):
        parse_tag('unit')


def test_host_backend_refuses_device_data():
    if not torch.cuda.is_available():
        pytest.skip("CUDA not available")
    from torch_spkern import CSRMatrix, prod
    A = CSRMatrix.from_dense(torch.eye(3, dtype=torch.float64)).to('cuda')
    with pytest.raises(RuntimeError):
        prod(A, torch.ones(3, dtype=torch.float64, device='cuda'), backend='host')
