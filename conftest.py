"""Configures pytest further, and provides the shared textbook keys."""
import pytest

from rsamessenger import keygen
from rsamessenger import rsa


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")
    parser.addoption("--run-extreme", action="store_true", default=False, help="run extreme value extremely slow tests")


def pytest_collection_modifyitems(config, items):
    skipdict = {}
    if config.getoption("--skip-slow"):
        skipdict["slow"] = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    if not config.getoption("--run-extreme"):
        skipdict["extreme"] = pytest.mark.skip(reason="Extreme test: needs --run-extreme option")
    if not skipdict:
        return
    for item in items:
        for k, v in skipdict.items():
            if k in item.keywords:
                item.add_marker(v)


@pytest.fixture
def tiny_pair() -> rsa.KeyPair:
    """The classic p=61, q=53, e=17 key: n=3233, d=2753."""
    return rsa.KeyPair(rsa.RSAPrivKey(3233, 2753), rsa.RSAPubKey(3233, 17))


@pytest.fixture
def mersenne_pair() -> rsa.KeyPair:
    """A 150-bit key over the Mersenne primes 2**61-1 and 2**89-1."""
    p, q, e = 2**61 - 1, 2**89 - 1, 65537
    d = keygen.mod_inverse(e, (p - 1) * (q - 1))
    return rsa.KeyPair(rsa.RSAPrivKey(p * q, d), rsa.RSAPubKey(p * q, e))
