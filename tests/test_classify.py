import pytest

from certchain.classify import ClassifiedPool, classify, is_self_signed
from certchain.errors import CryptoEvaluationError

from .common import build_pki, gen_key, issue_cert, self_signed


@pytest.fixture(scope='module')
def pki():
    return build_pki()


def _ids(certs):
    return {cert.dump() for cert in certs}


def test_classify_empty():
    result = classify([])
    assert result == ClassifiedPool()
    assert len(result) == 0


def test_classify_partition(pki):
    pool = [pki.interm, pki.root, pki.leaf]
    result = classify(pool)
    assert _ids(result.anchors) == {pki.root.dump()}
    assert _ids(result.intermediates) == {pki.interm.dump(), pki.leaf.dump()}
    # totality and disjointness
    assert _ids(result.anchors) | _ids(result.intermediates) == _ids(pool)
    assert not (_ids(result.anchors) & _ids(result.intermediates))


def test_classify_preserves_order():
    key_a, key_b = gen_key(), gen_key()
    root_a = self_signed('Root A', key_a)
    root_b = self_signed('Root B', key_b)
    interm_1 = issue_cert('Interm 1', gen_key(), 'Root A', key_a, ca=True)
    interm_2 = issue_cert('Interm 2', gen_key(), 'Root B', key_b, ca=True)
    result = classify([root_b, interm_2, root_a, interm_1])
    assert [c.dump() for c in result.anchors] == [root_b.dump(), root_a.dump()]
    assert [c.dump() for c in result.intermediates] == [
        interm_2.dump(), interm_1.dump()
    ]


def test_classify_collapses_duplicates(pki):
    result = classify([pki.root, pki.interm, pki.root, pki.interm])
    assert len(result.anchors) == 1
    assert len(result.intermediates) == 1


def test_self_issued_but_not_self_signed():
    # same name, different key: this is not a trust anchor
    cert = issue_cert('Impostor', gen_key(), 'Impostor', gen_key(), ca=True)
    assert not is_self_signed(cert)
    result = classify([cert])
    assert result.anchors == ()
    assert len(result.intermediates) == 1


def test_unevaluable_self_signature_propagates():
    key = gen_key()
    weird = issue_cert(
        'Weird', key, 'Weird', key, signature_algorithm='1.2.3.4.5'
    )
    with pytest.raises(CryptoEvaluationError) as exc_info:
        classify([self_signed('Root', gen_key()), weird])
    assert exc_info.value.certificate.dump() == weird.dump()
    assert 'Weird' in exc_info.value.failure_msg
