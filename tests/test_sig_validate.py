import pytest
from asn1crypto import algos, keys

from certchain.errors import CryptoEvaluationError, ErrorKind
from certchain.sig_validate import DefaultSignatureValidator, SignatureStatus

from .common import gen_key, issue_cert, public_key_info, self_signed, sign


@pytest.mark.parametrize('key_type', ['ecdsa', 'rsa', 'ed25519'])
def test_valid_signature(key_type):
    key = gen_key(key_type)
    algo, signature = sign(key, b'hello world')
    status = DefaultSignatureValidator().check_signature(
        signature, b'hello world', public_key_info(key),
        algos.SignedDigestAlgorithm({'algorithm': algo}),
    )
    assert status is SignatureStatus.VALID


@pytest.mark.parametrize('key_type', ['ecdsa', 'ed25519'])
def test_tampered_data(key_type):
    key = gen_key(key_type)
    algo, signature = sign(key, b'hello world')
    status = DefaultSignatureValidator().check_signature(
        signature, b'hello w0rld', public_key_info(key),
        algos.SignedDigestAlgorithm({'algorithm': algo}),
    )
    assert status is SignatureStatus.INVALID


def test_wrong_key():
    key = gen_key()
    other_key = gen_key()
    algo, signature = sign(key, b'hello world')
    status = DefaultSignatureValidator().check_signature(
        signature, b'hello world', public_key_info(other_key),
        algos.SignedDigestAlgorithm({'algorithm': algo}),
    )
    assert status is SignatureStatus.INVALID


def test_key_type_mismatch_is_invalid():
    # an Ed25519 key can't validate an ECDSA signature, but that's not an
    # evaluation failure
    key = gen_key('ecdsa')
    algo, signature = sign(key, b'hello world')
    status = DefaultSignatureValidator().check_signature(
        signature, b'hello world', public_key_info(gen_key('ed25519')),
        algos.SignedDigestAlgorithm({'algorithm': algo}),
    )
    assert status is SignatureStatus.INVALID


def test_unsupported_mechanism():
    key = gen_key()
    _, signature = sign(key, b'hello world')
    with pytest.raises(CryptoEvaluationError) as exc_info:
        DefaultSignatureValidator().check_signature(
            signature, b'hello world', public_key_info(key),
            algos.SignedDigestAlgorithm({'algorithm': '1.2.3.4.5'}),
        )
    assert exc_info.value.kind is ErrorKind.CRYPTO_EVALUATION_FAILURE


def test_malformed_key():
    key = gen_key()
    algo, signature = sign(key, b'hello world')
    bogus_key = keys.PublicKeyInfo(
        {
            'algorithm': {
                'algorithm': 'ec',
                'parameters': keys.ECDomainParameters(
                    name='named', value='secp256r1'
                ),
            },
            'public_key': b'\x04' + b'\x00' * 64,
        }
    )
    with pytest.raises(CryptoEvaluationError):
        DefaultSignatureValidator().check_signature(
            signature, b'hello world', bogus_key,
            algos.SignedDigestAlgorithm({'algorithm': algo}),
        )


def test_check_certificate_signature():
    root_key = gen_key()
    root = self_signed('Root', root_key)
    leaf = issue_cert('Leaf', gen_key(), 'Root', root_key)
    validator = DefaultSignatureValidator()
    valid = SignatureStatus.VALID
    assert validator.check_certificate_signature(leaf, root.public_key) is valid
    assert validator.check_certificate_signature(root, root.public_key) is valid
    assert validator.check_certificate_signature(
        leaf, leaf.public_key
    ) is SignatureStatus.INVALID


def test_check_certificate_signature_names_cert_on_failure():
    key = gen_key()
    cert = issue_cert(
        'Weird', key, 'Weird', key, signature_algorithm='1.2.3.4.5'
    )
    with pytest.raises(CryptoEvaluationError) as exc_info:
        DefaultSignatureValidator().check_certificate_signature(
            cert, cert.public_key
        )
    assert exc_info.value.certificate.dump() == cert.dump()
