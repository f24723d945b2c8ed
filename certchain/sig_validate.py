from __future__ import annotations

import abc
import enum

from asn1crypto import algos, x509
from asn1crypto.keys import PublicKeyInfo
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import (
    dsa,
    ec,
    ed448,
    ed25519,
    padding,
    rsa,
)

from .errors import CryptoEvaluationError

__all__ = [
    'SignatureStatus',
    'SignatureValidator',
    'DefaultSignatureValidator',
]


class SignatureStatus(enum.Enum):
    VALID = enum.auto()
    """
    The public key validates the signature.
    """

    INVALID = enum.auto()
    """
    The signature does not match, or the key cannot be used with the
    signature mechanism. This is an expected outcome, not an error.
    """


class SignatureValidator(abc.ABC):
    """
    Abstracts away cryptographic validation primitives.
    """

    def check_signature(
        self,
        signature: bytes,
        signed_data: bytes,
        public_key_info: PublicKeyInfo,
        signature_algorithm: algos.SignedDigestAlgorithm,
    ) -> SignatureStatus:
        """
        Check a cryptographic signature over a piece of data.

        :param signature:
            The signature data.
        :param signed_data:
            The signed data.
        :param public_key_info:
            The public key with which to validate the signature.
        :param signature_algorithm:
            The algorithm to use when validating.
        :return:
            :attr:`SignatureStatus.VALID` or :attr:`SignatureStatus.INVALID`.
        :raises CryptoEvaluationError:
            Raised if the signature could not be evaluated at all
            (malformed key, unsupported mechanism, ...).
        """
        raise NotImplementedError()

    def check_certificate_signature(
        self, cert: x509.Certificate, public_key_info: PublicKeyInfo
    ) -> SignatureStatus:
        """
        Check the signature on a certificate against a public key.

        :param cert:
            The certificate whose signature should be checked.
        :param public_key_info:
            The public key of the (purported) issuer.
        :return:
            A :class:`SignatureStatus`.
        :raises CryptoEvaluationError:
            See :meth:`check_signature`.
        """
        try:
            return self.check_signature(
                signature=cert['signature_value'].native,
                signed_data=cert['tbs_certificate'].dump(),
                public_key_info=public_key_info,
                signature_algorithm=cert['signature_algorithm'],
            )
        except CryptoEvaluationError as e:
            if e.certificate is None:
                e.certificate = cert
            raise


class DefaultSignatureValidator(SignatureValidator):
    """
    Signature validator backed by pyca/cryptography.
    """

    def check_signature(
        self,
        signature: bytes,
        signed_data: bytes,
        public_key_info: PublicKeyInfo,
        signature_algorithm: algos.SignedDigestAlgorithm,
    ) -> SignatureStatus:
        try:
            _validate_raw(
                signature, signed_data, public_key_info, signature_algorithm
            )
        except (InvalidSignature, _KeyMismatch):
            return SignatureStatus.INVALID
        except (ValueError, UnsupportedAlgorithm, NotImplementedError) as e:
            raise CryptoEvaluationError(
                f"Signature could not be evaluated: {e}"
            ) from e
        return SignatureStatus.VALID


class _KeyMismatch(Exception):
    pass


def _hash_for(hash_algo: str) -> hashes.HashAlgorithm:
    try:
        return getattr(hashes, hash_algo.upper())()
    except AttributeError:
        raise NotImplementedError(
            f"Hash algorithm {hash_algo} is not supported."
        )


def _validate_raw(
    signature: bytes,
    signed_data: bytes,
    public_key_info: PublicKeyInfo,
    signature_algorithm: algos.SignedDigestAlgorithm,
):
    try:
        sig_algo = signature_algorithm.signature_algo
    except ValueError:
        sig_algo = signature_algorithm['algorithm'].native

    parameters = signature_algorithm['parameters']

    if (
        sig_algo == 'dsa'
        and public_key_info['algorithm']['parameters'].native is None
    ):
        raise ValueError("DSA public key parameters were not provided.")

    # pyca/cryptography can't load PSS-exclusive keys without some help:
    if public_key_info.algorithm == 'rsassa_pss':
        if sig_algo != 'rsassa_pss':
            raise _KeyMismatch()
        public_key_info = public_key_info.copy()
        pss_key_params = public_key_info['algorithm']['parameters'].native
        if pss_key_params is not None and pss_key_params != parameters.native:
            # key is restricted to other PSS parameters
            raise _KeyMismatch()
        # set key type to generic RSA, discard parameters
        public_key_info['algorithm'] = {'algorithm': 'rsa'}

    pub_key = serialization.load_der_public_key(public_key_info.dump())

    if sig_algo in ('rsassa_pkcs1v15', 'rsassa_pss', 'dsa', 'ecdsa'):
        hash_algo = signature_algorithm.hash_algo

    if sig_algo == 'rsassa_pkcs1v15':
        if not isinstance(pub_key, rsa.RSAPublicKey):
            raise _KeyMismatch()
        pub_key.verify(
            signature, signed_data, padding.PKCS1v15(), _hash_for(hash_algo)
        )
    elif sig_algo == 'rsassa_pss':
        if not isinstance(pub_key, rsa.RSAPublicKey):
            raise _KeyMismatch()
        assert isinstance(parameters, algos.RSASSAPSSParams)
        mga: algos.MaskGenAlgorithm = parameters['mask_gen_algorithm']
        if not mga['algorithm'].native == 'mgf1':
            raise NotImplementedError("Only MFG1 is supported")

        mgf_md = _hash_for(mga['parameters']['algorithm'].native)
        salt_len: int = parameters['salt_length'].native
        pss_padding = padding.PSS(
            mgf=padding.MGF1(algorithm=mgf_md), salt_length=salt_len
        )
        pub_key.verify(
            signature, signed_data, pss_padding, _hash_for(hash_algo)
        )
    elif sig_algo == 'dsa':
        if not isinstance(pub_key, dsa.DSAPublicKey):
            raise _KeyMismatch()
        pub_key.verify(signature, signed_data, _hash_for(hash_algo))
    elif sig_algo == 'ecdsa':
        if not isinstance(pub_key, ec.EllipticCurvePublicKey):
            raise _KeyMismatch()
        pub_key.verify(signature, signed_data, ec.ECDSA(_hash_for(hash_algo)))
    elif sig_algo == 'ed25519':
        if not isinstance(pub_key, ed25519.Ed25519PublicKey):
            raise _KeyMismatch()
        pub_key.verify(signature, signed_data)
    elif sig_algo == 'ed448':
        if not isinstance(pub_key, ed448.Ed448PublicKey):
            raise _KeyMismatch()
        pub_key.verify(signature, signed_data)
    else:
        raise NotImplementedError(
            f"Signature mechanism {sig_algo} is not supported."
        )
