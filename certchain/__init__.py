import logging
from datetime import datetime
from typing import Iterable, Optional

from asn1crypto import x509

from .classify import ClassifiedPool, classify
from .config.verifier import VerifierConfig
from .errors import CertificateVerificationError, ChainError, ErrorKind
from .path import CertificationPath, VerifiedChain
from .registry import PathBuilder
from .sig_validate import DefaultSignatureValidator, SignatureValidator
from .validate import check_leaf, resolve_moment, verify_path
from .version import __version__, __version_info__

__all__ = [
    '__version__',
    '__version_info__',
    'CertificateVerifier',
    'CertificateVerificationError',
    'CertificationPath',
    'ClassifiedPool',
    'ErrorKind',
    'VerifiedChain',
    'VerifierConfig',
    'verify_certificate',
]

logger = logging.getLogger(__name__)


class CertificateVerifier:
    """
    Builds and verifies certification chains for end-entity certificates.

    Every self-signed certificate in the pool passed to :meth:`verify` is
    considered a trusted root; all others are considered intermediates.
    Revocation is not checked.

    :param signature_validator:
        The :class:`.SignatureValidator` to evaluate signatures with.
        Defaults to a :class:`.DefaultSignatureValidator`.
    :param config:
        A :class:`.VerifierConfig` with verification settings.
    """

    def __init__(self,
                 signature_validator: Optional[SignatureValidator] = None,
                 config: Optional[VerifierConfig] = None):
        self.signature_validator = (
            signature_validator or DefaultSignatureValidator()
        )
        self.config = config or VerifierConfig()

    def verify(self, cert: Optional[x509.Certificate],
               pool: Iterable[x509.Certificate],
               moment: Optional[datetime] = None) -> VerifiedChain:
        """
        Attempt to build a certification chain for a certificate and to
        verify it.

        :param cert:
            The certificate to validate.
        :param pool:
            Trusted root certificates and intermediate certificates that
            may be used to build the chain, in any order.
        :param moment:
            The time at which to validate. Defaults to now.
        :return:
            The :class:`.VerifiedChain`, leaf first.
        :raises CertificateVerificationError:
            if the chain could not be built or verified.
        """
        moment = resolve_moment(moment)
        try:
            return self._verify(cert, pool, moment)
        except ChainError as e:
            raise self._wrap(cert, e) from e

    def _verify(self, cert, pool, moment) -> VerifiedChain:
        tolerance = self.config.time_tolerance
        check_leaf(cert, moment, tolerance, self.signature_validator)

        classified = classify(pool, self.signature_validator)
        builder = PathBuilder(
            classified, signature_validator=self.signature_validator
        )

        # raises if there is no candidate at all
        candidates = builder.iter_paths(cert)
        first = next(candidates)
        try:
            return self._verify_candidate(first, moment)
        except ChainError:
            # report the failure of the preferred path if all of them fail
            for candidate in candidates:
                try:
                    return self._verify_candidate(candidate, moment)
                except ChainError:
                    continue
            raise

    def _verify_candidate(self, candidate: CertificationPath,
                          moment: datetime) -> VerifiedChain:
        try:
            return verify_path(
                candidate,
                moment=moment,
                time_tolerance=self.config.time_tolerance,
                signature_validator=self.signature_validator,
                enforce_basic_constraints=(
                    self.config.enforce_basic_constraints
                ),
            )
        except ChainError as e:
            logger.debug(
                f"Candidate path {candidate.describe()} rejected: "
                f"{e.failure_msg}"
            )
            raise

    @staticmethod
    def _wrap(cert: Optional[x509.Certificate],
              e: ChainError) -> CertificateVerificationError:
        if e.kind is ErrorKind.ABSENT_CERTIFICATE:
            msg = e.failure_msg
        elif e.kind is ErrorKind.NO_PATH_FOUND:
            msg = f"No CA has been found: {e.failure_msg}"
        elif e.kind is ErrorKind.EXPIRED:
            msg = e.failure_msg
        else:
            msg = (
                f"Error verifying the certificate "
                f"\"{cert.subject.human_friendly}\": {e.failure_msg}"
            )
        logger.info(msg)
        certificate = e.certificate if e.certificate is not None else cert
        return CertificateVerificationError(msg, e, certificate)


def verify_certificate(cert: Optional[x509.Certificate],
                       pool: Iterable[x509.Certificate], *,
                       moment: Optional[datetime] = None,
                       signature_validator: Optional[SignatureValidator] = None,
                       config: Optional[VerifierConfig] = None) \
        -> VerifiedChain:
    """
    Convenience wrapper around :meth:`CertificateVerifier.verify`.
    """
    verifier = CertificateVerifier(
        signature_validator=signature_validator, config=config
    )
    return verifier.verify(cert, pool, moment=moment)
