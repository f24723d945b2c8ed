import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from asn1crypto import x509

from .errors import CryptoEvaluationError
from .sig_validate import (
    DefaultSignatureValidator,
    SignatureStatus,
    SignatureValidator,
)
from .util import dedup_certs

__all__ = ['ClassifiedPool', 'classify', 'is_self_signed']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifiedPool:
    """
    A certificate pool split into trust anchors and intermediates.
    Both tuples preserve the order in which certificates were supplied.
    """

    anchors: Tuple[x509.Certificate, ...] = ()
    """
    Self-signed certificates.
    """

    intermediates: Tuple[x509.Certificate, ...] = ()
    """
    All other certificates.
    """

    def __len__(self):
        return len(self.anchors) + len(self.intermediates)


def is_self_signed(cert: x509.Certificate,
                   signature_validator: Optional[SignatureValidator] = None
                   ) -> bool:
    """
    Check whether a certificate validates against its own public key.

    :param cert:
        The certificate to check.
    :param signature_validator:
        The signature validator to use.
    :return:
        ``True`` if the certificate is self-signed, ``False`` if the
        signature does not match the certificate's own key.
    :raises CryptoEvaluationError:
        if the self-signature could not be evaluated at all.
    """
    validator = signature_validator or DefaultSignatureValidator()
    try:
        status = validator.check_certificate_signature(cert, cert.public_key)
    except CryptoEvaluationError as e:
        raise CryptoEvaluationError(
            f'Could not determine whether "{cert.subject.human_friendly}" '
            f'is self-signed: {e.failure_msg}', cert
        ) from e
    return status is SignatureStatus.VALID


def classify(pool: Iterable[x509.Certificate],
             signature_validator: Optional[SignatureValidator] = None
             ) -> ClassifiedPool:
    """
    Partition a pool of certificates into trust anchors (self-signed
    certificates) and intermediates (everything else).

    Duplicate certificates (by encoding) are collapsed.

    :param pool:
        An iterable of :class:`asn1crypto.x509.Certificate` objects.
    :param signature_validator:
        The signature validator to use.
    :return:
        A :class:`ClassifiedPool`.
    :raises CryptoEvaluationError:
        if the self-signature of some certificate in the pool could not be
        evaluated.
    """
    validator = signature_validator or DefaultSignatureValidator()
    anchors = []
    intermediates = []
    for cert in dedup_certs(pool):
        if is_self_signed(cert, validator):
            logger.debug(
                f"Classified \"{cert.subject.human_friendly}\" as trust anchor"
            )
            anchors.append(cert)
        else:
            logger.debug(
                f"Classified \"{cert.subject.human_friendly}\" "
                f"as intermediate"
            )
            intermediates.append(cert)
    return ClassifiedPool(anchors=tuple(anchors),
                          intermediates=tuple(intermediates))
