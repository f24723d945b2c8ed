# coding: utf-8
import enum
from datetime import datetime
from typing import Optional

from asn1crypto import x509

__all__ = [
    'ErrorKind',
    'ChainError',
    'AbsentCertificateError',
    'ExpiredError',
    'NotYetValidError',
    'SelfSignedLeafError',
    'PathBuildingError',
    'BrokenChainLinkError',
    'ConstraintViolationError',
    'CryptoEvaluationError',
    'CertificateVerificationError',
]


class ErrorKind(enum.Enum):
    ABSENT_CERTIFICATE = 'absent_certificate'
    EXPIRED = 'expired'
    SELF_SIGNED_LEAF = 'self_signed_leaf'
    NO_PATH_FOUND = 'no_path_found'
    BROKEN_CHAIN_LINK = 'broken_chain_link'
    CONSTRAINT_VIOLATION = 'constraint_violation'
    CRYPTO_EVALUATION_FAILURE = 'crypto_evaluation_failure'


class ChainError(Exception):
    """
    Base class for all errors raised while building or verifying a chain.
    """

    kind: ErrorKind

    def __init__(self, msg: str,
                 certificate: Optional[x509.Certificate] = None):
        self.failure_msg = msg
        self.certificate = certificate
        super().__init__(msg)

    @property
    def subject(self) -> Optional[str]:
        if self.certificate is None:
            return None
        return self.certificate.subject.human_friendly


class AbsentCertificateError(ChainError):
    kind = ErrorKind.ABSENT_CERTIFICATE


class ExpiredError(ChainError):
    kind = ErrorKind.EXPIRED

    @classmethod
    def format(cls, cert: x509.Certificate, moment: datetime,
               description: str = 'the certificate'):
        validity = cert['tbs_certificate']['validity']
        not_after = validity['not_after'].native
        date = not_after.strftime('%Y-%m-%d')
        time = not_after.strftime('%H:%M:%S')
        return cls(
            f'The path could not be validated because {description} '
            f'"{cert.subject.human_friendly}" expired {date} {time}Z',
            cert, moment=moment
        )

    def __init__(self, msg: str, certificate: x509.Certificate, *,
                 moment: datetime):
        validity = certificate['tbs_certificate']['validity']
        self.not_before: datetime = validity['not_before'].native
        self.not_after: datetime = validity['not_after'].native
        self.moment = moment
        super().__init__(msg, certificate)


class NotYetValidError(ExpiredError):

    @classmethod
    def format(cls, cert: x509.Certificate, moment: datetime,
               description: str = 'the certificate'):
        validity = cert['tbs_certificate']['validity']
        not_before = validity['not_before'].native
        date = not_before.strftime('%Y-%m-%d')
        time = not_before.strftime('%H:%M:%S')
        return cls(
            f'The path could not be validated because {description} '
            f'"{cert.subject.human_friendly}" is not valid until '
            f'{date} {time}Z',
            cert, moment=moment
        )


class SelfSignedLeafError(ChainError):
    kind = ErrorKind.SELF_SIGNED_LEAF


class PathBuildingError(ChainError):
    kind = ErrorKind.NO_PATH_FOUND

    def __init__(self, msg: str, certificate: x509.Certificate,
                 missing_issuer: Optional[x509.Name] = None):
        self.missing_issuer = missing_issuer
        super().__init__(msg, certificate)


class BrokenChainLinkError(ChainError):
    kind = ErrorKind.BROKEN_CHAIN_LINK

    def __init__(self, msg: str, certificate: x509.Certificate,
                 issuer_certificate: x509.Certificate):
        self.issuer_certificate = issuer_certificate
        super().__init__(msg, certificate)


class ConstraintViolationError(ChainError):
    kind = ErrorKind.CONSTRAINT_VIOLATION


class CryptoEvaluationError(ChainError):
    """
    Raised when a signature could not be evaluated at all, as opposed to
    a signature that was evaluated and found to be invalid.
    """
    kind = ErrorKind.CRYPTO_EVALUATION_FAILURE


class CertificateVerificationError(ChainError):
    """
    Error raised by the verification facade. It wraps exactly one
    underlying :class:`ChainError` and takes over its kind and certificate.
    """

    def __init__(self, msg: str, cause: ChainError,
                 certificate: Optional[x509.Certificate] = None):
        self.cause = cause
        self.kind = cause.kind
        super().__init__(msg, certificate)
