# coding: utf-8

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from asn1crypto import x509

from .classify import is_self_signed
from .errors import (
    AbsentCertificateError,
    BrokenChainLinkError,
    ConstraintViolationError,
    CryptoEvaluationError,
    ExpiredError,
    NotYetValidError,
    SelfSignedLeafError,
)
from .path import CertificationPath, VerifiedChain
from .sig_validate import (
    DefaultSignatureValidator,
    SignatureStatus,
    SignatureValidator,
)
from .util import is_expired, is_not_yet_valid

__all__ = [
    'DEFAULT_TIME_TOLERANCE',
    'resolve_moment',
    'check_validity',
    'check_leaf',
    'verify_path',
]

logger = logging.getLogger(__name__)

DEFAULT_TIME_TOLERANCE = timedelta(seconds=1)


def resolve_moment(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.utcoffset() is None:
        raise ValueError(
            "moment is a naive datetime object; it must carry a timezone"
        )
    return moment


def check_validity(cert: x509.Certificate, moment: datetime,
                   tolerance: timedelta = DEFAULT_TIME_TOLERANCE,
                   description: str = 'the certificate'):
    """
    Check that ``moment`` lies within the validity window of a certificate.

    :raises NotYetValidError:
        if the certificate is not valid yet.
    :raises ExpiredError:
        if the certificate has expired.
    """
    if is_not_yet_valid(cert, moment, tolerance):
        raise NotYetValidError.format(cert, moment, description)
    if is_expired(cert, moment, tolerance):
        raise ExpiredError.format(cert, moment, description)


def check_leaf(cert: Optional[x509.Certificate], moment: datetime,
               tolerance: timedelta = DEFAULT_TIME_TOLERANCE,
               signature_validator: Optional[SignatureValidator] = None):
    """
    Check the preconditions on a certificate that is about to be validated,
    in order: presence, validity window, not self-signed.

    :raises AbsentCertificateError:
        if no certificate was supplied.
    :raises ExpiredError:
        if the certificate is outside of its validity window.
    :raises SelfSignedLeafError:
        if the certificate is self-signed.
    :raises CryptoEvaluationError:
        if the self-signature could not be evaluated.
    """
    if cert is None:
        raise AbsentCertificateError("The certificate has no value.")

    check_validity(cert, moment, tolerance, 'the end-entity certificate')

    if is_self_signed(cert, signature_validator):
        raise SelfSignedLeafError(
            f'The certificate "{cert.subject.human_friendly}" is self-signed.',
            cert
        )


def _describe_position(path: CertificationPath, index: int) -> str:
    if index == 0:
        return 'the end-entity certificate'
    elif index == len(path) - 1:
        return 'the trust anchor'
    return f'intermediate certificate {index}'


def _check_link(path: CertificationPath, index: int,
                validator: SignatureValidator):
    child = path[index]
    parent = path[index + 1]
    try:
        status = validator.check_certificate_signature(
            child, parent.public_key
        )
    except CryptoEvaluationError as e:
        raise CryptoEvaluationError(
            f"The signature of {_describe_position(path, index)} "
            f"\"{child.subject.human_friendly}\" could not be evaluated: "
            f"{e.failure_msg}", child
        ) from e
    if status is not SignatureStatus.VALID:
        raise BrokenChainLinkError(
            f"The path could not be validated because the signature of "
            f"{_describe_position(path, index)} "
            f"\"{child.subject.human_friendly}\" could not be verified "
            f"with the public key of \"{parent.subject.human_friendly}\"",
            child, parent
        )


def _check_issuer_constraints(path: CertificationPath, index: int):
    cert = path[index]
    desc = _describe_position(path, index)
    is_anchor = index == len(path) - 1
    if not is_anchor and not cert.ca:
        raise ConstraintViolationError(
            f"The path could not be validated because {desc} "
            f"\"{cert.subject.human_friendly}\" is not a CA", cert
        )

    max_path_length = cert.max_path_length
    if max_path_length is None:
        return
    # self-issued intermediates do not count towards the path length
    below = sum(
        1 for interm in path.certs[1:index] if not interm.self_issued
    )
    if below > max_path_length:
        raise ConstraintViolationError(
            f"The path could not be validated because it exceeds the "
            f"maximum path length of {max_path_length} imposed by "
            f"{desc} \"{cert.subject.human_friendly}\"", cert
        )


def verify_path(path: CertificationPath, *,
                moment: Optional[datetime] = None,
                time_tolerance: timedelta = DEFAULT_TIME_TOLERANCE,
                signature_validator: Optional[SignatureValidator] = None,
                enforce_basic_constraints: bool = True) -> VerifiedChain:
    """
    Verify every link of a certification path.

    For every adjacent pair in the path, starting at the leaf, the child's
    validity window is checked first, then its signature against the
    parent's public key, and then (optionally) the parent's basic
    constraints. The validity window of the trust anchor is checked last.

    :param path:
        The :class:`.CertificationPath` to verify.
    :param moment:
        The time at which to evaluate validity windows. Defaults to now.
    :param time_tolerance:
        Tolerance to apply to validity windows.
    :param signature_validator:
        The signature validator to use.
    :param enforce_basic_constraints:
        Whether to check CA flags and path length constraints.
    :return:
        A :class:`.VerifiedChain`.
    :raises ChainError:
        an :class:`.ExpiredError`, :class:`.BrokenChainLinkError`,
        :class:`.ConstraintViolationError` or
        :class:`.CryptoEvaluationError`, depending on the first problem
        encountered.
    """
    moment = resolve_moment(moment)
    validator = signature_validator or DefaultSignatureValidator()

    for index in range(len(path) - 1):
        check_validity(
            path[index], moment, time_tolerance,
            _describe_position(path, index)
        )
        _check_link(path, index, validator)
        if enforce_basic_constraints:
            _check_issuer_constraints(path, index + 1)

    anchor_index = len(path) - 1
    check_validity(
        path[anchor_index], moment, time_tolerance,
        _describe_position(path, anchor_index)
    )
    logger.debug(f"Verified path {path.describe()}")
    return VerifiedChain.from_path(path)
