# coding: utf-8

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

from asn1crypto import x509

from .classify import ClassifiedPool
from .errors import BrokenChainLinkError, PathBuildingError
from .path import CertificationPath
from .sig_validate import (
    DefaultSignatureValidator,
    SignatureStatus,
    SignatureValidator,
)
from .trust_anchor import CertTrustAnchor, is_potential_issuer
from .util import ConsList, cert_id
from .validate import DEFAULT_TIME_TOLERANCE, check_leaf, resolve_moment

__all__ = ['CertificateRegistry', 'PathBuilder', 'build_path']

logger = logging.getLogger(__name__)


class CertificateRegistry:
    """
    Simple trustless certificate store, indexed by subject name.
    Lookups return certificates in registration order.
    """

    @classmethod
    def build(cls, certs: Iterable[x509.Certificate] = ()):
        result = cls()
        for cert in certs:
            result.register(cert)
        return result

    def __init__(self):
        self.certs = {}
        self._subject_map = defaultdict(list)

    def register(self, cert: x509.Certificate) -> bool:
        """
        Register a single certificate.

        :param cert:
            Certificate to add.
        :return:
            ``True`` if the certificate was added, ``False`` if it already
            existed in this store.
        """
        key = cert_id(cert)
        if key in self.certs:
            return False
        self.certs[key] = cert
        self._subject_map[cert.subject.hashable].append(cert)
        return True

    def __contains__(self, cert: x509.Certificate):
        return cert_id(cert) in self.certs

    def __iter__(self):
        return iter(self.certs.values())

    def __len__(self):
        return len(self.certs)

    def retrieve_by_name(self, name: x509.Name) -> List[x509.Certificate]:
        """
        Retrieves a list certs via their subject name

        :param name:
            An asn1crypto.x509.Name object

        :return:
            A list of asn1crypto.x509.Certificate objects
        """
        return list(self._subject_map.get(name.hashable, ()))


Candidate = Union[CertTrustAnchor, x509.Certificate]


class PathBuilder:
    """
    Class to handle path building.

    :param pool:
        The classified certificate pool to build paths from.
    :param signature_validator:
        The signature validator used to check every link before the path
        is extended. Defaults to a :class:`.DefaultSignatureValidator`.
    """

    def __init__(self, pool: ClassifiedPool,
                 signature_validator: Optional[SignatureValidator] = None):
        self.anchors = CertificateRegistry.build(pool.anchors)
        self.intermediates = CertificateRegistry.build(pool.intermediates)
        self.signature_validator = (
            signature_validator or DefaultSignatureValidator()
        )

    @classmethod
    def from_certs(cls, anchors: Iterable[x509.Certificate],
                   intermediates: Iterable[x509.Certificate],
                   signature_validator: Optional[SignatureValidator] = None):
        pool = ClassifiedPool(
            anchors=tuple(anchors), intermediates=tuple(intermediates)
        )
        return cls(pool, signature_validator=signature_validator)

    def find_potential_issuers(self, cert: x509.Certificate) \
            -> Iterator[Candidate]:
        """
        Find potential issuers of a certificate, trust anchors first.
        Only names and key identifiers are compared.

        :param cert:
            Issued certificate.
        :return:
            An iterator yielding :class:`.CertTrustAnchor` objects for
            matching trust anchors, followed by matching intermediate
            certificates.
        """
        # go through matching trust roots first, they end the path
        for anchor_cert in self.anchors.retrieve_by_name(cert.issuer):
            if is_potential_issuer(anchor_cert, cert):
                yield CertTrustAnchor(anchor_cert)

        for issuer in self.intermediates.retrieve_by_name(cert.issuer):
            if issuer in self.anchors:
                continue  # skip, we've had these in the previous step
            if is_potential_issuer(issuer, cert):
                yield issuer

    def iter_paths(self, leaf: x509.Certificate) \
            -> Iterator[CertificationPath]:
        """
        Lazily produce candidate paths from a leaf certificate to a trust
        anchor, in depth-first order. No preconditions on the leaf are
        checked.

        Every link of a produced path carries a valid signature; validity
        windows and basic constraints are left to the path verifier.

        :param leaf:
            The end-entity certificate.
        :return:
            A generator of :class:`.CertificationPath` objects.
            If no path at all could be built, it raises
            :class:`.BrokenChainLinkError` when some certificate names a
            trust anchor as its issuer but was not signed by it, and
            :class:`.PathBuildingError` otherwise.
        :raises CryptoEvaluationError:
            if the signature on some link could not be evaluated.
        """
        walker = _PathWalker(self, leaf)
        emitted = False
        for path in walker:
            emitted = True
            yield path

        if not emitted:
            if walker.broken_link is not None:
                raise walker.broken_link
            dead_end = walker.dead_ends[0] if walker.dead_ends else leaf
            missing_issuer = dead_end.issuer
            raise PathBuildingError(
                f"Unable to build a validation path for the certificate "
                f"\"{leaf.subject.human_friendly}\" - no CA has been found: "
                f"no issuer matching \"{missing_issuer.human_friendly}\" "
                f"was found", leaf, missing_issuer=missing_issuer
            )

    def build_path(self, leaf: Optional[x509.Certificate], *,
                   moment: Optional[datetime] = None,
                   time_tolerance: timedelta = DEFAULT_TIME_TOLERANCE) \
            -> CertificationPath:
        """
        Check the preconditions on the leaf certificate, and return the
        first path discovered from the leaf to a trust anchor.

        :param leaf:
            The end-entity certificate.
        :param moment:
            The time at which to evaluate the leaf's validity window.
            Defaults to now.
        :param time_tolerance:
            Tolerance to apply to the validity window.
        :return:
            A :class:`.CertificationPath`.
        :raises ChainError:
            an :class:`.AbsentCertificateError`, :class:`.ExpiredError`,
            :class:`.SelfSignedLeafError`, :class:`.BrokenChainLinkError`
            or :class:`.PathBuildingError`.
        """
        check_leaf(
            leaf, resolve_moment(moment), time_tolerance,
            self.signature_validator
        )
        return next(iter(self.iter_paths(leaf)))


class _Frame:
    def __init__(self, path: ConsList[x509.Certificate],
                 certs_seen: ConsList[bytes], issuers: Iterator[Candidate]):
        self.path = path
        self.certs_seen = certs_seen
        self.issuers = issuers
        self.issuers_found = 0
        self.paths_found = 0


class _PathWalker:

    def __init__(self, path_builder: PathBuilder, leaf: x509.Certificate):
        self.path_builder = path_builder
        self.leaf = leaf
        # certificates for which no usable issuer was found
        self.dead_ends: List[x509.Certificate] = []
        # certificates from which no trust anchor could be reached
        self.exhausted: Set[bytes] = set()
        self.broken_link: Optional[BrokenChainLinkError] = None
        self._links: Dict[Tuple[bytes, bytes], bool] = {}

    def _frame(self, path, certs_seen):
        cert = path.head
        issuers = iter(self.path_builder.find_potential_issuers(cert))
        return _Frame(path, certs_seen, issuers)

    def _link_is_valid(self, cert: x509.Certificate,
                       issuer_cert: x509.Certificate) -> bool:
        key = (cert_id(cert), cert_id(issuer_cert))
        try:
            return self._links[key]
        except KeyError:
            pass
        validator = self.path_builder.signature_validator
        status = validator.check_certificate_signature(
            cert, issuer_cert.public_key
        )
        result = self._links[key] = status is SignatureStatus.VALID
        return result

    def _record_broken_link(self, cert: x509.Certificate,
                            anchor_cert: x509.Certificate):
        if self.broken_link is not None:
            return
        self.broken_link = BrokenChainLinkError(
            f"The path could not be validated because the signature of "
            f"\"{cert.subject.human_friendly}\" could not be verified with "
            f"the public key of the trust anchor "
            f"\"{anchor_cert.subject.human_friendly}\"",
            cert, anchor_cert
        )

    def _pop(self, stack: List[_Frame]):
        frame = stack.pop()
        cert = frame.path.head
        if not frame.issuers_found:
            self.dead_ends.append(cert)
        if frame.paths_found:
            if stack:
                stack[-1].paths_found += frame.paths_found
        else:
            self.exhausted.add(cert_id(cert))

    def __iter__(self) -> Iterator[CertificationPath]:
        stack = [
            self._frame(
                ConsList.sing(self.leaf), ConsList.sing(cert_id(self.leaf))
            )
        ]
        while stack:
            frame = stack[-1]
            try:
                next_issuer = next(frame.issuers)
            except StopIteration:
                self._pop(stack)
                continue

            is_anchor = isinstance(next_issuer, CertTrustAnchor)
            issuer_cert = (
                next_issuer.certificate if is_anchor else next_issuer
            )
            issuer_id = cert_id(issuer_cert)
            issuer_name = issuer_cert.subject.human_friendly
            if issuer_id in frame.certs_seen:
                logger.debug(
                    f"Pruning \"{issuer_name}\": already on the current path"
                )
                continue

            cert = frame.path.head
            if not self._link_is_valid(cert, issuer_cert):
                logger.debug(
                    f"Pruning \"{issuer_name}\": its key does not validate "
                    f"the signature of \"{cert.subject.human_friendly}\""
                )
                if is_anchor:
                    self._record_broken_link(cert, issuer_cert)
                continue
            frame.issuers_found += 1

            if issuer_id in self.exhausted:
                logger.debug(
                    f"Pruning \"{issuer_name}\": no trust anchor is "
                    f"reachable from it"
                )
                continue

            if is_anchor:
                # We've reached a trust root -> emit path
                certs = list(reversed(list(frame.path)))
                certs.append(issuer_cert)
                path = CertificationPath(certs, next_issuer)
                frame.paths_found += 1
                logger.debug(f"Found candidate path {path.describe()}")
                yield path
            else:
                logger.debug(f"Trying intermediate \"{issuer_name}\"")
                stack.append(
                    self._frame(
                        frame.path.cons(issuer_cert),
                        frame.certs_seen.cons(issuer_id),
                    )
                )


def build_path(leaf: Optional[x509.Certificate],
               anchors: Iterable[x509.Certificate],
               intermediates: Iterable[x509.Certificate], *,
               moment: Optional[datetime] = None,
               time_tolerance: timedelta = DEFAULT_TIME_TOLERANCE,
               signature_validator: Optional[SignatureValidator] = None) \
        -> CertificationPath:
    """
    Build a certification path from ``leaf`` to one of ``anchors``,
    using ``intermediates`` as links.

    See :meth:`PathBuilder.build_path`.
    """
    builder = PathBuilder.from_certs(
        anchors, intermediates, signature_validator=signature_validator
    )
    return builder.build_path(
        leaf, moment=moment, time_tolerance=time_tolerance
    )
