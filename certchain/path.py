# coding: utf-8
from typing import Iterable, Tuple

from asn1crypto import x509

from .trust_anchor import CertTrustAnchor
from .util import cert_id


class CertificationPath:
    """
    Represents a candidate path from an end-entity certificate up to
    a trust anchor. Certificates are stored leaf-first.

    :param certs:
        The certificates in the path, starting with the leaf and ending
        with the certificate of the trust anchor.
    :param trust_anchor:
        The trust anchor at the end of the path.
    """

    def __init__(self, certs: Iterable[x509.Certificate],
                 trust_anchor: CertTrustAnchor):
        self._certs: Tuple[x509.Certificate, ...] = tuple(certs)
        if len(self._certs) < 2:
            raise ValueError(
                "A certification path consists of at least a leaf "
                "and a trust anchor"
            )
        if cert_id(self._certs[-1]) != cert_id(trust_anchor.certificate):
            raise ValueError("Path does not terminate at its trust anchor")
        self._root = trust_anchor

    @property
    def trust_anchor(self) -> CertTrustAnchor:
        return self._root

    @property
    def certs(self) -> Tuple[x509.Certificate, ...]:
        return self._certs

    @property
    def leaf(self) -> x509.Certificate:
        """
        The end-entity certificate at the start of the path.
        """
        return self._certs[0]

    @property
    def intermediates(self) -> Tuple[x509.Certificate, ...]:
        return self._certs[1:-1]

    def links(self):
        """
        Iterate over adjacent ``(child, parent)`` pairs, leaf first.
        """
        return zip(self._certs, self._certs[1:])

    @property
    def pkix_len(self):
        # RFC 5280 path length, i.e. the root doesn't count
        return len(self._certs) - 1

    def describe(self) -> str:
        return ' -> '.join(
            f'"{cert.subject.human_friendly}"' for cert in self._certs
        )

    def __len__(self):
        return len(self._certs)

    def __getitem__(self, key):
        return self._certs[key]

    def __iter__(self):
        return iter(self._certs)

    def __eq__(self, other):
        if not isinstance(other, CertificationPath):
            return False
        return (
            type(self) is type(other)
            and self.trust_anchor == other.trust_anchor
            and [cert_id(c) for c in self._certs]
            == [cert_id(c) for c in other._certs]
        )

    def __repr__(self):
        return f"{type(self).__name__}({self.describe()})"


class VerifiedChain(CertificationPath):
    """
    A :class:`CertificationPath` that passed verification.
    """

    @classmethod
    def from_path(cls, path: CertificationPath) -> 'VerifiedChain':
        return cls(path.certs, path.trust_anchor)
