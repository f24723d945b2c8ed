from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, Iterable, List, Optional, TypeVar

from asn1crypto import x509


def cert_id(cert: x509.Certificate) -> bytes:
    """
    Identity of a certificate for the purposes of set membership.

    Two certificates are considered the same if and only if their DER
    encodings match, so this is the SHA-256 digest of the full encoding.
    """
    return cert.sha256


def dedup_certs(certs: Iterable[x509.Certificate]) -> List[x509.Certificate]:
    """
    Remove duplicate certificates, keeping the first occurrence of each.
    """
    seen = set()
    result = []
    for cert in certs:
        key = cert_id(cert)
        if key in seen:
            continue
        seen.add(key)
        result.append(cert)
    return result


def validity_bounds(cert: x509.Certificate):
    validity: x509.Validity = cert['tbs_certificate']['validity']
    return validity['not_before'].native, validity['not_after'].native


def is_expired(cert: x509.Certificate, moment: datetime,
               tolerance: timedelta = timedelta(0)) -> bool:
    _, not_after = validity_bounds(cert)
    return moment > not_after + tolerance


def is_not_yet_valid(cert: x509.Certificate, moment: datetime,
                     tolerance: timedelta = timedelta(0)) -> bool:
    not_before, _ = validity_bounds(cert)
    return moment < not_before - tolerance


ListElem = TypeVar('ListElem')


@dataclass(frozen=True)
class ConsList(Generic[ListElem]):
    head: Optional[ListElem]
    tail: Optional[ConsList[ListElem]] = None

    @staticmethod
    def empty() -> ConsList[ListElem]:
        return ConsList(head=None)

    @staticmethod
    def sing(value: ListElem) -> ConsList[ListElem]:
        return ConsList(value, ConsList.empty())

    def __iter__(self):
        cur = self
        while cur.head is not None:
            yield cur.head
            cur = cur.tail

    def cons(self, head: ListElem) -> ConsList[ListElem]:
        return ConsList(head, self)

    def __repr__(self):  # pragma: nocover
        return f"ConsList({list(reversed(list(self)))})"

    def __bool__(self):
        return self.head is not None
