from typing import Optional

from asn1crypto import keys, x509


class CertTrustAnchor:
    """
    Trust anchor provisioned as a (self-signed) certificate.

    :param cert:
        The certificate.
    """

    def __init__(self, cert: x509.Certificate):
        self._cert = cert

    @property
    def name(self) -> x509.Name:
        return self._cert.subject

    @property
    def public_key(self) -> keys.PublicKeyInfo:
        return self._cert.public_key

    @property
    def hashable(self):
        cert = self._cert
        return cert.subject.hashable, cert.public_key.dump()

    @property
    def key_id(self) -> Optional[bytes]:
        """
        Key ID as (potentially) referenced in an authorityKeyIdentifier
        extension. Only used to eliminate non-matching trust anchors,
        never to retrieve keys or to definitively identify trust anchors.
        """
        return self._cert.key_identifier

    @property
    def max_path_length(self) -> Optional[int]:
        return self._cert.max_path_length

    @property
    def certificate(self) -> x509.Certificate:
        return self._cert

    def __hash__(self):
        return hash(self.hashable)

    def __eq__(self, other):
        if not isinstance(other, CertTrustAnchor):
            return False

        return self.hashable == other.hashable

    def __repr__(self):
        return f"CertTrustAnchor({self.name.human_friendly!r})"

    def is_potential_issuer_of(self, cert: x509.Certificate) -> bool:
        return is_potential_issuer(self._cert, cert)


def is_potential_issuer(issuer: x509.Certificate,
                        cert: x509.Certificate) -> bool:
    """
    Check whether ``issuer`` could have issued ``cert`` based on names and
    key identifiers alone. No signatures are checked.
    """
    if cert.issuer != issuer.subject:
        return False
    # key identifiers are only used to eliminate candidates
    if cert.authority_key_identifier and issuer.key_identifier:
        if cert.authority_key_identifier != issuer.key_identifier:
            return False
    return True
