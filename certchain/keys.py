"""
Reading certificates from PEM or DER files, for the command line tool.
"""

import logging
from typing import Iterable, List

from asn1crypto import pem, x509

__all__ = [
    'load_cert_from_pemder',
    'load_certs_from_pemder',
    'load_certs_from_pemder_data',
]

logger = logging.getLogger(__name__)


def _parse_cert(der_bytes: bytes) -> x509.Certificate:
    cert = x509.Certificate.load(der_bytes, strict=True)
    # asn1crypto parses lazily, so garbage would only surface later
    cert.native
    return cert


def load_certs_from_pemder_data(data: bytes) -> List[x509.Certificate]:
    """
    Decode all certificates in a blob of PEM or DER data.

    PEM data may contain several blocks; blocks that do not hold a
    certificate (keys, CRLs, ...) are skipped.

    :raises ValueError:
        if some certificate could not be decoded.
    """
    if not pem.detect(data):
        return [_parse_cert(data)]
    certs = []
    for index, (type_name, _, der_bytes) in \
            enumerate(pem.unarmor(data, multiple=True)):
        if type_name not in ('CERTIFICATE', 'X509 CERTIFICATE'):
            logger.debug(f"Skipping PEM block {index} of type {type_name}")
            continue
        certs.append(_parse_cert(der_bytes))
    return certs


def load_certs_from_pemder(cert_files: Iterable[str]) \
        -> List[x509.Certificate]:
    """
    Read certificates from a number of PEM or DER files, in order.

    :raises ValueError:
        if a file holds data that could not be decoded; the message names
        the offending file.
    """
    certs = []
    for fname in cert_files:
        with open(fname, 'rb') as inf:
            data = inf.read()
        try:
            file_certs = load_certs_from_pemder_data(data)
        except ValueError as e:
            raise ValueError(f"{fname}: {e}") from e
        logger.debug(f"Read {len(file_certs)} certificate(s) from {fname}")
        certs.extend(file_certs)
    return certs


def load_cert_from_pemder(cert_file: str) -> x509.Certificate:
    """
    Read the one certificate in a PEM or DER file.

    :raises ValueError:
        if the file does not contain exactly one certificate.
    """
    certs = load_certs_from_pemder([cert_file])
    if len(certs) != 1:
        raise ValueError(
            f"{cert_file}: expected exactly 1 certificate, found {len(certs)}"
        )
    return certs[0]
