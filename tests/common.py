import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from asn1crypto import core, keys, pem, x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

MOMENT = datetime(2024, 6, 1, tzinfo=timezone.utc)

ROOT_VALIDITY = (
    datetime(2020, 1, 1, tzinfo=timezone.utc),
    datetime(2030, 1, 1, tzinfo=timezone.utc),
)
INTERM_VALIDITY = (
    datetime(2021, 1, 1, tzinfo=timezone.utc),
    datetime(2029, 1, 1, tzinfo=timezone.utc),
)
LEAF_VALIDITY = (
    datetime(2023, 1, 1, tzinfo=timezone.utc),
    datetime(2025, 1, 1, tzinfo=timezone.utc),
)

_serials = itertools.count(1000)


def gen_key(key_type: str = 'ecdsa'):
    if key_type == 'ecdsa':
        return ec.generate_private_key(ec.SECP256R1())
    elif key_type == 'rsa':
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)
    elif key_type == 'ed25519':
        return ed25519.Ed25519PrivateKey.generate()
    raise NotImplementedError(key_type)


def public_key_info(private_key) -> keys.PublicKeyInfo:
    der = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return keys.PublicKeyInfo.load(der)


def sign(private_key, data: bytes):
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return 'sha256_ecdsa', private_key.sign(data, ec.ECDSA(hashes.SHA256()))
    elif isinstance(private_key, rsa.RSAPrivateKey):
        return 'sha256_rsa', private_key.sign(
            data, padding.PKCS1v15(), hashes.SHA256()
        )
    elif isinstance(private_key, ed25519.Ed25519PrivateKey):
        return 'ed25519', private_key.sign(data)
    raise NotImplementedError(type(private_key))


def _algo_for(private_key) -> str:
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return 'sha256_ecdsa'
    elif isinstance(private_key, rsa.RSAPrivateKey):
        return 'sha256_rsa'
    return 'ed25519'


def issue_cert(
    subject_cn: str,
    subject_key,
    issuer_cn: str,
    issuer_key,
    *,
    validity=LEAF_VALIDITY,
    ca: Optional[bool] = None,
    path_len: Optional[int] = None,
    key_identifier: Optional[bytes] = None,
    authority_key_identifier: Optional[bytes] = None,
    signature_algorithm: Optional[str] = None,
) -> x509.Certificate:
    """
    Produce a certificate for ``subject_key``, signed by ``issuer_key``.
    Pass the same name and key twice to get a self-signed certificate.
    """
    extensions = []
    if ca is not None:
        bc = {'ca': ca}
        if path_len is not None:
            bc['path_len_constraint'] = path_len
        extensions.append(
            x509.Extension(
                {
                    'extn_id': 'basic_constraints',
                    'critical': True,
                    'extn_value': x509.BasicConstraints(bc),
                }
            )
        )
    if key_identifier is not None:
        extensions.append(
            x509.Extension(
                {
                    'extn_id': 'key_identifier',
                    'critical': False,
                    'extn_value': core.OctetString(key_identifier),
                }
            )
        )
    if authority_key_identifier is not None:
        extensions.append(
            x509.Extension(
                {
                    'extn_id': 'authority_key_identifier',
                    'critical': False,
                    'extn_value': x509.AuthorityKeyIdentifier(
                        {'key_identifier': authority_key_identifier}
                    ),
                }
            )
        )

    algo = signature_algorithm or _algo_for(issuer_key)
    not_before, not_after = validity
    tbs = x509.TbsCertificate(
        {
            'version': 'v3',
            'serial_number': next(_serials),
            'signature': {'algorithm': algo},
            'issuer': x509.Name.build({'common_name': issuer_cn}),
            'validity': {
                'not_before': x509.Time({'utc_time': not_before}),
                'not_after': x509.Time({'utc_time': not_after}),
            },
            'subject': x509.Name.build({'common_name': subject_cn}),
            'subject_public_key_info': public_key_info(subject_key),
            'extensions': extensions,
        }
    )
    # with an overridden mechanism, the signature is whatever the key makes
    _, signature = sign(issuer_key, tbs.dump())

    cert = x509.Certificate(
        {
            'tbs_certificate': tbs,
            'signature_algorithm': {'algorithm': algo},
            'signature_value': signature,
        }
    )
    return x509.Certificate.load(cert.dump())


def self_signed(cn: str, key, **kwargs) -> x509.Certificate:
    kwargs.setdefault('validity', ROOT_VALIDITY)
    kwargs.setdefault('ca', True)
    return issue_cert(cn, key, cn, key, **kwargs)


@dataclass
class SimplePKI:
    root_key: object
    root: x509.Certificate
    interm_key: object
    interm: x509.Certificate
    leaf_key: object
    leaf: x509.Certificate
    direct_leaf: x509.Certificate


def build_pki(key_type: str = 'ecdsa') -> SimplePKI:
    """
    Root CA, an intermediate CA signed by the root, a leaf signed by
    the intermediate and a leaf signed directly by the root.
    """
    root_key = gen_key(key_type)
    interm_key = gen_key(key_type)
    leaf_key = gen_key(key_type)
    root = self_signed('Root CA', root_key)
    interm = issue_cert(
        'Intermediate CA', interm_key, 'Root CA', root_key,
        validity=INTERM_VALIDITY, ca=True,
    )
    leaf = issue_cert('Leaf', leaf_key, 'Intermediate CA', interm_key)
    direct_leaf = issue_cert('Direct Leaf', leaf_key, 'Root CA', root_key)
    return SimplePKI(
        root_key=root_key, root=root,
        interm_key=interm_key, interm=interm,
        leaf_key=leaf_key, leaf=leaf, direct_leaf=direct_leaf,
    )


def write_cert(cert: x509.Certificate, fname: str, use_pem: bool = True):
    with open(fname, 'wb') as outf:
        if use_pem:
            outf.write(pem.armor('CERTIFICATE', cert.dump()))
        else:
            outf.write(cert.dump())
    return fname


def subjects(chain):
    return [cert.subject.native['common_name'] for cert in chain]
