from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Optional

import yaml

from ..validate import DEFAULT_TIME_TOLERANCE
from .api import ConfigurableMixin, check_config_keys, process_bool, \
    process_number
from .errors import ConfigurationError
from .logging import LogConfig, parse_logging_config

__all__ = ['VerifierConfig', 'CertchainConfig', 'parse_config']


@dataclass(frozen=True)
class VerifierConfig(ConfigurableMixin):
    """
    Settings that control certificate chain verification.
    """

    time_tolerance: timedelta = DEFAULT_TIME_TOLERANCE
    """
    Tolerance applied to validity windows. Specified in seconds in the
    configuration file.
    """

    enforce_basic_constraints: bool = True
    """
    Whether to require CA authority on intermediates and to enforce
    path length constraints.
    """

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        try:
            seconds = config_dict['time_tolerance']
            process_number(seconds, 'time-tolerance')
            if seconds < 0:
                raise ConfigurationError(
                    "'time-tolerance' must not be negative."
                )
            config_dict['time_tolerance'] = timedelta(seconds=seconds)
        except KeyError:
            pass
        try:
            config_dict['enforce_basic_constraints'] = process_bool(
                config_dict['enforce_basic_constraints'],
                'enforce-basic-constraints'
            )
        except KeyError:
            pass


@dataclass(frozen=True)
class CertchainConfig:
    verifier: VerifierConfig = field(default_factory=VerifierConfig)
    log_config: Dict[Optional[str], LogConfig] = field(
        default_factory=lambda: parse_logging_config({})
    )


def parse_config(yaml_str) -> CertchainConfig:
    """
    Parse a YAML configuration document.

    :param yaml_str:
        The YAML document, as a string or a stream.
    :return:
        A :class:`CertchainConfig`.
    :raises ConfigurationError:
        if the configuration is invalid.
    """
    try:
        config_dict = yaml.safe_load(yaml_str) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {e}") from e
    check_config_keys('certchain', {'verifier', 'logging'}, config_dict)

    verifier_config = VerifierConfig.from_config(
        config_dict.get('verifier', None) or {}
    )
    log_spec = config_dict.get('logging', None)
    log_config = parse_logging_config({} if log_spec is None else log_spec)
    return CertchainConfig(verifier=verifier_config, log_config=log_config)
