import logging
from datetime import timedelta

import pytest

from certchain.config.errors import ConfigurationError
from certchain.config.logging import LogConfig, StdLogOutput
from certchain.config.verifier import (
    CertchainConfig,
    VerifierConfig,
    parse_config,
)
from certchain.validate import DEFAULT_TIME_TOLERANCE


def test_empty_config():
    cfg = parse_config('')
    assert cfg == CertchainConfig()
    assert cfg.verifier.time_tolerance == DEFAULT_TIME_TOLERANCE
    assert cfg.verifier.enforce_basic_constraints
    assert cfg.log_config[None] == LogConfig(
        level=logging.INFO, output=StdLogOutput.STDERR
    )


def test_verifier_config():
    cfg = parse_config(
        """
        verifier:
            time-tolerance: 30
            enforce-basic-constraints: false
        """
    )
    assert cfg.verifier == VerifierConfig(
        time_tolerance=timedelta(seconds=30),
        enforce_basic_constraints=False,
    )


def test_verifier_config_from_dict():
    config = VerifierConfig.from_config({'time-tolerance': 0.5})
    assert config.time_tolerance == timedelta(milliseconds=500)
    assert config.enforce_basic_constraints


@pytest.mark.parametrize('yaml_str,err_fragment', [
    ("verifier:\n  time-tolerance: -1", 'must not be negative'),
    ("verifier:\n  time-tolerance: soon", 'must be a number'),
    ("verifier:\n  time-tolerance: true", 'must be a number'),
    ("verifier:\n  enforce-basic-constraints: 1", 'must be a boolean'),
    ("verifier:\n  check-revocation: true", 'check-revocation'),
    ("verifier: [1, 2]", 'requires a dictionary'),
    ("signing:\n  foo: bar", 'Unexpected key'),
    ("verifier: {time-tolerance: [", 'Failed to parse YAML'),
])
def test_bad_config(yaml_str, err_fragment):
    with pytest.raises(ConfigurationError, match=err_fragment):
        parse_config(yaml_str)


def test_logging_config():
    cfg = parse_config(
        """
        logging:
            root-level: debug
            root-output: stdout
            by-module:
                certchain.registry:
                    level: 10
                    output: certchain.log
                certchain.validate:
                    level: WARNING
        """
    )
    log_config = cfg.log_config
    assert log_config[None] == LogConfig(logging.DEBUG, StdLogOutput.STDOUT)
    assert log_config['certchain.registry'] == LogConfig(
        logging.DEBUG, 'certchain.log'
    )
    assert log_config['certchain.validate'] == LogConfig(
        logging.WARNING, StdLogOutput.STDERR
    )


def test_empty_logging_section():
    cfg = parse_config("logging:\n")
    assert cfg.log_config == {None: LogConfig(logging.INFO)}


@pytest.mark.parametrize('logging_yaml,err_fragment', [
    ("logging: []", 'requires a dictionary'),
    ("logging:\n  root-level: [1]", 'must be a name or a number'),
    ("logging:\n  root-level: chatty", "Unknown log level 'chatty'"),
    ("logging:\n  root-level: true", 'must be a name or a number'),
    ("logging:\n  root-output: 1", 'must be a string'),
    ("logging:\n  root-format: short", 'root-format'),
    ("logging:\n  by-module: []", 'by-module'),
    ("logging:\n  by-module:\n    foo: 1", "for 'foo'.*requires a dictionary"),
    (
        "logging:\n  by-module:\n    foo:\n      output: stderr",
        "for 'foo'.*Missing required key.*level",
    ),
    (
        "logging:\n  by-module:\n    foo:\n      level: INFO\n      lvl: 1",
        "for 'foo'.*Unexpected key.*lvl",
    ),
])
def test_bad_logging_config(logging_yaml, err_fragment):
    with pytest.raises(ConfigurationError, match=err_fragment):
        parse_config(logging_yaml)
