"""
Logging settings for the ``certchain`` command line tool.

The ``logging`` section of the configuration file looks like this::

    logging:
        root-level: INFO
        root-output: stderr
        by-module:
            certchain.registry:
                level: DEBUG
                output: path-search.log

Levels can be given by name or by number, outputs are ``stderr``,
``stdout`` or a file name.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .api import ConfigurableMixin, check_config_keys
from .errors import ConfigurationError

__all__ = [
    'LogConfig',
    'StdLogOutput',
    'parse_logging_config',
    'DEFAULT_LOG_LEVEL',
]


class StdLogOutput(enum.Enum):
    STDERR = enum.auto()
    STDOUT = enum.auto()


DEFAULT_LOG_LEVEL = logging.INFO


def parse_level(level_spec) -> int:
    if isinstance(level_spec, bool):
        raise ConfigurationError("Log level must be a name or a number.")
    if isinstance(level_spec, int):
        return level_spec
    if isinstance(level_spec, str):
        level = logging.getLevelName(level_spec.upper())
        if isinstance(level, int):
            return level
        raise ConfigurationError(f"Unknown log level '{level_spec}'.")
    raise ConfigurationError("Log level must be a name or a number.")


def parse_output(output_spec) -> Union[StdLogOutput, str]:
    if not isinstance(output_spec, str):
        raise ConfigurationError("Log output must be a string.")
    try:
        return StdLogOutput[output_spec.upper()]
    except KeyError:
        return output_spec


@dataclass(frozen=True)
class LogConfig(ConfigurableMixin):
    """
    Level and destination of a single logger.
    """

    level: int
    """
    Logging level, as defined in the :mod:`logging` module.
    """

    output: Union[StdLogOutput, str] = StdLogOutput.STDERR
    """
    Name of the output file, or a standard stream.
    """

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        if 'level' in config_dict:
            config_dict['level'] = parse_level(config_dict['level'])
        if 'output' in config_dict:
            config_dict['output'] = parse_output(config_dict['output'])


def parse_logging_config(log_config_spec) -> Dict[Optional[str], LogConfig]:
    """
    Parse the ``logging`` section of a configuration file.

    :return:
        A dictionary mapping logger names to :class:`LogConfig` objects.
        The root logger is listed under ``None`` and is always present.
    :raises ConfigurationError:
        if the section is malformed.
    """
    check_config_keys(
        'logging', {'root-level', 'root-output', 'by-module'},
        log_config_spec
    )
    root_settings = {'level': DEFAULT_LOG_LEVEL}
    if 'root-level' in log_config_spec:
        root_settings['level'] = log_config_spec['root-level']
    if 'root-output' in log_config_spec:
        root_settings['output'] = log_config_spec['root-output']
    log_config: Dict[Optional[str], LogConfig] = {
        None: LogConfig.from_config(root_settings)
    }

    by_module = log_config_spec.get('by-module', None)
    if by_module is None:
        by_module = {}
    if not isinstance(by_module, dict):
        raise ConfigurationError("'by-module' must map logger names "
                                 "to logging settings.")
    for module, settings in by_module.items():
        if not isinstance(module, str):
            raise ConfigurationError("Logger names must be strings.")
        try:
            log_config[module] = LogConfig.from_config(settings)
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Invalid logging settings for '{module}': {e.msg}"
            ) from e
    return log_config
