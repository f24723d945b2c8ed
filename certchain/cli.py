import dataclasses
import logging
import sys
from contextlib import contextmanager
from datetime import timezone

import click

from . import CertificateVerifier, __version__
from .config.errors import ConfigurationError
from .config.logging import LogConfig, StdLogOutput
from .config.verifier import CertchainConfig, parse_config
from .errors import CertificateVerificationError
from .keys import load_cert_from_pemder, load_certs_from_pemder

__all__ = ['cli_root', 'launch']

logger = logging.getLogger("cli")

LOG_FORMAT_STRING = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class NoStackTraceFormatter(logging.Formatter):
    def formatException(self, ei) -> str:
        return ""  # pragma: nocover


def logging_setup(log_configs, verbose: bool):
    log_config: LogConfig
    for module, log_config in log_configs.items():
        cur_logger = logging.getLogger(module)
        cur_logger.setLevel(log_config.level)
        handler: logging.StreamHandler
        if isinstance(log_config.output, StdLogOutput):
            if log_config.output == StdLogOutput.STDOUT:
                handler = logging.StreamHandler(sys.stdout)
            else:
                handler = logging.StreamHandler()
            # when logging to the console, don't output stack traces
            # unless in verbose mode
            if verbose:
                formatter = logging.Formatter(LOG_FORMAT_STRING)
            else:
                formatter = NoStackTraceFormatter(LOG_FORMAT_STRING)
        else:
            handler = logging.FileHandler(log_config.output)
            formatter = logging.Formatter(LOG_FORMAT_STRING)
        handler.setFormatter(formatter)
        cur_logger.addHandler(handler)


@contextmanager
def certchain_exception_manager():
    msg = exception = None
    try:
        yield
    except click.ClickException:
        raise
    except CertificateVerificationError as e:
        exception = e
        msg = f"ERROR ({e.kind.value}): {e.failure_msg}"
    except (IOError, ValueError) as e:
        exception = e
        msg = f"Failed to read certificates: {e}"

    if exception is not None:
        logger.debug(msg, exc_info=exception)
        raise click.ClickException(msg)


@click.group()
@click.version_option(prog_name='certchain', version=__version__)
@click.option(
    '--config',
    help='YAML file to load configuration from',
    required=False,
    type=click.File('r'),
)
@click.option(
    '--verbose',
    help='Run in verbose mode',
    required=False,
    default=False,
    type=bool,
    is_flag=True,
)
@click.pass_context
def cli_root(ctx: click.Context, config, verbose):
    cfg = CertchainConfig()
    if config is not None:
        try:
            cfg = parse_config(config.read())
        except IOError as e:
            raise click.ClickException(
                f"Failed to read configuration: {str(e)}",
            )
        except ConfigurationError as e:
            raise click.ClickException(
                f"Invalid configuration: {e.msg}"
            )
    log_config = cfg.log_config
    if verbose:
        # override the root logger's logging level, but preserve the output
        log_config = dict(log_config)
        log_config[None] = dataclasses.replace(
            log_config[None], level=logging.DEBUG
        )
    logging_setup(log_config, verbose)
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli_root.command(help='build and verify the chain of a certificate')
@click.argument('leaf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--pool', 'pool_files', multiple=True, required=True,
    type=click.Path(exists=True, dir_okay=False),
    help='file with trusted roots and intermediates (PEM or DER)',
)
@click.option(
    '--at', 'moment', type=click.DateTime(), required=False,
    help='validation time (UTC) [default: now]',
)
@click.option(
    '--no-basic-constraints', is_flag=True, default=False,
    help='do not enforce CA flags and path length constraints',
)
@click.pass_context
def verify(ctx: click.Context, leaf, pool_files, moment,
           no_basic_constraints):
    cfg: CertchainConfig = ctx.obj['config']
    verifier_config = cfg.verifier
    if no_basic_constraints:
        verifier_config = dataclasses.replace(
            verifier_config, enforce_basic_constraints=False
        )
    if moment is not None:
        moment = moment.replace(tzinfo=timezone.utc)

    with certchain_exception_manager():
        leaf_cert = load_cert_from_pemder(leaf)
        pool = load_certs_from_pemder(pool_files)
        verifier = CertificateVerifier(config=verifier_config)
        chain = verifier.verify(leaf_cert, pool, moment=moment)

    for index, cert in enumerate(chain):
        line = cert.subject.human_friendly
        if index == len(chain) - 1:
            line += ' [anchor]'
        click.echo(line)


def launch():
    cli_root(prog_name='certchain')  # pragma: nocover


if __name__ == '__main__':  # pragma: nocover
    launch()
